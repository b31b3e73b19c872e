import json
import os

import requests

BASE_URL = os.environ.get("VERIFY_BASE_URL", "http://localhost:8000/api")
USERNAME = os.environ.get("VERIFY_USERNAME", "admin")
PASSWORD = os.environ.get("VERIFY_PASSWORD", "")

def print_response(name, response):
    print(f"--- {name} ---")
    print(f"Status: {response.status_code}")
    print(f"Cache-Control: {response.headers.get('Cache-Control')}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)
    print("\n")

def run_verification():
    # 1. Login
    print("1. Logging in...")
    resp = requests.post(f"{BASE_URL}/auth/login", json={
        "username": USERNAME,
        "password": PASSWORD
    })
    print_response("Login", resp)
    if resp.status_code != 200:
        print("Login failed, aborting.")
        return
    token = resp.json()["data"]["token"]
    headers = {"Authorization": f"Bearer {token}"}

    # 2. Create a category with a flat config override
    print("2. Creating Category...")
    resp = requests.post(f"{BASE_URL}/categories", headers=headers, json={
        "slug": "verify-soups",
        "label": "Verify Soups",
        "shortDescription": "Warm dishes",
        "numEntriesPerPage": 8
    })
    print_response("Create Category", resp)

    # 3. Fetch it back by slug (expects configJson {"postsPerPage":8}, depth 0)
    print("3. Fetching Category...")
    resp = requests.get(f"{BASE_URL}/categories/verify-soups")
    print_response("Get Category", resp)

    # 4. Missing fields are all reported at once
    print("4. Creating Invalid Category (Expected Failure)...")
    resp = requests.post(f"{BASE_URL}/categories", headers=headers, json={
        "slug": "",
        "label": "x"
    })
    print_response("Create Category (Invalid)", resp)

    # 5. Mutations without a token are refused
    print("5. Deleting Without Token (Expected Failure)...")
    resp = requests.delete(f"{BASE_URL}/categories/verify-soups")
    print_response("Delete Category (Anonymous)", resp)

    # 6. Clean up
    print("6. Deleting Category...")
    resp = requests.delete(f"{BASE_URL}/categories/verify-soups", headers=headers)
    print_response("Delete Category", resp)

    # 7. Public article list
    print("7. Listing Articles...")
    resp = requests.get(f"{BASE_URL}/articles?limit=5")
    print_response("List Articles", resp)

if __name__ == "__main__":
    run_verification()
