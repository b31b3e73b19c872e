"""
End-to-end HTTP tests through the FastAPI app
"""
import json

from app.core.config import settings
from app.core.errors import NO_CACHE, PUBLIC_CACHE
from app.core.security import get_password_hash

SOUPS = {"slug": "soups", "label": "Soups", "shortDescription": "Warm dishes"}


def create(client, path, body, headers):
    response = client.post(path, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCategoriesApi:
    def test_create_soups(self, client, editor_headers):
        data = create(client, "/api/categories", {**SOUPS, "numEntriesPerPage": 8}, editor_headers)
        assert json.loads(data["configJson"]) == {"postsPerPage": 8}
        assert data["depth"] == 0
        assert data["numEntriesPerPage"] == 8

        response = client.get("/api/categories/soups")
        assert response.status_code == 200
        assert response.headers["Cache-Control"] == NO_CACHE
        body = response.json()
        assert body["success"] is True
        assert body["data"]["id"] == data["id"]

        by_id = client.get(f"/api/categories/{data['id']}").json()["data"]
        assert by_id["slug"] == "soups"

    def test_validation_error_envelope(self, client, editor_headers):
        response = client.post(
            "/api/categories",
            json={"slug": "", "label": "x", "shortDescription": "y"},
            headers=editor_headers,
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert "slug" in body["error"]["message"]
        assert body["error"]["details"] == {"missing": ["slug"]}

    def test_non_object_body(self, client, editor_headers):
        response = client.post("/api/categories", json=["soups"], headers=editor_headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_mutations_require_editor(self, client, viewer_headers):
        response = client.post("/api/categories", json=SOUPS)
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_ERROR"

        response = client.post("/api/categories", json=SOUPS, headers=viewer_headers)
        assert response.status_code == 403
        assert response.json()["error"] == {"code": "AUTH_ERROR", "message": "Insufficient permissions"}

    def test_admin_role_allowed(self, client, admin_headers):
        create(client, "/api/categories", SOUPS, admin_headers)

    def test_missing_secret_fails_closed(self, client, editor_headers, monkeypatch):
        monkeypatch.setattr(settings, "JWT_SECRET", None)
        response = client.post("/api/categories", json=SOUPS, headers=editor_headers)
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"

    def test_list_update_delete(self, client, editor_headers):
        soups = create(client, "/api/categories", SOUPS, editor_headers)
        create(client, "/api/categories", {
            "slug": "cold-soups",
            "label": "Cold Soups",
            "shortDescription": "Gazpacho and friends",
            "parentId": soups["id"],
        }, editor_headers)

        response = client.get("/api/categories")
        assert response.headers["Cache-Control"] == PUBLIC_CACHE
        by_slug = {c["slug"]: c for c in response.json()["data"]}
        assert by_slug["cold-soups"]["depth"] == 1

        roots = client.get("/api/categories", params={"rootOnly": "true"}).json()["data"]
        assert [c["slug"] for c in roots] == ["soups"]

        response = client.put("/api/categories/soups", json={"label": "Hot Soups", "layoutMode": "grid"}, headers=editor_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["label"] == "Hot Soups"
        assert data["layoutMode"] == "grid"
        assert data["shortDescription"] == "Warm dishes"

        response = client.put("/api/categories/soups", json={"shortDescription": ""}, headers=editor_headers)
        assert response.status_code == 400

        assert client.delete("/api/categories/soups", headers=editor_headers).status_code == 200
        response = client.get("/api/categories/soups")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
        assert client.delete("/api/categories/soups", headers=editor_headers).status_code == 404

    def test_replacing_image_deletes_old_object(self, client, editor_headers, storage):
        storage.put("uploads/old.jpg", b"old", "image/jpeg")
        create(client, "/api/categories", {**SOUPS, "imageUrl": "/images/uploads/old.jpg"}, editor_headers)

        response = client.put(
            "/api/categories/soups",
            json={"imageUrl": "/images/uploads/new.jpg", "imageAlt": "New"},
            headers=editor_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["imageUrl"] == "/images/uploads/new.jpg"
        assert storage.deleted == ["uploads/old.jpg"]

    def test_null_images_json_clears_image(self, client, editor_headers, storage):
        storage.put("uploads/a.jpg", b"a", "image/jpeg")
        create(client, "/api/categories", {**SOUPS, "imageUrl": "/images/uploads/a.jpg"}, editor_headers)

        response = client.put("/api/categories/soups", json={"imagesJson": None}, headers=editor_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert json.loads(data["imagesJson"]) == {}
        assert "imageUrl" not in data
        assert storage.deleted == ["uploads/a.jpg"]

    def test_null_unsets_seo_and_config_keys(self, client, editor_headers):
        create(client, "/api/categories", {**SOUPS, "noIndex": True, "numEntriesPerPage": 8}, editor_headers)

        response = client.put(
            "/api/categories/soups",
            json={"seoJson": {"noIndex": None}, "configJson": {"postsPerPage": None}},
            headers=editor_headers,
        )
        data = response.json()["data"]
        assert json.loads(data["seoJson"]) == {}
        assert json.loads(data["configJson"]) == {}
        assert "noIndex" not in data
        assert "numEntriesPerPage" not in data


class TestAuthorsApi:
    def test_crud(self, client, editor_headers):
        data = create(client, "/api/authors", {
            "slug": "maya",
            "name": "Maya Lind",
            "imageUrl": "http://x/img.jpg",
            "imageWidth": 100,
            "imageHeight": 50,
            "bioJson": {"short": "Cook", "socialLinks": {"x": "https://x.com/maya"}},
        }, editor_headers)
        assert json.loads(data["imagesJson"]) == {
            "avatar": {"variants": {"original": {"url": "http://x/img.jpg", "width": 100, "height": 50}}},
        }
        assert data["imageUrl"] == "http://x/img.jpg"
        assert data["introduction"] == "Cook"
        assert data["socials"] == [{"network": "x", "url": "https://x.com/maya"}]

        response = client.get("/api/authors/maya")
        assert response.headers["Cache-Control"] == NO_CACHE

        response = client.put(f"/api/authors/{data['id']}", json={"jobTitle": "Editor"}, headers=editor_headers)
        assert response.json()["data"]["jobTitle"] == "Editor"
        assert response.json()["data"]["imageUrl"] == "http://x/img.jpg"

        assert client.delete("/api/authors/maya", headers=editor_headers).status_code == 200
        assert client.get("/api/authors").json()["data"] == []

    def test_create_requires_name(self, client, editor_headers):
        response = client.post("/api/authors", json={"slug": "maya"}, headers=editor_headers)
        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"missing": ["name"]}

    def test_flat_bio_fields_are_stored(self, client, editor_headers):
        data = create(client, "/api/authors", {"slug": "a1", "name": "A", "introduction": "Hello", "headline": "Chef"}, editor_headers)
        assert json.loads(data["bioJson"]) == {"headline": "Chef", "introduction": "Hello"}
        assert data["introduction"] == "Hello"

        response = client.put("/api/authors/a1", json={"subtitle": "Home cooking"}, headers=editor_headers)
        data = response.json()["data"]
        assert (data["headline"], data["subtitle"], data["introduction"]) == ("Chef", "Home cooking", "Hello")


class TestTagsApi:
    def test_crud(self, client, editor_headers):
        data = create(client, "/api/tags", {"slug": "quick", "label": "Quick", "icon": "<svg/>"}, editor_headers)
        assert data["svgCode"] == "<svg/>"
        assert data["route"] == "/tags/quick"

        response = client.get("/api/tags/quick")
        assert response.headers["Cache-Control"] == PUBLIC_CACHE

        response = client.put("/api/tags/quick", json={"label": "Speedy"}, headers=editor_headers)
        assert response.json()["data"]["label"] == "Speedy"

        assert client.delete("/api/tags/quick", headers=editor_headers).status_code == 200
        assert client.get("/api/tags/quick").status_code == 404

    def test_flat_style_update_keeps_variant(self, client, editor_headers):
        create(client, "/api/tags", {"slug": "quick", "label": "Quick", "svgCode": "<svg id='1'/>", "variant": "pill"}, editor_headers)
        response = client.put("/api/tags/quick", json={"svgCode": "<svg id='2'/>"}, headers=editor_headers)
        data = response.json()["data"]
        assert data["svgCode"] == "<svg id='2'/>"
        assert data["variant"] == "pill"


class TestArticlesApi:
    def setup_content(self, client, headers):
        category = create(client, "/api/categories", SOUPS, headers)
        author = create(client, "/api/authors", {"slug": "maya", "name": "Maya"}, headers)
        tag = create(client, "/api/tags", {"slug": "quick", "label": "Quick"}, headers)
        article = create(client, "/api/articles", {
            "slug": "tomato-soup",
            "type": "recipe",
            "headline": "Tomato Soup",
            "categoryId": category["id"],
            "authorId": author["id"],
            "imageUrl": "/images/uploads/soup.jpg",
            "recipeJson": {"servings": 4},
            "selectedTags": [tag["id"]],
        }, headers)
        return category, author, tag, article

    def test_create_and_publish(self, client, editor_headers):
        _, _, tag, article = self.setup_content(client, editor_headers)
        assert article["categoryLabel"] == "Soups"
        assert article["authorName"] == "Maya"
        assert article["tagIds"] == [tag["id"]]
        assert article["tags"][0]["slug"] == "quick"
        assert json.loads(article["recipeJson"]) == {"servings": 4}

        # Drafts are not public
        assert client.get("/api/articles/tomato-soup").status_code == 404
        assert client.get("/api/articles").json()["data"] == []

        response = client.patch(f"/api/admin/articles/{article['id']}?action=toggle-online", headers=editor_headers)
        assert response.status_code == 200
        assert response.json()["data"]["isOnline"] is True

        response = client.get("/api/articles/tomato-soup")
        assert response.status_code == 200
        assert response.headers["Cache-Control"] == PUBLIC_CACHE
        assert response.json()["data"]["imageUrl"] == "/images/uploads/soup.jpg"
        assert client.get("/api/articles/tomato-soup", params={"type": "article"}).status_code == 404

        response = client.get("/api/articles", params={"tag": "quick", "category": "soups"})
        body = response.json()
        assert [a["slug"] for a in body["data"]] == ["tomato-soup"]
        assert body["pagination"] == {"page": 1, "limit": 12, "total": 1, "totalPages": 1}

    def test_pagination_is_clamped(self, client):
        body = client.get("/api/articles", params={"page": 0, "limit": 1000}).json()
        assert body["pagination"] == {"page": 1, "limit": 100, "total": 0, "totalPages": 0}
        body = client.get("/api/articles", params={"limit": -3}).json()
        assert body["pagination"]["limit"] == 1

    def test_admin_endpoints(self, client, editor_headers):
        _, _, _, article = self.setup_content(client, editor_headers)
        path = f"/api/admin/articles/{article['id']}"

        assert client.get(path).status_code == 401
        response = client.get(path, headers=editor_headers)
        assert response.status_code == 200
        assert response.headers["Cache-Control"] == NO_CACHE

        response = client.patch(f"{path}?action=publish", headers=editor_headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

        response = client.patch(f"{path}?action=toggle-favorite", headers=editor_headers)
        assert response.json()["data"]["isFavorite"] is True

        response = client.put(path, json={"headline": "Roasted Tomato Soup", "selectedTags": []}, headers=editor_headers)
        data = response.json()["data"]
        assert data["headline"] == "Roasted Tomato Soup"
        assert data["tagIds"] == []
        assert data["tags"] == []

        listing = client.get("/api/admin/articles", headers=editor_headers).json()
        assert listing["pagination"]["total"] == 1

        assert client.delete(path, headers=editor_headers).status_code == 200
        assert client.get(path, headers=editor_headers).status_code == 404
        assert client.patch(f"{path}?action=toggle-online", headers=editor_headers).status_code == 404

    def test_update_by_slug_resyncs_cache(self, client, editor_headers):
        _, _, _, article = self.setup_content(client, editor_headers)
        client.put("/api/categories/soups", json={"label": "Hot Soups"}, headers=editor_headers)
        data = client.get(f"/api/admin/articles/{article['id']}", headers=editor_headers).json()["data"]
        assert data["categoryLabel"] == "Hot Soups"

        response = client.put("/api/articles/tomato-soup", json={"type": "poem"}, headers=editor_headers)
        assert response.status_code == 400

    def test_view_counter(self, client, editor_headers):
        self.setup_content(client, editor_headers)
        assert client.post("/api/articles/tomato-soup/view").status_code == 200
        assert client.post("/api/articles/missing/view").status_code == 404

    def test_invalid_selected_tags(self, client, editor_headers):
        response = client.post("/api/articles", json={
            "slug": "a",
            "headline": "A",
            "selectedTags": ["not-an-id"],
        }, headers=editor_headers)
        assert response.status_code == 400


class TestMediaApi:
    def upload(self, client, headers):
        response = client.post(
            "/api/media",
            files={"file": ("soup.jpg", b"\xff\xd8jpeg", "image/jpeg")},
            data={"altText": "A bowl of soup", "width": "800", "height": "600"},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    def test_upload_serve_delete(self, client, editor_headers, storage):
        media = self.upload(client, editor_headers)
        assert media["altText"] == "A bowl of soup"
        assert media["url"].startswith("/images/uploads/")
        assert "storageKey" not in media["variants"]["original"]

        response = client.get(media["url"])
        assert response.status_code == 200
        assert response.content == b"\xff\xd8jpeg"
        assert response.headers["content-type"] == "image/jpeg"

        response = client.put(f"/api/media/{media['id']}", json={"caption": "Lunch"}, headers=editor_headers)
        assert response.json()["data"]["caption"] == "Lunch"

        listing = client.get("/api/media", params={"search": "bowl"}, headers=editor_headers).json()
        assert [m["id"] for m in listing["data"]] == [media["id"]]

        response = client.delete(f"/api/media/{media['id']}", headers=editor_headers)
        assert response.status_code == 200
        assert "warning" not in response.json()["data"]
        assert client.get(media["url"]).status_code == 404

    def test_delete_reports_failed_keys(self, client, editor_headers, storage):
        media = self.upload(client, editor_headers)
        [key] = storage.objects
        storage.fail_keys.add(key)

        response = client.delete(f"/api/media/{media['id']}", headers=editor_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["failedKeys"] == [key]
        assert "warning" in data
        assert client.get(f"/api/media/{media['id']}", headers=editor_headers).status_code == 404

    def test_rejects_non_images(self, client, editor_headers):
        response = client.post(
            "/api/media",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=editor_headers,
        )
        assert response.status_code == 400


class TestAuthApi:
    def test_login(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_USERNAME", "admin")
        monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", get_password_hash("s3cret"))

        response = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
        assert response.status_code == 401

        response = client.post("/api/auth/login", json={"username": "admin", "password": "s3cret"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"] == {"username": "admin", "role": "admin"}

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.json()["data"]["role"] == "admin"

        # The token opens editor routes
        response = client.post("/api/categories", json=SOUPS, headers={"Authorization": f"Bearer {data['token']}"})
        assert response.status_code == 201

    def test_unknown_route_envelope(self, client):
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
