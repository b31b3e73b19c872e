from sqlmodel import Session, select
from app.db.session import engine, create_db_and_tables
from app.models.category import Category
from app.services.article import ArticleService
from app.services.author import AuthorService
from app.services.category import CategoryService
from app.services.tag import TagService
from app.transforms.articles import transform_article_request
from app.transforms.authors import transform_author_request
from app.transforms.categories import transform_category_request
from app.transforms.tags import transform_tag_request

CATEGORIES = [
    {
        "slug": "soups",
        "label": "Soups",
        "shortDescription": "Warm bowls for every season.",
        "color": "#d9822bff",
        "numEntriesPerPage": 12,
        "showInNav": True,
        "isOnline": True,
    },
    {
        "slug": "desserts",
        "label": "Desserts",
        "shortDescription": "Cakes, tarts and everything sweet.",
        "color": "#c2185bff",
        "layoutMode": "grid",
        "showInNav": True,
        "isOnline": True,
    },
]

AUTHORS = [
    {
        "slug": "maya-lind",
        "name": "Maya Lind",
        "jobTitle": "Recipe Developer",
        "shortDescription": "Tests every recipe three times before it ships.",
        "bioJson": {
            "headline": "Home cook turned recipe developer",
            "short": "Maya writes the weeknight recipes.",
            "socials": [{"network": "instagram", "url": "https://instagram.com/mayalind"}],
        },
        "isOnline": True,
    },
]

TAGS = [
    {"slug": "vegetarian", "label": "Vegetarian", "color": "#2e7d32ff", "isOnline": True},
    {"slug": "quick", "label": "Under 30 minutes", "color": "#1565c0ff", "isOnline": True},
]


def seed_content():
    print("Creating database and tables...")
    create_db_and_tables()

    with Session(engine) as session:
        # Check if content already exists to avoid duplicates
        existing = session.exec(select(Category)).all()
        if existing:
            print(f"Database already contains {len(existing)} categories. Skipping seed.")
            return

        print("Seeding starter content...")
        categories = [
            CategoryService(session).create_category(transform_category_request(body))
            for body in CATEGORIES
        ]
        authors = [
            AuthorService(session).create_author(transform_author_request(body, partial=False))
            for body in AUTHORS
        ]
        tags = [
            TagService(session).create_tag(transform_tag_request(body, partial=False))
            for body in TAGS
        ]

        ArticleService(session).create_article(
            transform_article_request({
                "slug": "roasted-tomato-soup",
                "type": "recipe",
                "headline": "Roasted Tomato Soup",
                "shortDescription": "Sweet roasted tomatoes blended with garlic and basil.",
                "categoryId": categories[0].id,
                "authorId": authors[0].id,
                "recipeJson": {
                    "servings": 4,
                    "prepTime": 10,
                    "cookTime": 40,
                    "ingredients": ["1kg tomatoes", "1 head garlic", "1 bunch basil"],
                },
                "isOnline": True,
                "publishedAt": "2025-01-15T09:00:00Z",
            }, partial=False),
            tag_ids=[tag.id for tag in tags],
        )

        print(f"Successfully seeded {len(categories)} categories, {len(authors)} authors, {len(tags)} tags and 1 article!")

if __name__ == "__main__":
    seed_content()
