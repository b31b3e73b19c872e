# Import all models to register them with SQLModel
from app.models.category import Category
from app.models.author import Author
from app.models.tag import Tag
from app.models.article import Article, ArticleTag
from app.models.media import Media

__all__ = [
    "Category",
    "Author",
    "Tag",
    "Article",
    "ArticleTag",
    "Media",
]
