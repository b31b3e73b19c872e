from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Text

class Article(SQLModel, table=True):
    __tablename__ = "articles"

    id: Optional[int] = Field(default=None, primary_key=True)
    slug: str = Field(unique=True, index=True)
    type: str = Field(default="article", index=True)  # "recipe" | "article" | "roundup"

    # Relations
    category_id: Optional[int] = Field(default=None, foreign_key="categories.id", index=True)
    author_id: Optional[int] = Field(default=None, foreign_key="authors.id", index=True)

    # Content
    headline: str
    short_description: Optional[str] = None

    # JSON columns, stored as strings
    images_json: Optional[str] = Field(default="{}", sa_column=Column(Text))  # {cover, thumbnail}
    content_json: Optional[str] = Field(default=None, sa_column=Column(Text))
    recipe_json: Optional[str] = Field(default=None, sa_column=Column(Text))  # ingredients, steps, timing
    roundup_json: Optional[str] = Field(default=None, sa_column=Column(Text))
    faqs_json: Optional[str] = Field(default=None, sa_column=Column(Text))
    seo_json: Optional[str] = Field(default="{}", sa_column=Column(Text))
    config_json: Optional[str] = Field(default=None, sa_column=Column(Text))
    jsonld_json: Optional[str] = Field(default=None, sa_column=Column(Text))

    # Denormalized snapshots, rebuilt by ArticleService.sync_cached_fields
    cached_card_json: Optional[str] = Field(default=None, sa_column=Column(Text))
    cached_author_json: Optional[str] = Field(default=None, sa_column=Column(Text))
    cached_category_json: Optional[str] = Field(default=None, sa_column=Column(Text))
    cached_tags_json: Optional[str] = Field(default=None, sa_column=Column(Text))

    # Status
    is_online: bool = Field(default=False, index=True)
    is_favorite: bool = Field(default=False, index=True)
    published_at: Optional[datetime] = Field(default=None, index=True)
    view_count: int = Field(default=0)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)  # Soft delete


class ArticleTag(SQLModel, table=True):
    __tablename__ = "article_tags"

    article_id: int = Field(foreign_key="articles.id", primary_key=True)
    tag_id: int = Field(foreign_key="tags.id", primary_key=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
