from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Text

class Category(SQLModel, table=True):
    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    slug: str = Field(unique=True, index=True)
    label: str
    headline: Optional[str] = None
    collection_title: Optional[str] = None
    short_description: str = ""
    color: Optional[str] = "#ff6600ff"

    # Hierarchy (depth is always computed server-side from the parent)
    parent_id: Optional[int] = Field(default=None, foreign_key="categories.id", index=True)
    depth: int = Field(default=0)

    # JSON columns, stored as strings
    images_json: Optional[str] = Field(default="{}", sa_column=Column(Text))  # {thumbnail, cover}
    seo_json: Optional[str] = Field(default="{}", sa_column=Column(Text))
    config_json: Optional[str] = Field(default="{}", sa_column=Column(Text))  # postsPerPage, layout, ...

    # Display
    sort_order: int = Field(default=0, index=True)
    is_online: bool = Field(default=False, index=True)
    is_favorite: bool = Field(default=False)
    cached_post_count: int = Field(default=0)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)  # Soft delete
