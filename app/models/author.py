from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Text

class Author(SQLModel, table=True):
    __tablename__ = "authors"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    slug: str = Field(unique=True, index=True)
    name: str
    email: Optional[str] = None
    job_title: Optional[str] = None
    short_description: Optional[str] = None

    # JSON columns, stored as strings
    images_json: Optional[str] = Field(default="{}", sa_column=Column(Text))  # {avatar, cover, banner}
    bio_json: Optional[str] = Field(default="{}", sa_column=Column(Text))  # headline, fullBio, socials, ...
    seo_json: Optional[str] = Field(default="{}", sa_column=Column(Text))

    # Display
    sort_order: int = Field(default=0)
    is_online: bool = Field(default=False, index=True)
    is_favorite: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)  # Soft delete
