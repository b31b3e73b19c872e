from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Text

class Media(SQLModel, table=True):
    __tablename__ = "media"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    folder: Optional[str] = Field(default=None, index=True)
    mime_type: Optional[str] = None
    alt_text: Optional[str] = None
    caption: Optional[str] = None
    credit: Optional[str] = None

    # {"variants": {"original": {"url", "width", "height", "sizeBytes", "storageKey"}, ...}}
    # storageKey never leaves the API, see MediaService.public_variants
    variants_json: str = Field(default="{}", sa_column=Column(Text))

    uploaded_by: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)  # Soft delete
