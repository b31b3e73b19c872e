from typing import Any, Dict, List, Optional

from sqlmodel import Session

from app.core.errors import AppError, ErrorCode, require_fields
from app.models.article import Article
from app.models.author import Author
from app.services.article import ArticleService
from app.services.media import MediaService
from app.services.repository import SoftDeleteRepository
from app.transforms.authors import REQUIRED_FIELDS

MERGED_JSON_COLUMNS = ("images_json", "seo_json", "bio_json")


class AuthorService:
    def __init__(self, session: Session, storage=None):
        self.session = session
        self.storage = storage
        self.repo = SoftDeleteRepository(session, Author)

    def list_authors(self, is_online: Optional[bool] = None) -> List[Author]:
        criteria = []
        if is_online is not None:
            criteria.append(Author.is_online == is_online)
        return self.repo.list(*criteria, order_by=(Author.sort_order, Author.name))

    def get_author(self, slug_or_id: str) -> Optional[Author]:
        return self.repo.get_by_slug_or_id(slug_or_id)

    def require_author(self, slug_or_id: str) -> Author:
        author = self.get_author(slug_or_id)
        if not author:
            raise AppError(ErrorCode.NOT_FOUND, "Author not found")
        return author

    def create_author(self, payload: Dict[str, Any]) -> Author:
        require_fields(payload, REQUIRED_FIELDS)
        columns = self.repo.to_columns(payload)
        if self.repo.slug_taken(columns["slug"]):
            raise AppError(ErrorCode.VALIDATION_ERROR, f"An author with slug '{columns['slug']}' already exists")
        self.repo.merge_json_columns(None, columns, MERGED_JSON_COLUMNS)
        return self.repo.insert(columns)

    def update_author(self, author: Author, payload: Dict[str, Any]) -> Author:
        columns = self.repo.to_columns(payload)
        if "slug" in columns and self.repo.slug_taken(columns["slug"], exclude_id=author.id):
            raise AppError(ErrorCode.VALIDATION_ERROR, f"An author with slug '{columns['slug']}' already exists")

        old_images = author.images_json
        self.repo.merge_json_columns(author, columns, MERGED_JSON_COLUMNS)
        author = self.repo.update(author, columns)
        ArticleService(self.session).sync_where(Article.author_id == author.id)

        if "images_json" in columns and self.storage is not None:
            MediaService(self.session, self.storage).delete_superseded(old_images, author.images_json)
        return author

    def delete_author(self, author: Author) -> bool:
        deleted = self.repo.soft_delete(author)
        if deleted:
            ArticleService(self.session).sync_where(Article.author_id == author.id)
        return deleted
