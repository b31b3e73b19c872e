from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from app.core.errors import AppError, ErrorCode, require_fields
from app.models.article import Article, ArticleTag
from app.models.tag import Tag
from app.services.article import ArticleService
from app.services.repository import SoftDeleteRepository
from app.transforms.tags import REQUIRED_FIELDS

MERGED_JSON_COLUMNS = ("style_json",)


class TagService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = SoftDeleteRepository(session, Tag)

    def list_tags(self, is_online: Optional[bool] = None, is_favorite: Optional[bool] = None) -> List[Tag]:
        criteria = []
        if is_online is not None:
            criteria.append(Tag.is_online == is_online)
        if is_favorite is not None:
            criteria.append(Tag.is_favorite == is_favorite)
        return self.repo.list(*criteria, order_by=(Tag.label,))

    def get_tag(self, slug: str) -> Optional[Tag]:
        return self.repo.get_by_slug_or_id(slug)

    def require_tag(self, slug: str) -> Tag:
        tag = self.get_tag(slug)
        if not tag:
            raise AppError(ErrorCode.NOT_FOUND, "Tag not found")
        return tag

    def create_tag(self, payload: Dict[str, Any]) -> Tag:
        require_fields(payload, REQUIRED_FIELDS)
        columns = self.repo.to_columns(payload)
        if self.repo.slug_taken(columns["slug"]):
            raise AppError(ErrorCode.VALIDATION_ERROR, f"A tag with slug '{columns['slug']}' already exists")
        self.repo.merge_json_columns(None, columns, MERGED_JSON_COLUMNS)
        return self.repo.insert(columns)

    def update_tag(self, tag: Tag, payload: Dict[str, Any]) -> Tag:
        columns = self.repo.to_columns(payload)
        if "slug" in columns and self.repo.slug_taken(columns["slug"], exclude_id=tag.id):
            raise AppError(ErrorCode.VALIDATION_ERROR, f"A tag with slug '{columns['slug']}' already exists")
        self.repo.merge_json_columns(tag, columns, MERGED_JSON_COLUMNS)
        tag = self.repo.update(tag, columns)
        self._sync_tagged_articles(tag.id)
        return tag

    def delete_tag(self, tag: Tag) -> bool:
        deleted = self.repo.soft_delete(tag)
        if deleted:
            self._sync_tagged_articles(tag.id)
        return deleted

    def _sync_tagged_articles(self, tag_id: int) -> int:
        tagged = select(ArticleTag.article_id).where(ArticleTag.tag_id == tag_id)
        return ArticleService(self.session).sync_where(Article.id.in_(tagged))
