import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, or_, update
from sqlmodel import Session, select

from app.core.errors import AppError, ErrorCode, require_fields
from app.models.article import Article, ArticleTag
from app.models.author import Author
from app.models.category import Category
from app.models.tag import Tag
from app.services.media import MediaService
from app.services.repository import SoftDeleteRepository
from app.transforms import codecs
from app.transforms.articles import REQUIRED_FIELDS
from app.transforms.common import first_slot
from app.transforms.images import best_variant_url

logger = logging.getLogger(__name__)

# Server-derived; never taken from a payload
DERIVED_COLUMNS = (
    "view_count",
    "cached_card_json",
    "cached_author_json",
    "cached_category_json",
    "cached_tags_json",
)
MERGED_JSON_COLUMNS = ("images_json", "seo_json")


class ArticleService:
    def __init__(self, session: Session, storage=None):
        self.session = session
        self.storage = storage
        self.repo = SoftDeleteRepository(session, Article)

    # Reads

    def list_articles(
        self,
        page: int = 1,
        limit: int = 12,
        type: Optional[str] = None,
        category_id: Optional[int] = None,
        author_id: Optional[int] = None,
        category_slug: Optional[str] = None,
        author_slug: Optional[str] = None,
        tag_slug: Optional[str] = None,
        is_online: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Article], int]:
        criteria = []
        if type:
            criteria.append(Article.type == type)
        if category_id is not None:
            criteria.append(Article.category_id == category_id)
        if author_id is not None:
            criteria.append(Article.author_id == author_id)
        if category_slug:
            criteria.append(Article.category_id.in_(
                select(Category.id).where(Category.slug == category_slug, Category.deleted_at.is_(None))
            ))
        if author_slug:
            criteria.append(Article.author_id.in_(
                select(Author.id).where(Author.slug == author_slug, Author.deleted_at.is_(None))
            ))
        if tag_slug:
            criteria.append(Article.id.in_(
                select(ArticleTag.article_id)
                .join(Tag, Tag.id == ArticleTag.tag_id)
                .where(Tag.slug == tag_slug, Tag.deleted_at.is_(None))
            ))
        if is_online is not None:
            criteria.append(Article.is_online == is_online)
        if search:
            pattern = f"%{search}%"
            criteria.append(or_(Article.headline.ilike(pattern), Article.short_description.ilike(pattern)))

        items = self.repo.list(
            *criteria,
            order_by=(Article.published_at.desc(), Article.created_at.desc(), Article.id.desc()),
            offset=(page - 1) * limit,
            limit=limit,
        )
        return items, self.repo.count(*criteria)

    def get_article(self, slug: str, type: Optional[str] = None) -> Optional[Article]:
        article = self.repo.get_by_slug(slug)
        if article and type and article.type != type:
            return None
        return article

    def get_article_by_id(self, article_id: int) -> Optional[Article]:
        return self.repo.get(article_id)

    def require_article(self, slug_or_id: str) -> Article:
        article = self.repo.get_by_slug_or_id(slug_or_id)
        if not article:
            raise AppError(ErrorCode.NOT_FOUND, "Article not found")
        return article

    def tag_ids(self, article_id: int) -> List[int]:
        statement = select(ArticleTag.tag_id).where(ArticleTag.article_id == article_id)
        return list(self.session.exec(statement).all())

    # Writes

    def create_article(self, payload: Dict[str, Any], tag_ids: Optional[Iterable[int]] = None) -> Article:
        require_fields(payload, REQUIRED_FIELDS)
        columns = self.repo.to_columns(payload, exclude=DERIVED_COLUMNS)
        columns.setdefault("type", "article")

        if self.repo.slug_taken(columns["slug"]):
            raise AppError(ErrorCode.VALIDATION_ERROR, f"An article with slug '{columns['slug']}' already exists")

        self.repo.merge_json_columns(None, columns, MERGED_JSON_COLUMNS)
        article = self.repo.insert(columns)
        if tag_ids is not None:
            self.set_tags(article.id, tag_ids)
        return self.sync_cached_fields(article.id)

    def update_article(
        self,
        article: Article,
        payload: Dict[str, Any],
        tag_ids: Optional[Iterable[int]] = None,
    ) -> Article:
        columns = self.repo.to_columns(payload, exclude=DERIVED_COLUMNS)
        if "slug" in columns and self.repo.slug_taken(columns["slug"], exclude_id=article.id):
            raise AppError(ErrorCode.VALIDATION_ERROR, f"An article with slug '{columns['slug']}' already exists")

        old_images = article.images_json
        self.repo.merge_json_columns(article, columns, MERGED_JSON_COLUMNS)
        article = self.repo.update(article, columns)
        if tag_ids is not None:
            self.set_tags(article.id, tag_ids)
        article = self.sync_cached_fields(article.id)

        if "images_json" in columns and self.storage is not None:
            MediaService(self.session, self.storage).delete_superseded(old_images, article.images_json)
        return article

    def delete_article(self, article: Article) -> bool:
        return self.repo.soft_delete(article)

    def _toggle(self, article_id: int, column: str) -> Article:
        article = self.get_article_by_id(article_id)
        if not article:
            raise AppError(ErrorCode.NOT_FOUND, "Article not found")
        article = self.repo.update(article, {column: not getattr(article, column)})
        return self.sync_cached_fields(article.id)

    def toggle_online(self, article_id: int) -> Article:
        return self._toggle(article_id, "is_online")

    def toggle_favorite(self, article_id: int) -> Article:
        return self._toggle(article_id, "is_favorite")

    def increment_view_count(self, slug: str) -> bool:
        statement = (
            update(Article)
            .where(Article.slug == slug, Article.deleted_at.is_(None))
            .values(view_count=Article.view_count + 1)
        )
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount > 0

    def set_tags(self, article_id: int, tag_ids: Iterable[int]) -> List[int]:
        wanted = []
        for tag_id in tag_ids:
            if int(tag_id) not in wanted:
                wanted.append(int(tag_id))

        live = set()
        if wanted:
            live = set(self.session.exec(
                select(Tag.id).where(Tag.id.in_(wanted), Tag.deleted_at.is_(None))
            ).all())
        unknown = [tag_id for tag_id in wanted if tag_id not in live]
        if unknown:
            logger.warning("Ignoring unknown tag ids %s for article %s", unknown, article_id)

        self.session.exec(delete(ArticleTag).where(ArticleTag.article_id == article_id))
        for tag_id in wanted:
            if tag_id in live:
                self.session.add(ArticleTag(article_id=article_id, tag_id=tag_id))
        self.session.commit()
        return [tag_id for tag_id in wanted if tag_id in live]

    # Denormalized snapshots

    def _category_snapshot(self, category_id: Optional[int]) -> Optional[Dict[str, Any]]:
        if category_id is None:
            return None
        category = SoftDeleteRepository(self.session, Category).get(category_id)
        if not category:
            return None
        return {"label": category.label, "slug": category.slug, "color": category.color}

    def _author_snapshot(self, author_id: Optional[int]) -> Optional[Dict[str, Any]]:
        if author_id is None:
            return None
        author = SoftDeleteRepository(self.session, Author).get(author_id)
        if not author:
            return None
        avatar = codecs.author_images.parse(author.images_json).get("avatar")
        return {"name": author.name, "slug": author.slug, "avatar": best_variant_url(avatar)}

    def _tags_snapshot(self, article_id: int) -> List[Dict[str, Any]]:
        statement = (
            select(Tag)
            .join(ArticleTag, ArticleTag.tag_id == Tag.id)
            .where(ArticleTag.article_id == article_id, Tag.deleted_at.is_(None))
            .order_by(Tag.label)
        )
        return [
            {"id": tag.id, "slug": tag.slug, "label": tag.label, "color": tag.color}
            for tag in self.session.exec(statement).all()
        ]

    def _card_snapshot(self, article: Article, category, author) -> Dict[str, Any]:
        images = codecs.article_images.parse(article.images_json)
        slot = first_slot(images, ("thumbnail", "cover"))
        return {
            "slug": article.slug,
            "type": article.type,
            "headline": article.headline,
            "shortDescription": article.short_description,
            "imageUrl": best_variant_url(slot),
            "imageAlt": slot.get("alt") if slot else None,
            "categoryLabel": category["label"] if category else None,
            "categorySlug": category["slug"] if category else None,
            "authorName": author["name"] if author else None,
            "authorSlug": author["slug"] if author else None,
            "isFavorite": article.is_favorite,
            "publishedAt": article.published_at.isoformat() if article.published_at else None,
        }

    def sync_cached_fields(self, article_id: int) -> Optional[Article]:
        """Rebuild the cached author, category, tags and card snapshots of one article."""
        article = self.get_article_by_id(article_id)
        if not article:
            return None

        category = self._category_snapshot(article.category_id)
        author = self._author_snapshot(article.author_id)
        tags = self._tags_snapshot(article.id)

        article.cached_category_json = codecs.dumps(category) if category else None
        article.cached_author_json = codecs.dumps(author) if author else None
        article.cached_tags_json = codecs.dumps(tags)
        article.cached_card_json = codecs.dumps(self._card_snapshot(article, category, author))
        article.updated_at = datetime.utcnow()
        return self.repo.save(article)

    def sync_where(self, *criteria) -> int:
        """Re-sync every live article matching ``criteria``."""
        statement = select(Article.id).where(Article.deleted_at.is_(None), *criteria)
        article_ids = list(self.session.exec(statement).all())
        for article_id in article_ids:
            self.sync_cached_fields(article_id)
        if article_ids:
            logger.info("Re-synced cached fields of %d articles", len(article_ids))
        return len(article_ids)
