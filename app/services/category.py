import logging
from typing import Any, Dict, List, Optional, Set

from sqlmodel import Session

from app.core.errors import AppError, ErrorCode, require_fields
from app.models.article import Article
from app.models.category import Category
from app.services.article import ArticleService
from app.services.media import MediaService
from app.services.repository import SoftDeleteRepository
from app.transforms.categories import REQUIRED_FIELDS

logger = logging.getLogger(__name__)

MERGED_JSON_COLUMNS = ("images_json", "seo_json", "config_json")


class CategoryService:
    def __init__(self, session: Session, storage=None):
        self.session = session
        self.storage = storage
        self.repo = SoftDeleteRepository(session, Category)

    def list_categories(
        self,
        is_online: Optional[bool] = None,
        parent_id: Optional[int] = None,
        root_only: bool = False,
    ) -> List[Category]:
        criteria = []
        if is_online is not None:
            criteria.append(Category.is_online == is_online)
        if root_only:
            criteria.append(Category.parent_id.is_(None))
        elif parent_id is not None:
            criteria.append(Category.parent_id == parent_id)
        return self.repo.list(*criteria, order_by=(Category.sort_order, Category.label))

    def get_category(self, slug_or_id: str) -> Optional[Category]:
        return self.repo.get_by_slug_or_id(slug_or_id)

    def require_category(self, slug_or_id: str) -> Category:
        category = self.get_category(slug_or_id)
        if not category:
            raise AppError(ErrorCode.NOT_FOUND, "Category not found")
        return category

    def compute_depth(self, parent_id: Optional[int]) -> int:
        """``parent.depth + 1``; 0 for a root or a parent that no longer exists."""
        if parent_id is None:
            return 0
        parent = self.repo.get(parent_id)
        if not parent:
            return 0
        return parent.depth + 1

    def create_category(self, payload: Dict[str, Any]) -> Category:
        require_fields(payload, REQUIRED_FIELDS)
        columns = self.repo.to_columns(payload, exclude=("depth", "cached_post_count"))
        if self.repo.slug_taken(columns["slug"]):
            raise AppError(ErrorCode.VALIDATION_ERROR, f"A category with slug '{columns['slug']}' already exists")

        columns["depth"] = self.compute_depth(columns.get("parent_id"))
        self.repo.merge_json_columns(None, columns, MERGED_JSON_COLUMNS)
        return self.repo.insert(columns)

    def update_category(self, category: Category, payload: Dict[str, Any]) -> Category:
        columns = self.repo.to_columns(payload, exclude=("depth", "cached_post_count"))
        if "slug" in columns and self.repo.slug_taken(columns["slug"], exclude_id=category.id):
            raise AppError(ErrorCode.VALIDATION_ERROR, f"A category with slug '{columns['slug']}' already exists")

        depth_changed = False
        if "parent_id" in columns:
            parent_id = columns["parent_id"]
            if parent_id is not None and parent_id in self._subtree_ids(category.id):
                raise AppError(ErrorCode.VALIDATION_ERROR, "A category cannot be nested under itself")
            columns["depth"] = self.compute_depth(parent_id)
            depth_changed = columns["depth"] != category.depth

        old_images = category.images_json
        self.repo.merge_json_columns(category, columns, MERGED_JSON_COLUMNS)
        category = self.repo.update(category, columns)

        if depth_changed:
            self._refresh_child_depths(category)
        ArticleService(self.session).sync_where(Article.category_id == category.id)

        if "images_json" in columns and self.storage is not None:
            MediaService(self.session, self.storage).delete_superseded(old_images, category.images_json)
        return category

    def delete_category(self, category: Category) -> bool:
        deleted = self.repo.soft_delete(category)
        if deleted:
            ArticleService(self.session).sync_where(Article.category_id == category.id)
        return deleted

    def _children(self, category_id: int) -> List[Category]:
        return self.repo.list(Category.parent_id == category_id)

    def _subtree_ids(self, category_id: int) -> Set[int]:
        seen: Set[int] = set()
        pending = [category_id]
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            pending.extend(child.id for child in self._children(current))
        return seen

    def _refresh_child_depths(self, category: Category) -> None:
        pending = [category]
        seen = {category.id}
        while pending:
            parent = pending.pop()
            for child in self._children(parent.id):
                if child.id in seen:
                    continue
                seen.add(child.id)
                if child.depth != parent.depth + 1:
                    child = self.repo.update(child, {"depth": parent.depth + 1})
                pending.append(child)
