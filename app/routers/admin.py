from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlmodel import Session

from app.core.errors import AppError, ErrorCode, NO_CACHE, pagination_meta, success_response
from app.core.security import require_editor
from app.db.session import get_session
from app.routers.articles import present
from app.routers.params import Pagination, pop_tag_ids
from app.services.article import ArticleService
from app.services.storage import ObjectStorage, get_storage
from app.transforms.articles import transform_article_request

router = APIRouter(dependencies=[Depends(require_editor)])


def get_article_service(
    session: Session = Depends(get_session),
    storage: ObjectStorage = Depends(get_storage),
) -> ArticleService:
    return ArticleService(session, storage)


def require_article_id(service: ArticleService, article_id: int):
    article = service.get_article_by_id(article_id)
    if not article:
        raise AppError(ErrorCode.NOT_FOUND, "Article not found")
    return article


@router.get("/articles")
def list_articles(
    pagination: Pagination = Depends(),
    type: Optional[str] = None,
    category_id: Optional[int] = Query(None, alias="categoryId"),
    author_id: Optional[int] = Query(None, alias="authorId"),
    is_online: Optional[bool] = Query(None, alias="isOnline"),
    search: Optional[str] = None,
    service: ArticleService = Depends(get_article_service),
):
    """Every live article, drafts included."""
    articles, total = service.list_articles(
        page=pagination.page,
        limit=pagination.limit,
        type=type,
        category_id=category_id,
        author_id=author_id,
        is_online=is_online,
        search=search,
    )
    return success_response(
        [present(service, a) for a in articles],
        pagination=pagination_meta(pagination.page, pagination.limit, total),
        cache_control=NO_CACHE,
    )


@router.get("/articles/{article_id}")
def get_article(article_id: int, service: ArticleService = Depends(get_article_service)):
    article = require_article_id(service, article_id)
    return success_response(present(service, article, with_tags=True), cache_control=NO_CACHE)


@router.put("/articles/{article_id}")
def update_article(
    article_id: int,
    body: Dict[str, Any] = Body(...),
    service: ArticleService = Depends(get_article_service),
):
    body = dict(body)
    tag_ids = pop_tag_ids(body)
    article = require_article_id(service, article_id)
    article = service.update_article(article, transform_article_request(body), tag_ids=tag_ids)
    return success_response(present(service, article, with_tags=True))


@router.patch("/articles/{article_id}")
def patch_article(
    article_id: int,
    action: str = Query(...),
    service: ArticleService = Depends(get_article_service),
):
    if action == "toggle-online":
        article = service.toggle_online(article_id)
    elif action == "toggle-favorite":
        article = service.toggle_favorite(article_id)
    else:
        raise AppError(
            ErrorCode.VALIDATION_ERROR,
            f"Unknown action: {action}",
            details={"allowed": ["toggle-online", "toggle-favorite"]},
        )
    return success_response(present(service, article, with_tags=True))


@router.delete("/articles/{article_id}")
def delete_article(article_id: int, service: ArticleService = Depends(get_article_service)):
    article = require_article_id(service, article_id)
    service.delete_article(article)
    return success_response({"id": article.id, "deleted": True})
