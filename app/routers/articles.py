from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlmodel import Session

from app.core.errors import AppError, ErrorCode, PUBLIC_CACHE, pagination_meta, success_response
from app.core.security import AuthContext, require_editor
from app.db.session import get_session
from app.models.article import Article
from app.routers.params import Pagination, pop_tag_ids
from app.services.article import ArticleService
from app.services.storage import ObjectStorage, get_storage
from app.transforms.articles import transform_article_request, transform_article_response

router = APIRouter()


def get_article_service(
    session: Session = Depends(get_session),
    storage: ObjectStorage = Depends(get_storage),
) -> ArticleService:
    return ArticleService(session, storage)


def present(service: ArticleService, article: Article, with_tags: bool = False) -> Optional[Dict[str, Any]]:
    data = transform_article_response(service.repo.to_api(article))
    if data is not None and with_tags:
        data["tagIds"] = service.tag_ids(article.id)
    return data


@router.get("")
def list_articles(
    pagination: Pagination = Depends(),
    type: Optional[str] = None,
    category_id: Optional[int] = Query(None, alias="categoryId"),
    author_id: Optional[int] = Query(None, alias="authorId"),
    category: Optional[str] = None,
    author: Optional[str] = None,
    tag: Optional[str] = None,
    search: Optional[str] = None,
    service: ArticleService = Depends(get_article_service),
):
    """Published articles, newest first."""
    articles, total = service.list_articles(
        page=pagination.page,
        limit=pagination.limit,
        type=type,
        category_id=category_id,
        author_id=author_id,
        category_slug=category,
        author_slug=author,
        tag_slug=tag,
        is_online=True,
        search=search,
    )
    return success_response(
        [present(service, a) for a in articles],
        pagination=pagination_meta(pagination.page, pagination.limit, total),
        cache_control=PUBLIC_CACHE,
    )


@router.post("")
def create_article(
    body: Dict[str, Any] = Body(...),
    service: ArticleService = Depends(get_article_service),
    auth: AuthContext = Depends(require_editor),
):
    body = dict(body)
    tag_ids = pop_tag_ids(body)
    article = service.create_article(transform_article_request(body, partial=False), tag_ids=tag_ids)
    return success_response(present(service, article, with_tags=True), status_code=status.HTTP_201_CREATED)


@router.get("/{slug}")
def get_article(
    slug: str,
    type: Optional[str] = None,
    service: ArticleService = Depends(get_article_service),
):
    article = service.get_article(slug, type=type)
    if not article or not article.is_online:
        raise AppError(ErrorCode.NOT_FOUND, "Article not found")
    return success_response(present(service, article), cache_control=PUBLIC_CACHE)


@router.put("/{slug}")
def update_article(
    slug: str,
    body: Dict[str, Any] = Body(...),
    service: ArticleService = Depends(get_article_service),
    auth: AuthContext = Depends(require_editor),
):
    body = dict(body)
    tag_ids = pop_tag_ids(body)
    article = service.require_article(slug)
    article = service.update_article(article, transform_article_request(body), tag_ids=tag_ids)
    return success_response(present(service, article, with_tags=True))


@router.delete("/{slug}")
def delete_article(
    slug: str,
    service: ArticleService = Depends(get_article_service),
    auth: AuthContext = Depends(require_editor),
):
    article = service.require_article(slug)
    service.delete_article(article)
    return success_response({"id": article.id, "deleted": True})


@router.post("/{slug}/view")
def record_view(slug: str, service: ArticleService = Depends(get_article_service)):
    if not service.increment_view_count(slug):
        raise AppError(ErrorCode.NOT_FOUND, "Article not found")
    return success_response({"slug": slug})
