from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlmodel import Session

from app.core.errors import NO_CACHE, PUBLIC_CACHE, success_response
from app.core.security import AuthContext, require_editor
from app.db.session import get_session
from app.services.author import AuthorService
from app.services.storage import ObjectStorage, get_storage
from app.transforms.authors import transform_author_request, transform_author_response

router = APIRouter()


def get_author_service(
    session: Session = Depends(get_session),
    storage: ObjectStorage = Depends(get_storage),
) -> AuthorService:
    return AuthorService(session, storage)


def present(service: AuthorService, author) -> Optional[Dict[str, Any]]:
    return transform_author_response(service.repo.to_api(author))


@router.get("")
def list_authors(
    is_online: Optional[bool] = Query(None, alias="isOnline"),
    service: AuthorService = Depends(get_author_service),
):
    authors = service.list_authors(is_online=is_online)
    return success_response([present(service, a) for a in authors], cache_control=PUBLIC_CACHE)


@router.post("")
def create_author(
    body: Dict[str, Any] = Body(...),
    service: AuthorService = Depends(get_author_service),
    auth: AuthContext = Depends(require_editor),
):
    author = service.create_author(transform_author_request(body, partial=False))
    return success_response(present(service, author), status_code=status.HTTP_201_CREATED)


@router.get("/{slug_or_id}")
def get_author(slug_or_id: str, service: AuthorService = Depends(get_author_service)):
    author = service.require_author(slug_or_id)
    return success_response(present(service, author), cache_control=NO_CACHE)


@router.put("/{slug_or_id}")
def update_author(
    slug_or_id: str,
    body: Dict[str, Any] = Body(...),
    service: AuthorService = Depends(get_author_service),
    auth: AuthContext = Depends(require_editor),
):
    author = service.require_author(slug_or_id)
    author = service.update_author(author, transform_author_request(body))
    return success_response(present(service, author))


@router.delete("/{slug_or_id}")
def delete_author(
    slug_or_id: str,
    service: AuthorService = Depends(get_author_service),
    auth: AuthContext = Depends(require_editor),
):
    author = service.require_author(slug_or_id)
    service.delete_author(author)
    return success_response({"id": author.id, "deleted": True})
