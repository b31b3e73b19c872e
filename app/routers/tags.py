from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlmodel import Session

from app.core.errors import PUBLIC_CACHE, success_response
from app.core.security import AuthContext, require_editor
from app.db.session import get_session
from app.services.tag import TagService
from app.transforms.tags import transform_tag_request, transform_tag_response

router = APIRouter()


def get_tag_service(session: Session = Depends(get_session)) -> TagService:
    return TagService(session)


def present(service: TagService, tag) -> Optional[Dict[str, Any]]:
    return transform_tag_response(service.repo.to_api(tag))


@router.get("")
def list_tags(
    is_online: Optional[bool] = Query(None, alias="isOnline"),
    is_favorite: Optional[bool] = Query(None, alias="isFavorite"),
    service: TagService = Depends(get_tag_service),
):
    tags = service.list_tags(is_online=is_online, is_favorite=is_favorite)
    return success_response([present(service, t) for t in tags], cache_control=PUBLIC_CACHE)


@router.post("")
def create_tag(
    body: Dict[str, Any] = Body(...),
    service: TagService = Depends(get_tag_service),
    auth: AuthContext = Depends(require_editor),
):
    tag = service.create_tag(transform_tag_request(body, partial=False))
    return success_response(present(service, tag), status_code=status.HTTP_201_CREATED)


@router.get("/{slug}")
def get_tag(slug: str, service: TagService = Depends(get_tag_service)):
    tag = service.require_tag(slug)
    return success_response(present(service, tag), cache_control=PUBLIC_CACHE)


@router.put("/{slug}")
def update_tag(
    slug: str,
    body: Dict[str, Any] = Body(...),
    service: TagService = Depends(get_tag_service),
    auth: AuthContext = Depends(require_editor),
):
    tag = service.require_tag(slug)
    tag = service.update_tag(tag, transform_tag_request(body))
    return success_response(present(service, tag))


@router.delete("/{slug}")
def delete_tag(
    slug: str,
    service: TagService = Depends(get_tag_service),
    auth: AuthContext = Depends(require_editor),
):
    tag = service.require_tag(slug)
    service.delete_tag(tag)
    return success_response({"id": tag.id, "deleted": True})
