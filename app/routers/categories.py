from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlmodel import Session

from app.core.errors import NO_CACHE, PUBLIC_CACHE, success_response
from app.core.security import AuthContext, require_editor
from app.db.session import get_session
from app.services.category import CategoryService
from app.services.storage import ObjectStorage, get_storage
from app.transforms.categories import transform_category_request, transform_category_response

router = APIRouter()


def get_category_service(
    session: Session = Depends(get_session),
    storage: ObjectStorage = Depends(get_storage),
) -> CategoryService:
    return CategoryService(session, storage)


def present(service: CategoryService, category) -> Optional[Dict[str, Any]]:
    return transform_category_response(service.repo.to_api(category))


@router.get("")
def list_categories(
    is_online: Optional[bool] = Query(None, alias="isOnline"),
    parent_id: Optional[int] = Query(None, alias="parentId"),
    root_only: bool = Query(False, alias="rootOnly"),
    service: CategoryService = Depends(get_category_service),
):
    categories = service.list_categories(is_online=is_online, parent_id=parent_id, root_only=root_only)
    return success_response([present(service, c) for c in categories], cache_control=PUBLIC_CACHE)


@router.post("")
def create_category(
    body: Dict[str, Any] = Body(...),
    service: CategoryService = Depends(get_category_service),
    auth: AuthContext = Depends(require_editor),
):
    category = service.create_category(transform_category_request(body))
    return success_response(present(service, category), status_code=status.HTTP_201_CREATED)


@router.get("/{slug_or_id}")
def get_category(slug_or_id: str, service: CategoryService = Depends(get_category_service)):
    category = service.require_category(slug_or_id)
    return success_response(present(service, category), cache_control=NO_CACHE)


@router.put("/{slug_or_id}")
def update_category(
    slug_or_id: str,
    body: Dict[str, Any] = Body(...),
    service: CategoryService = Depends(get_category_service),
    auth: AuthContext = Depends(require_editor),
):
    category = service.require_category(slug_or_id)
    category = service.update_category(category, transform_category_request(body, partial=True))
    return success_response(present(service, category))


@router.delete("/{slug_or_id}")
def delete_category(
    slug_or_id: str,
    service: CategoryService = Depends(get_category_service),
    auth: AuthContext = Depends(require_editor),
):
    category = service.require_category(slug_or_id)
    service.delete_category(category)
    return success_response({"id": category.id, "deleted": True})
