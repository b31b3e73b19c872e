import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Response, UploadFile, status
from sqlmodel import Session

from app.core.errors import AppError, ErrorCode, NO_CACHE, pagination_meta, success_response
from app.core.security import AuthContext, require_editor
from app.db.session import get_session
from app.routers.params import Pagination
from app.services.media import MediaService
from app.services.storage import ObjectStorage, StorageError, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()
images_router = APIRouter()

MAX_UPLOAD_BYTES = 20 * 1024 * 1024


def get_media_service(
    session: Session = Depends(get_session),
    storage: ObjectStorage = Depends(get_storage),
) -> MediaService:
    return MediaService(session, storage)


@router.get("")
def list_media(
    pagination: Pagination = Depends(),
    search: Optional[str] = None,
    folder: Optional[str] = None,
    service: MediaService = Depends(get_media_service),
    auth: AuthContext = Depends(require_editor),
):
    items, total = service.list_media(page=pagination.page, limit=pagination.limit, search=search, folder=folder)
    return success_response(
        [service.to_api(m) for m in items],
        pagination=pagination_meta(pagination.page, pagination.limit, total),
        cache_control=NO_CACHE,
    )


@router.post("")
async def upload_media(
    file: UploadFile = File(...),
    alt_text: Optional[str] = Form(None, alias="altText"),
    caption: Optional[str] = Form(None),
    credit: Optional[str] = Form(None),
    folder: Optional[str] = Form(None),
    width: Optional[int] = Form(None),
    height: Optional[int] = Form(None),
    service: MediaService = Depends(get_media_service),
    auth: AuthContext = Depends(require_editor),
):
    """
    Store an image and record it in the media library.
    Variant generation happens elsewhere; only the original is stored here.
    """
    # Validate file type
    if not file.content_type or not file.content_type.startswith('image/'):
        raise AppError(ErrorCode.VALIDATION_ERROR, "File must be an image")

    content = await file.read()
    if not content:
        raise AppError(ErrorCode.VALIDATION_ERROR, "File is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise AppError(ErrorCode.VALIDATION_ERROR, "File is too large")

    try:
        media = service.upload(
            content,
            file.filename,
            file.content_type,
            alt_text=alt_text,
            caption=caption,
            credit=credit,
            folder=folder,
            width=width,
            height=height,
            uploaded_by=auth.user_id,
        )
    except StorageError as e:
        logger.error("Upload of %s failed: %s", file.filename, e)
        raise AppError(ErrorCode.INTERNAL_ERROR, "Failed to store image", details={"originalError": str(e)})

    return success_response(service.to_api(media), status_code=status.HTTP_201_CREATED)


@router.get("/{media_id}")
def get_media(
    media_id: int,
    service: MediaService = Depends(get_media_service),
    auth: AuthContext = Depends(require_editor),
):
    return success_response(service.to_api(service.require_media(media_id)), cache_control=NO_CACHE)


@router.put("/{media_id}")
def update_media(
    media_id: int,
    body: Dict[str, Any] = Body(...),
    service: MediaService = Depends(get_media_service),
    auth: AuthContext = Depends(require_editor),
):
    media = service.update_media(service.require_media(media_id), body)
    return success_response(service.to_api(media))


@router.delete("/{media_id}")
def delete_media(
    media_id: int,
    service: MediaService = Depends(get_media_service),
    auth: AuthContext = Depends(require_editor),
):
    media = service.require_media(media_id)
    failed = service.delete_media(media)
    data: Dict[str, Any] = {"id": media.id, "deleted": True}
    if failed:
        data["warning"] = "Some stored files could not be deleted"
        data["failedKeys"] = failed
    return success_response(data)


@images_router.get("/{key:path}")
def serve_image(key: str, storage: ObjectStorage = Depends(get_storage)):
    try:
        stored = storage.get(key)
    except StorageError as e:
        logger.error("Failed to read %s: %s", key, e)
        raise AppError(ErrorCode.INTERNAL_ERROR, "Failed to read image")
    if stored is None:
        raise AppError(ErrorCode.NOT_FOUND, "Image not found")

    headers = {"Cache-Control": "public, max-age=31536000, immutable"}
    if stored.etag:
        headers["ETag"] = stored.etag
    return Response(content=stored.body, media_type=stored.content_type, headers=headers)
