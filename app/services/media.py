import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.config import settings
from app.core.errors import AppError, ErrorCode
from app.models.media import Media
from app.services.repository import SoftDeleteRepository
from app.services.storage import ObjectStorage, StorageError
from app.transforms.codecs import dumps, load_object
from app.transforms.images import get_smallest_variant, get_variant_map, slot_urls

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "folder", "altText", "caption", "credit")


def storage_key_from_url(url: Optional[str]) -> Optional[str]:
    """``/images/uploads/a.jpg`` (or an absolute URL with that path) -> ``uploads/a.jpg``."""
    if not url or not isinstance(url, str):
        return None
    prefix = settings.IMAGES_BASE_PATH.rstrip("/") + "/"
    path = urlparse(url).path
    if not path.startswith(prefix):
        return None
    return unquote(path[len(prefix):]) or None


def public_variants(variants_json: Any) -> Dict[str, Any]:
    """Variant map without the storage keys."""
    variants = get_variant_map(load_object(variants_json))
    return {
        name: {k: v for k, v in variant.items() if k != "storageKey"}
        for name, variant in variants.items()
        if isinstance(variant, dict)
    }


def images_urls(images_json: Any) -> List[str]:
    """Every variant URL referenced by an entity's images column."""
    urls: List[str] = []
    for value in load_object(images_json).values():
        slots = value if isinstance(value, list) else [value]
        for slot in slots:
            urls.extend(slot_urls(slot))
    return urls


class MediaService:
    def __init__(self, session: Session, storage: Optional[ObjectStorage] = None):
        self.session = session
        self.storage = storage
        self.repo = SoftDeleteRepository(session, Media)

    def list_media(
        self,
        page: int = 1,
        limit: int = 24,
        search: Optional[str] = None,
        folder: Optional[str] = None,
    ) -> Tuple[List[Media], int]:
        criteria = []
        if search:
            pattern = f"%{search}%"
            criteria.append(or_(Media.name.ilike(pattern), Media.alt_text.ilike(pattern)))
        if folder:
            criteria.append(Media.folder == folder)

        items = self.repo.list(
            *criteria,
            order_by=(Media.created_at.desc(), Media.id.desc()),
            offset=(page - 1) * limit,
            limit=limit,
        )
        return items, self.repo.count(*criteria)

    def get_media(self, media_id: int) -> Optional[Media]:
        return self.repo.get(media_id)

    def require_media(self, media_id: int) -> Media:
        media = self.get_media(media_id)
        if not media:
            raise AppError(ErrorCode.NOT_FOUND, "Media not found")
        return media

    def upload(
        self,
        data: bytes,
        file_name: str,
        content_type: str,
        alt_text: Optional[str] = None,
        caption: Optional[str] = None,
        credit: Optional[str] = None,
        folder: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        uploaded_by: Optional[str] = None,
    ) -> Media:
        key = ObjectStorage.generate_key(file_name)
        self.storage.put(
            key,
            data,
            content_type=content_type,
            metadata={"originalName": file_name or "", "uploadedBy": uploaded_by or ""},
        )

        url = settings.public_image_url(key)
        variants = {
            "variants": {
                "original": {
                    "url": url,
                    "width": width or 0,
                    "height": height or 0,
                    "sizeBytes": len(data),
                    "storageKey": key,
                },
            },
        }
        try:
            return self.repo.insert({
                "name": file_name or key,
                "folder": folder,
                "mime_type": content_type,
                "alt_text": alt_text,
                "caption": caption,
                "credit": credit,
                "variants_json": dumps(variants),
                "uploaded_by": uploaded_by,
            })
        except SQLAlchemyError:
            # Row failed: don't leave an orphaned object behind
            self.session.rollback()
            self._delete_key(key)
            raise

    def update_media(self, media: Media, payload: Dict[str, Any]) -> Media:
        editable = {key: payload[key] for key in EDITABLE_FIELDS if key in payload}
        return self.repo.update(media, self.repo.to_columns(editable))

    def storage_keys(self, media: Media) -> List[str]:
        keys = []
        for variant in get_variant_map(load_object(media.variants_json)).values():
            if not isinstance(variant, dict):
                continue
            key = variant.get("storageKey") or storage_key_from_url(variant.get("url"))
            if key and key not in keys:
                keys.append(key)
        return keys

    def _delete_key(self, key: str) -> Optional[str]:
        """Delete one stored object; returns the failure message instead of raising."""
        try:
            self.storage.delete(key)
        except StorageError as e:
            logger.warning("Failed to delete stored object %s: %s", key, e)
            return str(e)
        return None

    def delete_media(self, media: Media) -> List[str]:
        """
        Delete every stored variant, then soft-delete the row.

        Each key is attempted independently; the returned list names the keys
        that could not be deleted.
        """
        failed = [key for key in self.storage_keys(media) if self._delete_key(key)]
        self.repo.soft_delete(media)
        return failed

    def delete_superseded(self, old_images_json: Any, new_images_json: Any) -> None:
        """
        Best-effort removal of images an update stopped referencing.

        Runs after the entity update has committed; failures are logged and
        never undo that update.
        """
        kept = set(images_urls(new_images_json))
        for url in images_urls(old_images_json):
            if url in kept:
                continue
            key = storage_key_from_url(url)
            if not key:
                continue
            self._delete_key(key)
            try:
                for media in self.repo.list(Media.variants_json.contains(f'"storageKey":"{key}"')):
                    self.repo.soft_delete(media)
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.warning("Failed to remove media rows for %s: %s", key, e)

    def to_api(self, media: Media) -> Dict[str, Any]:
        data = self.repo.to_api(media)
        variants = public_variants(data.pop("variantsJson", None))
        data["variants"] = variants
        smallest = get_smallest_variant(variants)
        data["thumbnailUrl"] = smallest.get("url") if smallest else None
        original = variants.get("original") or {}
        data["url"] = original.get("url")
        return data