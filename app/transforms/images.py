"""
Image slot shapes and variant selection.

A slot (avatar, cover, thumbnail, ...) arrives in one of two shapes:

    legacy     {"url": ..., "alt": ..., "width": ..., "height": ...}
    canonical  {"alt": ..., "variants": {"original": {...}, "xs": {...}, ...}}

``normalize_slot`` turns a legacy slot into a canonical one and leaves anything
else untouched. It never raises and is idempotent.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, TypedDict


class ImageVariant(TypedDict, total=False):
    url: str
    width: int
    height: int
    sizeBytes: int


class ImageVariants(TypedDict, total=False):
    xs: ImageVariant  # 360px
    sm: ImageVariant  # 720px
    md: ImageVariant  # 1200px
    lg: ImageVariant  # 2048px
    original: ImageVariant


class LegacyImageSlot(TypedDict, total=False):
    url: str
    alt: str
    width: int
    height: int


class CanonicalImageSlot(TypedDict, total=False):
    alt: str
    caption: str
    credit: str
    placeholder: str
    media_id: int
    variants: ImageVariants


class SlotKind(str, Enum):
    CANONICAL = "canonical"
    LEGACY = "legacy"
    OPAQUE = "opaque"  # falsy, non-dict, or a dict with neither variants nor url


# Largest first: what a full-width display should use
BEST_VARIANT_ORDER = ("lg", "md", "sm", "original", "xs")
# Smallest first: thumbnails and avatars
SMALLEST_VARIANT_ORDER = ("xs", "sm", "md", "lg", "original")
SRCSET_ORDER = ("xs", "sm", "md", "lg")


def slot_kind(raw: Any) -> SlotKind:
    if not raw or not isinstance(raw, dict):
        return SlotKind.OPAQUE
    if isinstance(raw.get("variants"), dict):
        return SlotKind.CANONICAL
    if raw.get("url"):
        return SlotKind.LEGACY
    return SlotKind.OPAQUE


def _from_legacy(slot: LegacyImageSlot) -> CanonicalImageSlot:
    width = slot.get("width")
    height = slot.get("height")
    return {
        **slot,
        "variants": {
            "original": {
                "url": slot["url"],
                "width": width if width is not None else 0,
                "height": height if height is not None else 0,
            },
        },
    }


def normalize_slot(raw: Any) -> Any:
    kind = slot_kind(raw)
    if kind is SlotKind.LEGACY:
        return _from_legacy(raw)
    # CANONICAL is already in shape; OPAQUE passes through untouched
    return raw


def get_variant_map(value: Any) -> ImageVariants:
    """Accept a variants map, a slot, or a media ``{"variants": {...}}`` record."""
    if not isinstance(value, dict):
        return {}
    if isinstance(value.get("variants"), dict):
        return value["variants"]
    return value


def _first_present(variants: Any, order) -> Optional[ImageVariant]:
    if not isinstance(variants, dict):
        return None
    for name in order:
        variant = variants.get(name)
        if variant is not None:
            return variant
    return None


def get_best_variant(variants: Any) -> Optional[ImageVariant]:
    return _first_present(variants, BEST_VARIANT_ORDER)


def get_smallest_variant(variants: Any) -> Optional[ImageVariant]:
    return _first_present(get_variant_map(variants), SMALLEST_VARIANT_ORDER)


def best_variant_url(slot: Any) -> Optional[str]:
    if not isinstance(slot, dict):
        return None
    variant = get_best_variant(slot.get("variants"))
    if isinstance(variant, dict):
        return variant.get("url")
    return None


def slot_urls(slot: Any) -> List[str]:
    """Every variant URL a slot points at."""
    if not isinstance(slot, dict):
        return []
    urls = []
    for variant in get_variant_map(normalize_slot(slot)).values():
        if isinstance(variant, dict) and variant.get("url"):
            urls.append(variant["url"])
    return urls


def get_srcset(slot: Any) -> str:
    if not isinstance(slot, dict):
        return ""
    variants = get_variant_map(slot)
    entries = []
    for name in SRCSET_ORDER:
        variant = variants.get(name)
        if isinstance(variant, dict) and variant.get("url"):
            entries.append(f"{variant['url']} {variant.get('width', 0)}w")
    return ", ".join(entries)


def pick_variant_by_width(variants: Any, target_width: int, retina_multiplier: int = 2) -> Optional[ImageVariant]:
    """Smallest variant at least ``target_width * retina_multiplier`` wide, else the largest."""
    variant_map = get_variant_map(variants)
    candidates: List[Dict[str, Any]] = [
        variant_map[name] for name in SMALLEST_VARIANT_ORDER
        if isinstance(variant_map.get(name), dict)
    ]
    if not candidates:
        return None

    candidates.sort(key=lambda v: v.get("width") or 0)
    effective_width = target_width * retina_multiplier
    for variant in candidates:
        if (variant.get("width") or 0) >= effective_width:
            return variant
    return candidates[-1]
