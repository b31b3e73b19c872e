"""Building blocks shared by the per-entity request and response transformers."""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from app.transforms import codecs
from app.transforms.fields import drop_keys, has_any_key, merge_if_absent, present_fields
from app.transforms.images import get_best_variant

logger = logging.getLogger(__name__)

# (url, alt, width, height) keys of a flat legacy image
LegacyImageKeys = Tuple[str, str, str, str]

PRIMARY_LEGACY_KEYS: LegacyImageKeys = ("imageUrl", "imageAlt", "imageWidth", "imageHeight")
COVER_LEGACY_KEYS: LegacyImageKeys = ("coverUrl", "coverAlt", "coverWidth", "coverHeight")

SEO_FLAT_FIELDS = (
    "metaTitle",
    "metaDescription",
    "canonical",
    "canonicalUrl",
    "ogImage",
    "ogTitle",
    "ogDescription",
    "twitterCard",
    "robots",
    "noIndex",
)

# seo key -> flat response key
SEO_RESPONSE_FIELDS = (
    ("metaTitle", "metaTitle"),
    ("metaDescription", "metaDescription"),
    ("canonical", "canonicalUrl"),
    ("ogImage", "ogImage"),
    ("ogTitle", "ogTitle"),
    ("ogDescription", "ogDescription"),
    ("twitterCard", "twitterCard"),
    ("robots", "robots"),
    ("noIndex", "noIndex"),
)


def legacy_slot(body: Dict[str, Any], keys: LegacyImageKeys) -> Optional[Dict[str, Any]]:
    """Canonical slot built from flat fields; None (clear the slot) when there is no url."""
    url_key, alt_key, width_key, height_key = keys
    url = body.get(url_key)
    if not url:
        return None

    width = body.get(width_key)
    height = body.get(height_key)
    slot: Dict[str, Any] = {}
    if body.get(alt_key) is not None:
        slot["alt"] = body[alt_key]
    slot["variants"] = {
        "original": {
            "url": url,
            "width": width if width is not None else 0,
            "height": height if height is not None else 0,
        },
    }
    return slot


def apply_images(
    body: Dict[str, Any],
    out: Dict[str, Any],
    codec: codecs.JsonColumnCodec,
    legacy_slots: Dict[str, LegacyImageKeys],
) -> None:
    """Fill ``out["imagesJson"]`` from ``imagesJson`` or, failing that, flat legacy fields."""
    if "imagesJson" in body:
        out["imagesJson"] = codec.patch(body["imagesJson"])
    else:
        images = {
            slot: legacy_slot(body, keys)
            for slot, keys in legacy_slots.items()
            if has_any_key(body, keys)
        }
        if images:
            out["imagesJson"] = codec.patch(images)

    for keys in legacy_slots.values():
        drop_keys(out, keys)


def apply_seo(body: Dict[str, Any], out: Dict[str, Any]) -> None:
    # Flat SEO fields stay in ``out``; other consumers still read them
    if "seoJson" in body:
        out["seoJson"] = codecs.seo.patch(body["seoJson"])
    elif has_any_key(body, SEO_FLAT_FIELDS):
        out["seoJson"] = codecs.seo.patch(present_fields(body, SEO_FLAT_FIELDS))


def apply_json_columns(body: Dict[str, Any], out: Dict[str, Any], columns: Iterable[str]) -> None:
    for column in columns:
        if column in body:
            out[column] = codecs.serialize_json_value(body[column])


@contextmanager
def expansion_stage(name: str):
    """A malformed column only leaves its own flat fields unpopulated."""
    try:
        yield
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.debug("Skipping %s expansion: %s", name, exc)


def first_slot(images: Dict[str, Any], order: Sequence[str]) -> Optional[Dict[str, Any]]:
    for slot in order:
        value = images.get(slot)
        if value is not None:
            return value if isinstance(value, dict) else None
    return None


def expand_slot(response: Dict[str, Any], slot: Optional[Dict[str, Any]], prefix: str) -> None:
    """``{prefix}Url``, ``{prefix}Alt``, ``{prefix}Width``, ``{prefix}Height`` from a slot."""
    if not slot:
        return
    variant = get_best_variant(slot.get("variants"))
    if isinstance(variant, dict):
        merge_if_absent(response, f"{prefix}Url", variant.get("url"))
        merge_if_absent(response, f"{prefix}Width", variant.get("width"))
        merge_if_absent(response, f"{prefix}Height", variant.get("height"))
    merge_if_absent(response, f"{prefix}Alt", slot.get("alt"))


def expand_images(
    response: Dict[str, Any],
    codec: codecs.JsonColumnCodec,
    primary_order: Sequence[str],
) -> Dict[str, Any]:
    with expansion_stage("images"):
        images = codec.parse(response.get("imagesJson"))
        expand_slot(response, first_slot(images, primary_order), "image")
        return images
    return {}


def expand_seo(response: Dict[str, Any]) -> None:
    with expansion_stage("seo"):
        seo = codecs.seo.parse(response.get("seoJson"))
        for seo_key, flat_key in SEO_RESPONSE_FIELDS:
            merge_if_absent(response, flat_key, seo.get(seo_key))
