"""
Codecs for the JSON text columns.

Each column kind (images, seo, bio, config, tag style) is a ``JsonColumnCodec``:
``parse`` accepts whatever is stored or posted (JSON string, dict, None, garbage)
and returns a normalized dict; ``serialize`` returns the JSON string to store and
``patch`` the JSON merge patch an update applies over the stored object.
None of them raises. Normalization is a projection: unknown keys are dropped.
"""
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from app.transforms.images import normalize_slot

logger = logging.getLogger(__name__)


def dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def load_json_value(value: Any) -> Any:
    """Decode a JSON string, pass decoded values through; None on failure."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


def load_object(value: Any) -> Dict[str, Any]:
    if not value:
        return {}
    decoded = load_json_value(value)
    return decoded if isinstance(decoded, dict) else {}


class JsonColumnCodec:
    def __init__(
        self,
        name: str,
        normalize: Callable[[Dict[str, Any]], Dict[str, Any]],
        fields: Iterable[str] = (),
        aliases: Optional[Dict[str, Tuple[str, ...]]] = None,
    ):
        self.name = name
        self.normalize = normalize
        self.fields = tuple(fields)
        # incoming key -> the normalized fields it feeds
        self.aliases = aliases or {}

    def parse(self, stored: Any) -> Dict[str, Any]:
        return self.normalize(load_object(stored))

    def serialize(self, value: Any) -> str:
        return dumps(self.parse(value))

    def cleared_fields(self, value: Dict[str, Any]) -> List[str]:
        """Normalized fields that an explicit None in ``value`` asks to remove."""
        cleared = []
        for key, item in value.items():
            if item is not None:
                continue
            for field in self.aliases.get(key, (key,)):
                if field in self.fields and field not in cleared:
                    cleared.append(field)
        return cleared

    def patch_object(self, value: Any) -> Dict[str, Any]:
        if value is None or load_json_value(value) == {}:
            return dict.fromkeys(self.fields)
        raw = load_object(value)
        patched = self.normalize(raw)
        for field in self.cleared_fields(raw):
            patched.setdefault(field, None)
        return patched

    def patch(self, value: Any, overrides: Optional[Dict[str, Any]] = None) -> str:
        """
        Update form of ``serialize``: the result is a merge patch for the stored object.

        Explicit None values survive as None so the stored key gets removed; a null or
        empty object clears every field. ``overrides`` are patched in on top.
        """
        patched = self.patch_object(value)
        if overrides:
            patched.update(self.patch_object(overrides))
        return dumps(patched)

    def __repr__(self):
        return f"JsonColumnCodec({self.name!r})"


# Images

CATEGORY_IMAGE_SLOTS = ("thumbnail", "cover")
ARTICLE_IMAGE_SLOTS = ("cover", "thumbnail", "pinterest")
AUTHOR_IMAGE_SLOTS = ("avatar", "cover", "banner")


def images_normalizer(slots: Iterable[str], gallery: bool = False):
    slots = tuple(slots)

    def normalize(value: Dict[str, Any]) -> Dict[str, Any]:
        # Present-but-None slots survive: None is how a slot gets cleared
        images = {slot: normalize_slot(value[slot]) for slot in slots if slot in value}
        if gallery and isinstance(value.get("gallery"), list):
            images["gallery"] = [normalize_slot(item) for item in value["gallery"]]
        return images

    return normalize


category_images = JsonColumnCodec("category images", images_normalizer(CATEGORY_IMAGE_SLOTS), CATEGORY_IMAGE_SLOTS)
article_images = JsonColumnCodec(
    "article images",
    images_normalizer(ARTICLE_IMAGE_SLOTS, gallery=True),
    ARTICLE_IMAGE_SLOTS + ("gallery",),
)
author_images = JsonColumnCodec("author images", images_normalizer(AUTHOR_IMAGE_SLOTS), AUTHOR_IMAGE_SLOTS)


# SEO

SEO_FIELDS = (
    "metaTitle",
    "metaDescription",
    "noIndex",
    "canonical",
    "ogImage",
    "ogTitle",
    "ogDescription",
    "twitterCard",
    "robots",
)


def normalize_seo(value: Dict[str, Any]) -> Dict[str, Any]:
    seo = {}
    for field in SEO_FIELDS:
        item = value.get(field)
        if field == "canonical" and item is None:
            item = value.get("canonicalUrl")
        if item is not None:
            seo[field] = item
    return seo


seo = JsonColumnCodec("seo", normalize_seo, SEO_FIELDS, {"canonicalUrl": ("canonical",)})


# Author bio

def _clean_url(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def social_entries(value: Any) -> List[Dict[str, Any]]:
    """Array form ``[{network, url, label?}]`` from either the array or the map form."""
    entries = []
    if isinstance(value, list):
        for item in value:
            if not isinstance(item, dict):
                continue
            url = _clean_url(item.get("url"))
            if not item.get("network") or not url:
                continue
            entry = {"network": item["network"], "url": url}
            if item.get("label") is not None:
                entry["label"] = item["label"]
            entries.append(entry)
    elif isinstance(value, dict):
        for network, url in value.items():
            url = _clean_url(url)
            if url:
                entries.append({"network": network, "url": url})
    return entries


def social_links_map(value: Any) -> Dict[str, str]:
    """Map form ``{network: url}`` from either the map or the array form."""
    if isinstance(value, dict):
        links = {}
        for network, url in value.items():
            url = _clean_url(url)
            if url:
                links[network] = url
        return links
    return {entry["network"]: entry["url"] for entry in social_entries(value)}


def normalize_bio(value: Dict[str, Any]) -> Dict[str, Any]:
    bio: Dict[str, Any] = {}

    for field in ("headline", "subtitle"):
        if value.get(field):
            bio[field] = value[field]

    introduction = value.get("introduction")
    if introduction is None and isinstance(value.get("short"), str):
        introduction = value["short"]
    if introduction:
        bio["introduction"] = introduction

    full_bio = value.get("fullBio")
    if full_bio is None and isinstance(value.get("long"), str):
        full_bio = value["long"]
    if full_bio:
        bio["fullBio"] = full_bio

    if isinstance(value.get("expertise"), list):
        bio["expertise"] = value["expertise"]

    if isinstance(value.get("socialLinks"), dict):
        links = social_links_map(value["socialLinks"])
    else:
        links = social_links_map(value.get("socials") or value.get("socialLinks"))
    if links:
        bio["socialLinks"] = links

    socials_source = value.get("socials")
    if socials_source is None:
        socials_source = value.get("socialLinks")
    socials = social_entries(socials_source)
    if socials:
        bio["socials"] = socials

    return bio


BIO_FIELDS = ("headline", "subtitle", "introduction", "fullBio", "expertise", "socialLinks", "socials")

bio = JsonColumnCodec(
    "bio",
    normalize_bio,
    BIO_FIELDS,
    {
        "short": ("introduction",),
        "long": ("fullBio",),
        # the two social shapes mirror each other
        "socialLinks": ("socialLinks", "socials"),
        "socials": ("socialLinks", "socials"),
    },
)


# Category layout config

CONFIG_TOGGLES = ("showInNav", "showInFooter", "showSidebar", "showFilters", "showBreadcrumb", "showPagination")
CONFIG_STRINGS = ("tldr", "cardStyle", "sortBy", "sortOrder", "headerStyle")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_config(value: Dict[str, Any]) -> Dict[str, Any]:
    config: Dict[str, Any] = {}

    for key in ("postsPerPage", "numEntriesPerPage", "entriesPerPage"):
        if _is_number(value.get(key)):
            config["postsPerPage"] = value[key]
            break

    for key in CONFIG_TOGGLES:
        if isinstance(value.get(key), bool):
            config[key] = value[key]

    for key in ("layout", "layoutMode"):
        if isinstance(value.get(key), str):
            config["layout"] = value[key]
            break

    for key in CONFIG_STRINGS:
        if isinstance(value.get(key), str):
            config[key] = value[key]

    return config


CONFIG_FIELDS = ("postsPerPage", "layout") + CONFIG_TOGGLES + CONFIG_STRINGS

config = JsonColumnCodec(
    "category config",
    normalize_config,
    CONFIG_FIELDS,
    {
        "numEntriesPerPage": ("postsPerPage",),
        "entriesPerPage": ("postsPerPage",),
        "layoutMode": ("layout",),
    },
)


# Tag style

def normalize_tag_style(value: Dict[str, Any]) -> Dict[str, Any]:
    style = {}
    for key in ("svg_code", "svgCode", "icon"):
        if isinstance(value.get(key), str):
            style["svg_code"] = value[key]
            break
    for key in ("color", "variant"):
        if isinstance(value.get(key), str):
            style[key] = value[key]
    return style


tag_style = JsonColumnCodec(
    "tag style",
    normalize_tag_style,
    ("svg_code", "color", "variant"),
    {"svgCode": ("svg_code",), "icon": ("svg_code",)},
)


def serialize_json_value(value: Any) -> Optional[str]:
    """
    Loose codec for free-form columns (content blocks, recipe data, FAQs, JSON-LD).

    None clears the column; a string must already be JSON (malformed text degrades to
    ``"{}"``); anything else is encoded as is.
    """
    if value is None:
        return None
    if isinstance(value, str):
        decoded = load_json_value(value)
        if decoded is None:
            logger.debug("Dropping malformed JSON column value")
            return "{}"
        return dumps(decoded)
    return dumps(value)
