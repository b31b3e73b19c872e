from typing import Any, Dict, Optional

from app.core.errors import AppError, ErrorCode, require_fields
from app.transforms import codecs
from app.transforms.common import (
    COVER_LEGACY_KEYS,
    PRIMARY_LEGACY_KEYS,
    apply_images,
    apply_json_columns,
    apply_seo,
    expand_images,
    expand_seo,
    expand_slot,
    expansion_stage,
)
from app.transforms.fields import merge_if_absent

REQUIRED_FIELDS = ("slug", "headline")
ARTICLE_TYPES = ("recipe", "article", "roundup")

FREEFORM_JSON_COLUMNS = (
    "contentJson",
    "recipeJson",
    "roundupJson",
    "faqsJson",
    "configJson",
    "jsonldJson",
    "cachedCardJson",
    "cachedAuthorJson",
    "cachedCategoryJson",
    "cachedTagsJson",
)

# snapshot key -> flat response key
CACHED_CATEGORY_FIELDS = (("label", "categoryLabel"), ("slug", "categorySlug"), ("color", "categoryColor"))
CACHED_AUTHOR_FIELDS = (("name", "authorName"), ("slug", "authorSlug"), ("avatar", "authorAvatar"))


def transform_article_request(body: Dict[str, Any], partial: bool = True) -> Dict[str, Any]:
    """
    ``image*`` fields become the ``thumbnail`` slot and ``cover*`` fields the ``cover`` slot;
    every other JSON column is stored as a JSON string.
    """
    out = dict(body)

    apply_images(
        body,
        out,
        codecs.article_images,
        {"thumbnail": PRIMARY_LEGACY_KEYS, "cover": COVER_LEGACY_KEYS},
    )
    apply_seo(body, out)
    apply_json_columns(body, out, FREEFORM_JSON_COLUMNS)

    if "type" in out and out["type"] not in ARTICLE_TYPES:
        raise AppError(
            ErrorCode.VALIDATION_ERROR,
            f"Invalid article type: {out['type']}",
            details={"allowed": list(ARTICLE_TYPES)},
        )

    require_fields(out, REQUIRED_FIELDS, partial=partial)
    return out


def transform_article_response(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None

    response = dict(row)
    images = expand_images(response, codecs.article_images, ("thumbnail", "cover"))
    with expansion_stage("cover"):
        cover = images.get("cover")
        expand_slot(response, cover if isinstance(cover, dict) else None, "cover")
    expand_seo(response)

    with expansion_stage("cached category"):
        category = codecs.load_object(response.get("cachedCategoryJson"))
        for key, flat_key in CACHED_CATEGORY_FIELDS:
            merge_if_absent(response, flat_key, category.get(key))

    with expansion_stage("cached author"):
        author = codecs.load_object(response.get("cachedAuthorJson"))
        for key, flat_key in CACHED_AUTHOR_FIELDS:
            merge_if_absent(response, flat_key, author.get(key))

    with expansion_stage("cached tags"):
        tags = codecs.load_json_value(response.get("cachedTagsJson"))
        if isinstance(tags, list):
            merge_if_absent(response, "tags", tags)

    return response
