from typing import Any, Dict, Optional

from app.core.errors import require_fields
from app.transforms import codecs
from app.transforms.common import PRIMARY_LEGACY_KEYS, apply_images, apply_seo, expand_images, expand_seo, expansion_stage
from app.transforms.fields import drop_keys, has_any_key, merge_if_absent, present_fields

REQUIRED_FIELDS = ("slug", "name")

# Flat bio fields: folded into bioJson on requests, expanded back out on responses
BIO_FLAT_FIELDS = codecs.BIO_FIELDS


def transform_author_request(body: Dict[str, Any], partial: bool = True) -> Dict[str, Any]:
    """Legacy ``image*`` fields become the ``avatar`` slot; flat bio fields fold into ``bioJson``."""
    out = dict(body)

    apply_images(body, out, codecs.author_images, {"avatar": PRIMARY_LEGACY_KEYS})
    apply_seo(body, out)

    if "bioJson" in body:
        out["bioJson"] = codecs.bio.patch(body["bioJson"])
    elif has_any_key(body, BIO_FLAT_FIELDS):
        out["bioJson"] = codecs.bio.patch(present_fields(body, BIO_FLAT_FIELDS))
    drop_keys(out, BIO_FLAT_FIELDS)

    require_fields(out, REQUIRED_FIELDS, partial=partial)
    return out


def transform_author_response(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None

    response = dict(row)
    expand_images(response, codecs.author_images, ("avatar",))
    expand_seo(response)

    with expansion_stage("bio"):
        bio = codecs.bio.parse(response.get("bioJson"))
        for key in BIO_FLAT_FIELDS:
            merge_if_absent(response, key, bio.get(key))

    return response
