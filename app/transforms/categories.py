from typing import Any, Dict, Optional

from app.core.errors import require_fields
from app.transforms import codecs
from app.transforms.common import PRIMARY_LEGACY_KEYS, apply_images, apply_seo, expand_images, expand_seo, expansion_stage
from app.transforms.fields import merge_if_absent

REQUIRED_FIELDS = ("slug", "label", "shortDescription")

# Flat request field -> configJson key
CONFIG_OVERRIDES = {
    "numEntriesPerPage": "postsPerPage",
    "postsPerPage": "postsPerPage",
    "tldr": "tldr",
    "showInNav": "showInNav",
    "showInFooter": "showInFooter",
    "layoutMode": "layout",
    "layout": "layout",
    "cardStyle": "cardStyle",
    "showSidebar": "showSidebar",
    "showFilters": "showFilters",
    "showBreadcrumb": "showBreadcrumb",
    "showPagination": "showPagination",
    "sortBy": "sortBy",
    "sortOrder": "sortOrder",
    "headerStyle": "headerStyle",
}

# configJson key -> flat response fields
CONFIG_RESPONSE_FIELDS = {
    "postsPerPage": ("numEntriesPerPage", "postsPerPage"),
    "tldr": ("tldr",),
    "showInNav": ("showInNav",),
    "showInFooter": ("showInFooter",),
    "layout": ("layoutMode", "layout"),
    "cardStyle": ("cardStyle",),
    "showSidebar": ("showSidebar",),
    "showFilters": ("showFilters",),
    "showBreadcrumb": ("showBreadcrumb",),
    "showPagination": ("showPagination",),
    "sortBy": ("sortBy",),
    "sortOrder": ("sortOrder",),
    "headerStyle": ("headerStyle",),
}


def transform_category_request(body: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Fold an API category payload into column shape.

    Flat config fields (``numEntriesPerPage``, ``layoutMode``, ...) land in ``configJson``
    and win over a ``configJson`` sent alongside them. Legacy ``image*`` fields become the
    ``thumbnail`` slot. With ``partial`` (PUT) only the required fields present are checked.
    """
    out = dict(body)

    overrides = {}
    for flat_key, config_key in CONFIG_OVERRIDES.items():
        if flat_key in out:
            overrides[config_key] = out.pop(flat_key)

    apply_images(body, out, codecs.category_images, {"thumbnail": PRIMARY_LEGACY_KEYS})
    apply_seo(body, out)

    if "configJson" in body:
        out["configJson"] = codecs.config.patch(body["configJson"], overrides)
    elif overrides:
        out["configJson"] = codecs.config.patch(overrides)

    require_fields(out, REQUIRED_FIELDS, partial=partial)
    return out


def transform_category_response(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None

    response = dict(row)
    expand_images(response, codecs.category_images, ("thumbnail", "cover"))
    expand_seo(response)

    with expansion_stage("config"):
        config = codecs.config.parse(response.get("configJson"))
        for config_key, flat_keys in CONFIG_RESPONSE_FIELDS.items():
            for flat_key in flat_keys:
                merge_if_absent(response, flat_key, config.get(config_key))

    return response
