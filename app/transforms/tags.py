from typing import Any, Dict, Optional

from app.core.errors import require_fields
from app.transforms import codecs
from app.transforms.common import expansion_stage
from app.transforms.fields import merge_if_absent

REQUIRED_FIELDS = ("slug", "label")


def transform_tag_request(body: Dict[str, Any], partial: bool = True) -> Dict[str, Any]:
    out = dict(body)

    # Flat style fields (svgCode, icon, variant) fold into styleJson; color stays a column
    style_fields = {key: out.pop(key) for key in ("svgCode", "icon", "variant") if key in out}
    if "styleJson" in body:
        out["styleJson"] = codecs.tag_style.patch(body["styleJson"], style_fields)
    elif style_fields:
        out["styleJson"] = codecs.tag_style.patch(style_fields)

    require_fields(out, REQUIRED_FIELDS, partial=partial)
    return out


def transform_tag_response(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None

    response = dict(row)
    if response.get("slug"):
        merge_if_absent(response, "route", f"/tags/{response['slug']}")

    with expansion_stage("style"):
        style = codecs.tag_style.parse(response.get("styleJson"))
        merge_if_absent(response, "color", style.get("color"))
        merge_if_absent(response, "svgCode", style.get("svg_code"))
        merge_if_absent(response, "variant", style.get("variant"))

    return response
