"""
Request and response transformer tests
"""
import json

import pytest

from app.core.errors import AppError, ErrorCode
from app.transforms.articles import transform_article_request, transform_article_response
from app.transforms.authors import transform_author_request, transform_author_response
from app.transforms.categories import transform_category_request, transform_category_response
from app.transforms.fields import merge_if_absent
from app.transforms.tags import transform_tag_request, transform_tag_response

SOUPS = {"slug": "soups", "label": "Soups", "shortDescription": "Warm dishes"}


class TestMergeIfAbsent:
    def test_only_fills_missing(self):
        target = {"a": 1, "b": None}
        merge_if_absent(target, "a", 2)
        merge_if_absent(target, "b", 3)
        merge_if_absent(target, "c", 4)
        merge_if_absent(target, "d", None)
        assert target == {"a": 1, "b": 3, "c": 4}


class TestCategoryRequest:
    def test_empty_slug_rejected(self):
        with pytest.raises(AppError) as exc_info:
            transform_category_request({"slug": "", "label": "x", "shortDescription": "y"})
        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR
        assert "slug" in exc_info.value.message

    def test_lists_every_missing_field(self):
        with pytest.raises(AppError) as exc_info:
            transform_category_request({"label": ""})
        assert exc_info.value.details == {"missing": ["slug", "label", "shortDescription"]}
        for field in ("slug", "label", "shortDescription"):
            assert field in exc_info.value.message

    def test_partial_only_checks_present_fields(self):
        out = transform_category_request({"color": "#fff"}, partial=True)
        assert out == {"color": "#fff"}
        with pytest.raises(AppError):
            transform_category_request({"label": ""}, partial=True)

    def test_flat_config_fields(self):
        out = transform_category_request({**SOUPS, "numEntriesPerPage": 8})
        assert json.loads(out["configJson"]) == {"postsPerPage": 8}
        assert "numEntriesPerPage" not in out

    def test_overrides_win_over_config_json(self):
        out = transform_category_request({
            **SOUPS,
            "configJson": json.dumps({"postsPerPage": 20, "layout": "list", "cardStyle": "big"}),
            "numEntriesPerPage": 8,
            "layoutMode": "grid",
        })
        assert json.loads(out["configJson"]) == {"postsPerPage": 8, "layout": "grid", "cardStyle": "big"}
        assert "layoutMode" not in out

    def test_no_config_column_when_untouched(self):
        assert "configJson" not in transform_category_request(SOUPS)

    def test_legacy_image_fields_become_thumbnail(self):
        out = transform_category_request({**SOUPS, "imageUrl": "/images/soup.jpg", "imageAlt": "Soup"})
        assert json.loads(out["imagesJson"]) == {
            "thumbnail": {"alt": "Soup", "variants": {"original": {"url": "/images/soup.jpg", "width": 0, "height": 0}}},
        }
        assert not {"imageUrl", "imageAlt", "imageWidth", "imageHeight"} & set(out)

    def test_null_image_url_clears_thumbnail(self):
        out = transform_category_request({"imageUrl": None}, partial=True)
        assert json.loads(out["imagesJson"]) == {"thumbnail": None}

    def test_null_images_json_clears_every_slot(self):
        out = transform_category_request({"imagesJson": None}, partial=True)
        assert json.loads(out["imagesJson"]) == {"thumbnail": None, "cover": None}

    def test_null_config_and_seo_keys_are_kept_as_clears(self):
        out = transform_category_request(
            {"seoJson": {"noIndex": None}, "configJson": {"postsPerPage": None}, "showInNav": None},
            partial=True,
        )
        assert json.loads(out["seoJson"]) == {"noIndex": None}
        assert json.loads(out["configJson"]) == {"postsPerPage": None, "showInNav": None}

    def test_images_json_takes_precedence(self):
        out = transform_category_request({
            **SOUPS,
            "imagesJson": {"cover": {"url": "/images/cover.jpg"}},
            "imageUrl": "/images/ignored.jpg",
        })
        images = json.loads(out["imagesJson"])
        assert list(images) == ["cover"]
        assert "imageUrl" not in out

    def test_seo_from_flat_fields(self):
        out = transform_category_request({**SOUPS, "metaTitle": "Soups!", "canonicalUrl": "https://x/soups"})
        assert json.loads(out["seoJson"]) == {"metaTitle": "Soups!", "canonical": "https://x/soups"}
        # Flat fields stay for other consumers
        assert out["metaTitle"] == "Soups!"

    def test_seo_json_wins(self):
        out = transform_category_request({**SOUPS, "seoJson": '{"metaTitle": "A"}', "metaTitle": "B"})
        assert json.loads(out["seoJson"]) == {"metaTitle": "A"}

    def test_input_not_mutated(self):
        body = {**SOUPS, "numEntriesPerPage": 8, "imageUrl": "/a.jpg"}
        snapshot = dict(body)
        transform_category_request(body)
        assert body == snapshot


class TestCategoryResponse:
    def test_none_passes_through(self):
        assert transform_category_response(None) is None

    def test_expands_columns(self):
        row = {
            "slug": "soups",
            "imagesJson": json.dumps({"cover": {"alt": "Pot", "variants": {
                "md": {"url": "/images/pot-md.jpg", "width": 1200, "height": 800},
                "xs": {"url": "/images/pot-xs.jpg", "width": 360, "height": 240},
            }}}),
            "seoJson": json.dumps({"metaTitle": "Soups", "canonical": "https://x/soups", "noIndex": False}),
            "configJson": json.dumps({"postsPerPage": 8, "layout": "grid"}),
        }
        response = transform_category_response(row)
        assert response["imageUrl"] == "/images/pot-md.jpg"
        assert (response["imageWidth"], response["imageHeight"]) == (1200, 800)
        assert response["imageAlt"] == "Pot"
        assert response["canonicalUrl"] == "https://x/soups"
        assert response["noIndex"] is False
        assert response["numEntriesPerPage"] == 8
        assert response["layoutMode"] == "grid"

    def test_thumbnail_preferred_over_cover(self):
        row = {"imagesJson": json.dumps({
            "cover": {"url": "/images/cover.jpg"},
            "thumbnail": {"url": "/images/thumb.jpg"},
        })}
        assert transform_category_response(row)["imageUrl"] == "/images/thumb.jpg"

    def test_never_overwrites(self):
        row = {
            "imageUrl": "/images/explicit.jpg",
            "metaTitle": "Explicit",
            "imagesJson": json.dumps({"thumbnail": {"url": "/images/other.jpg"}}),
            "seoJson": json.dumps({"metaTitle": "Stored"}),
        }
        response = transform_category_response(row)
        assert response["imageUrl"] == "/images/explicit.jpg"
        assert response["metaTitle"] == "Explicit"

    def test_malformed_columns_degrade(self):
        row = {
            "slug": "soups",
            "imagesJson": "{broken",
            "seoJson": "[]",
            "configJson": json.dumps({"postsPerPage": 8}),
        }
        response = transform_category_response(row)
        assert "imageUrl" not in response
        assert "metaTitle" not in response
        assert response["numEntriesPerPage"] == 8

    def test_misshapen_slot_degrades(self):
        row = {"imagesJson": json.dumps({"thumbnail": {"variants": {"lg": "not-a-dict"}, "alt": "x"}})}
        response = transform_category_response(row)
        assert "imageUrl" not in response
        assert response["imageAlt"] == "x"

    def test_round_trip(self):
        body = {
            **SOUPS,
            "imageUrl": "/images/soup.jpg",
            "imageAlt": "Soup",
            "imageWidth": 800,
            "imageHeight": 600,
            "metaTitle": "Soups",
            "canonicalUrl": "https://x/soups",
            "numEntriesPerPage": 8,
            "showInNav": True,
            "layoutMode": "grid",
        }
        stored = {k: v for k, v in transform_category_request(body).items() if k not in body or k in SOUPS}
        response = transform_category_response(stored)
        for key, value in body.items():
            assert response[key] == value, key


class TestAuthorTransforms:
    def test_legacy_image_becomes_avatar(self):
        out = transform_author_request({"imageUrl": "http://x/img.jpg", "imageWidth": 100, "imageHeight": 50})
        assert json.loads(out["imagesJson"]) == {
            "avatar": {"variants": {"original": {"url": "http://x/img.jpg", "width": 100, "height": 50}}},
        }
        for key in ("imageUrl", "imageWidth", "imageHeight"):
            assert key not in out

    def test_create_requires_slug_and_name(self):
        with pytest.raises(AppError) as exc_info:
            transform_author_request({"email": "a@b.c"}, partial=False)
        assert exc_info.value.details == {"missing": ["slug", "name"]}

    def test_bio_normalized(self):
        out = transform_author_request({"bioJson": {"short": "Hi", "unknown": 1}})
        assert json.loads(out["bioJson"]) == {"introduction": "Hi"}

    def test_flat_bio_fields_fold_into_bio_json(self):
        out = transform_author_request({"slug": "a1", "name": "A", "introduction": "Hello", "headline": "Chef"})
        assert json.loads(out["bioJson"]) == {"headline": "Chef", "introduction": "Hello"}
        assert "introduction" not in out
        assert "headline" not in out
        response = transform_author_response(out)
        assert (response["introduction"], response["headline"]) == ("Hello", "Chef")

    def test_flat_bio_null_clears_only_that_key(self):
        out = transform_author_request({"subtitle": None, "expertise": ["soups"]})
        assert json.loads(out["bioJson"]) == {"expertise": ["soups"], "subtitle": None}

    def test_bio_json_wins_over_flat_fields(self):
        out = transform_author_request({"bioJson": {"headline": "A"}, "headline": "B"})
        assert json.loads(out["bioJson"]) == {"headline": "A"}
        assert "headline" not in out

    def test_round_trip(self):
        body = {
            "slug": "maya",
            "name": "Maya",
            "imageUrl": "/images/maya.jpg",
            "imageAlt": "Maya",
            "bioJson": {
                "headline": "Cook",
                "introduction": "Hello",
                "expertise": ["soups"],
                "socialLinks": {"x": "https://x.com/maya"},
            },
        }
        response = transform_author_response(transform_author_request(body))
        assert response["imageUrl"] == "/images/maya.jpg"
        assert response["imageAlt"] == "Maya"
        assert response["headline"] == "Cook"
        assert response["introduction"] == "Hello"
        assert response["expertise"] == ["soups"]
        assert response["socialLinks"] == {"x": "https://x.com/maya"}
        assert response["socials"] == [{"network": "x", "url": "https://x.com/maya"}]


class TestArticleTransforms:
    def test_cover_and_thumbnail_slots(self):
        out = transform_article_request({
            "imageUrl": "/images/thumb.jpg",
            "coverUrl": "/images/cover.jpg",
            "coverWidth": 2000,
        })
        images = json.loads(out["imagesJson"])
        assert images["thumbnail"]["variants"]["original"]["url"] == "/images/thumb.jpg"
        assert images["cover"]["variants"]["original"]["width"] == 2000
        assert "coverUrl" not in out

    def test_freeform_columns_serialized(self):
        out = transform_article_request({"recipeJson": {"servings": 4}, "faqsJson": [{"q": "?", "a": "!"}]})
        assert out["recipeJson"] == '{"servings":4}'
        assert json.loads(out["faqsJson"]) == [{"q": "?", "a": "!"}]

    def test_invalid_type(self):
        with pytest.raises(AppError) as exc_info:
            transform_article_request({"type": "poem"})
        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR

    def test_create_requires_slug_and_headline(self):
        with pytest.raises(AppError) as exc_info:
            transform_article_request({"type": "recipe"}, partial=False)
        assert exc_info.value.details == {"missing": ["slug", "headline"]}

    def test_response_flattens_snapshots(self):
        row = {
            "imagesJson": json.dumps({"cover": {"url": "/images/cover.jpg", "alt": "Cover"}}),
            "cachedCategoryJson": json.dumps({"label": "Soups", "slug": "soups", "color": "#f60"}),
            "cachedAuthorJson": json.dumps({"name": "Maya", "slug": "maya", "avatar": None}),
            "cachedTagsJson": json.dumps([{"id": 1, "slug": "quick", "label": "Quick", "color": None}]),
        }
        response = transform_article_response(row)
        assert response["imageUrl"] == "/images/cover.jpg"
        assert response["coverUrl"] == "/images/cover.jpg"
        assert response["coverAlt"] == "Cover"
        assert response["categoryLabel"] == "Soups"
        assert response["authorSlug"] == "maya"
        assert "authorAvatar" not in response
        assert response["tags"][0]["slug"] == "quick"


class TestTagTransforms:
    def test_style_fields(self):
        out = transform_tag_request({
            "slug": "quick",
            "label": "Quick",
            "styleJson": {"svg_code": "<svg id='old'/>", "variant": "pill"},
            "icon": "<svg id='new'/>",
        })
        assert json.loads(out["styleJson"]) == {"svg_code": "<svg id='new'/>", "variant": "pill"}
        assert "icon" not in out

    def test_flat_style_field_alone_patches_svg_only(self):
        out = transform_tag_request({"svgCode": "<svg id='2'/>"})
        assert json.loads(out["styleJson"]) == {"svg_code": "<svg id='2'/>"}
        assert "svgCode" not in out

    def test_response(self):
        response = transform_tag_response({
            "slug": "quick",
            "color": None,
            "styleJson": json.dumps({"svg_code": "<svg/>", "color": "#00f"}),
        })
        assert response["route"] == "/tags/quick"
        assert response["svgCode"] == "<svg/>"
        assert response["color"] == "#00f"
