# =============================================================================
# tests/test_product_dedupe.py - Colour Variant De-duplication Tests
# =============================================================================
# Run with: pytest tests/test_product_dedupe.py -v
# =============================================================================

from lib.product_dedupe import (
    color_group_key,
    dedupe_by_color_group,
    is_base_variant,
    strip_color_suffix,
)


class TestStripColorSuffix:
    """Tests for removing a trailing colour from product names."""

    def test_dash_variants(self):
        assert strip_color_suffix("Shirt - Red", "Red") == "Shirt"
        assert strip_color_suffix("Shirt – red", "Red") == "Shirt"

    def test_bracketed_variants(self):
        assert strip_color_suffix("Shirt (Red)", "Red") == "Shirt"
        assert strip_color_suffix("Shirt [Red]", "Red") == "Shirt"

    def test_doubled_suffix(self):
        assert strip_color_suffix("Shirt - Red - Red", "Red") == "Shirt"

    def test_keeps_original_when_nothing_left(self):
        assert strip_color_suffix("Red", "Red") == "Red"

    def test_no_colour(self):
        assert strip_color_suffix("Shirt - Red", None) == "Shirt - Red"


class TestColorGroupKey:
    """Tests for grouping key priority."""

    def test_group_id_wins(self):
        assert color_group_key({"id": "1", "color_group_id": "g1", "name": "X"}) == "gid:g1"

    def test_self_referencing_group_falls_back_to_name(self):
        key = color_group_key({"id": "1", "color_group_id": "1", "name": "Polo - Blue", "color_name": "Blue"})
        assert key == "name:polo"

    def test_slug_fallback_strips_colour_slug(self):
        key = color_group_key({"id": "1", "name": "", "slug": "polo-sky-blue", "color_name": "Sky Blue"})
        assert key == "slug:polo"

    def test_id_fallback(self):
        assert color_group_key({"id": "42"}) == "id:42"


class TestDedupeByColorGroup:
    """Tests for collapsing colour variants in listings."""

    def test_base_row_replaces_variant_in_place(self, sample_products):
        result = dedupe_by_color_group(sample_products)
        assert [p["id"] for p in result] == ["p-base", "p-mug"]

    def test_first_variant_kept_without_base(self):
        rows = [
            {"id": "a", "color_group_id": "g", "color_name": "Red"},
            {"id": "b", "color_group_id": "g", "color_name": "Blue"},
        ]
        assert [p["id"] for p in dedupe_by_color_group(rows)] == ["a"]

    def test_is_base_variant(self):
        assert is_base_variant({"color_name": "  "})
        assert not is_base_variant({"color_name": "Red"})

    def test_empty_input(self):
        assert dedupe_by_color_group([]) == []
        assert dedupe_by_color_group(None) == []
