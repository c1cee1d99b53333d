# =============================================================================
# tests/test_formatting.py - Display and Normalization Helper Tests
# =============================================================================
# Run with: pytest tests/test_formatting.py -v
# =============================================================================

import pytest

from lib.formatting import (
    category_accent,
    first_image,
    format_bdt,
    is_valid_bd_phone,
    normalize_bd_phone,
    normalize_images,
    parse_tags,
    phone_matches,
    safe_like,
    sanitize_attachment_name,
    sanitize_file_name,
    simple_slug,
)
from lib.utils import parse_optional_number, parse_timestamp, safe_int, to_number


class TestNormalizeImages:
    """Tests for the product images column parser."""

    def test_native_list_is_trimmed_and_deduplicated(self):
        assert normalize_images([" https://x/1.jpg", "https://x/1.jpg", "", None, "https://x/2.jpg"]) == [
            "https://x/1.jpg",
            "https://x/2.jpg",
        ]

    def test_json_array_string(self):
        assert normalize_images('["https://x/1.jpg", " https://x/2.jpg "]') == [
            "https://x/1.jpg",
            "https://x/2.jpg",
        ]

    def test_comma_separated_string(self):
        assert normalize_images("https://x/1.jpg, https://x/2.jpg") == [
            "https://x/1.jpg",
            "https://x/2.jpg",
        ]

    def test_single_url_string(self):
        assert normalize_images("https://x/1.jpg") == ["https://x/1.jpg"]

    def test_garbage_gives_empty_list(self):
        assert normalize_images("not an image") == []
        assert normalize_images(None) == []
        assert normalize_images(42) == []

    def test_first_image(self):
        assert first_image('["https://x/a.jpg","https://x/b.jpg"]') == "https://x/a.jpg"
        assert first_image([]) is None


class TestFormatBdt:
    """Tests for Taka formatting."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            (0, "৳0"),
            (None, "৳0"),
            (1234.5, "৳1,235"),
            ("1200.00", "৳1,200"),
            (999.49, "৳999"),
        ],
    )
    def test_format(self, amount, expected):
        assert format_bdt(amount) == expected


class TestPhoneHelpers:
    """Tests for Bangladeshi phone normalization and matching."""

    def test_country_prefix_is_mapped_to_zero(self):
        assert normalize_bd_phone("+880 1712-345678") == "01712345678"

    def test_valid_and_invalid_numbers(self):
        assert is_valid_bd_phone("01712345678")
        assert is_valid_bd_phone("+8801712345678")
        assert not is_valid_bd_phone("1712345678")
        assert not is_valid_bd_phone("0171234")

    def test_phone_matches_across_formats(self):
        assert phone_matches("+8801712345678", "01712345678")
        assert phone_matches("1712345678", "01712345678")
        assert not phone_matches("01712345678", "01812345678")
        assert not phone_matches("", "01712345678")


class TestTextHelpers:
    """Tests for slugs, file names, tags and ilike escaping."""

    def test_safe_like_escapes_wildcards(self):
        assert safe_like("50%_off") == r"50\%\_off"

    def test_sanitize_file_name(self):
        assert sanitize_file_name("My Photo (1).JPG") == "my-photo-1.jpg"
        assert sanitize_file_name("noext") == "noext"
        assert sanitize_file_name("???.png") == "image.png"

    def test_sanitize_attachment_name_is_capped(self):
        name = sanitize_attachment_name("receipt copy #2.pdf")
        assert name == "receipt_copy_2.pdf"
        assert len(sanitize_attachment_name("a" * 200)) == 80

    def test_simple_slug(self):
        assert simple_slug(" Sky Blue ") == "sky-blue"

    def test_parse_tags(self):
        assert parse_tags("vip, refund ,,") == ["vip", "refund"]
        assert parse_tags(["a", " ", "b"]) == ["a", "b"]
        assert parse_tags(None) == []


class TestCategoryAccent:
    """Tests for deterministic category colours."""

    def test_same_seed_same_colours(self):
        assert category_accent("Gadgets") == category_accent("Gadgets")

    def test_hue_is_in_range(self):
        border = category_accent("Home & Living")["border"]
        hue = int(border[len("hsl("):].split()[0])
        assert 0 <= hue < 360

    def test_none_seed_uses_default(self):
        assert category_accent(None) == category_accent("category")


class TestNumberUtils:
    """Tests for lenient number parsing."""

    def test_to_number(self):
        assert to_number("1200.50") == 1200.5
        assert to_number("") == 0.0
        assert to_number(None, default=5) == 5
        assert to_number(float("nan")) == 0.0
        assert to_number(True) == 0.0

    def test_safe_int_floors_and_clamps(self):
        assert safe_int("3.9") == 3
        assert safe_int(-2) == 0

    def test_parse_optional_number(self):
        assert parse_optional_number("  ") is None
        assert parse_optional_number("12.5") == 12.5
        with pytest.raises(ValueError):
            parse_optional_number("abc")
        with pytest.raises(ValueError):
            parse_optional_number("inf")

    def test_parse_timestamp(self):
        parsed = parse_timestamp("2025-03-01T10:00:00Z")
        assert parsed.tzinfo is not None
        assert parsed.hour == 10
        assert parse_timestamp("yesterday") is None
