# =============================================================================
# lib/formatting.py - Display and Normalization Helpers
# =============================================================================
# Pure functions applied to rows that have already been fetched:
# - Product image lists (stored as JSON arrays, JSON strings or CSV strings)
# - Taka currency formatting
# - Search-term escaping for ilike filters
# - Storage-safe file names
# - Bangladeshi phone numbers
# - Deterministic category accent colours
#
# None of these touch the database.
# =============================================================================

import json
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from lib.utils import to_number

CURRENCY_SYMBOL = "৳"

_BD_PHONE_RE = re.compile(r"^01\d{9}$")


# =============================================================================
# Images
# =============================================================================

def normalize_images(images: Any) -> list[str]:
    """
    Normalize a product `images` value into a clean list of URLs.

    Accepts a native list, a JSON-array string ('["a","b"]'), a
    comma-separated string ("a, b") or a single URL string. Entries are
    trimmed, blanks dropped and duplicates removed (first occurrence wins).

    Args:
        images: Raw value from the products.images column or a form field

    Returns:
        List of image URL strings (possibly empty)

    Example:
        normalize_images('["https://x/1.jpg", " https://x/1.jpg ", ""]')
        # -> ["https://x/1.jpg"]
    """
    if not images:
        return []

    items: list[Any] = []

    if isinstance(images, (list, tuple)):
        items = list(images)
    elif isinstance(images, str):
        text = images.strip()
        parsed = None
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = None
        if isinstance(parsed, list):
            items = parsed
        elif "," in text:
            items = text.split(",")
        elif text.startswith("http"):
            items = [text]
    else:
        return []

    result: list[str] = []
    seen: set[str] = set()
    for item in items:
        if item is None:
            continue
        url = str(item).strip()
        if url and url not in seen:
            seen.add(url)
            result.append(url)
    return result


def first_image(images: Any) -> str | None:
    """First image URL of a product, or None."""
    urls = normalize_images(images)
    return urls[0] if urls else None


# =============================================================================
# Currency
# =============================================================================

def format_bdt(amount: Any) -> str:
    """
    Format an amount as Bangladeshi Taka with no decimal places.

    Halves round away from zero (1.5 -> 2) to match the storefront.

    Example:
        format_bdt(1234.5)  # "৳1,235"
        format_bdt(None)    # "৳0"
    """
    value = Decimal(str(to_number(amount))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{CURRENCY_SYMBOL}{int(value):,}"


# =============================================================================
# Query Helpers
# =============================================================================

def safe_like(term: str) -> str:
    """Escape ilike wildcards so user input matches literally."""
    return term.replace("%", r"\%").replace("_", r"\_")


# =============================================================================
# File Names and Slugs
# =============================================================================

def sanitize_file_name(name: str) -> str:
    """
    Make an uploaded image name safe for a storage path.

    Example:
        sanitize_file_name("My Photo (1).JPG")  # "my-photo-1.jpg"
    """
    base, dot, ext = (name or "").rpartition(".")
    if not dot:
        base, ext = ext, ""

    safe = re.sub(r"[^a-z0-9\-_]+", "-", base.lower())
    safe = re.sub(r"-+", "-", safe).strip("-") or "image"
    ext = re.sub(r"[^a-z0-9]", "", ext.lower())
    return f"{safe}.{ext}" if ext else safe


def sanitize_attachment_name(name: str) -> str:
    """Support attachment names: word chars, dots and dashes only, max 80 chars."""
    return re.sub(r"[^\w.\-]+", "_", name or "file")[:80]


def simple_slug(text: str) -> str:
    """Lower-case, dash-separated slug ("Sky Blue" -> "sky-blue")."""
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").strip().lower())
    return slug.strip("-")


# =============================================================================
# Phone Numbers
# =============================================================================

def normalize_bd_phone(raw: Any) -> str:
    """
    Normalize a Bangladeshi mobile number to the local 11-digit form.

    Strips everything but digits and maps the 880 country prefix to 0.

    Example:
        normalize_bd_phone("+880 1712-345678")  # "01712345678"
    """
    digits = re.sub(r"\D", "", str(raw or ""))
    if digits.startswith("880"):
        digits = "0" + digits[3:]
    if digits.startswith("01"):
        digits = digits[:11]
    return digits


def is_valid_bd_phone(raw: Any) -> bool:
    """True for 01XXXXXXXXX after normalization."""
    return bool(_BD_PHONE_RE.match(normalize_bd_phone(raw)))


def phone_matches(given: Any, stored: Any) -> bool:
    """
    Compare two phone numbers digit-wise.

    Matches on exact digits, or on the last 11 or last 10 digits so that
    "+8801712345678", "01712345678" and "1712345678" are the same number.
    """
    a = re.sub(r"\D", "", str(given or ""))
    b = re.sub(r"\D", "", str(stored or ""))
    if not a or not b:
        return False
    if a == b:
        return True
    if len(a) >= 11 and len(b) >= 11 and a[-11:] == b[-11:]:
        return True
    return len(a) >= 10 and len(b) >= 10 and a[-10:] == b[-10:]


# =============================================================================
# Tags
# =============================================================================

def parse_tags(value: Any) -> list[str]:
    """Tags column as a list; accepts a list or a comma-separated string."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = str(value).split(",")
    return [str(t).strip() for t in items if str(t).strip()]


# =============================================================================
# Category Colours
# =============================================================================

def _hash_string(text: str) -> int:
    # 32-bit signed rolling hash over UTF-16 code units
    h = 0
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def category_accent(seed: Any) -> dict[str, str]:
    """
    Deterministic accent colours for a category chip.

    Returns:
        Dict with CSS `border`, `background` and `shadow` values

    Example:
        category_accent("Gadgets")["border"]  # "hsl(<hue> 78% 45%)"
    """
    hue = _hash_string(str(seed if seed is not None else "category")) % 360
    return {
        "border": f"hsl({hue} 78% 45%)",
        "background": f"hsl({hue} 85% 96%)",
        "shadow": f"0 0 0 4px hsla({hue}, 78%, 45%, 0.14)",
    }
