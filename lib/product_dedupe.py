# =============================================================================
# lib/product_dedupe.py - Colour Variant De-duplication
# =============================================================================
# Each colour of a product is its own row in `products`; variants of one
# product share a `color_group_id`. Listings (homepage, search, wishlist)
# must show one card per product, so rows are collapsed by group key.
#
# Key priority:
#   1. gid:<color_group_id>   (when set and not just the row's own id)
#   2. name:<name minus colour suffix>
#   3. slug:<slug minus -colour-slug>
#   4. id:<id>
#
# Usage:
#   from lib.product_dedupe import dedupe_by_color_group
#   cards = dedupe_by_color_group(rows)
# =============================================================================

import re
from typing import Any, Iterable

from lib.formatting import simple_slug

_DASHES = "-–—"


def _norm_lower(value: Any) -> str:
    return str(value if value is not None else "").strip().lower()


def is_base_variant(product: dict[str, Any]) -> bool:
    """The base row of a colour group has no colour name."""
    return not str(product.get("color_name") or "").strip()


def strip_color_suffix(name: str, color_name: str | None) -> str:
    """
    Remove a trailing colour from a product name.

    Handles "Shirt - Red", "Shirt – Red", "Shirt (Red)" and "Shirt [Red]".
    Returns the original name if stripping would leave nothing.
    """
    original = (name or "").strip()
    if not original:
        return ""

    color = (color_name or "").strip()
    if not color:
        return original

    escaped = re.escape(color)
    dash_pattern = re.compile(rf"\s*[{_DASHES}]\s*{escaped}\s*$", re.IGNORECASE)

    stripped = dash_pattern.sub("", original)
    stripped = re.sub(rf"\s*\({escaped}\)\s*$", "", stripped, flags=re.IGNORECASE)
    stripped = re.sub(rf"\s*\[{escaped}\]\s*$", "", stripped, flags=re.IGNORECASE).strip()

    # "Shirt - Red - Red" happens with copy-pasted names
    stripped = dash_pattern.sub("", stripped).strip()

    return stripped or original


def color_group_key(product: dict[str, Any]) -> str:
    """Grouping key for a product row (see module header for priority)."""
    gid = str(product.get("color_group_id") or "").strip()
    row_id = str(product.get("id") or "").strip()

    # Backfilled rows point color_group_id at themselves, which groups nothing
    if gid and gid != row_id:
        return f"gid:{gid}"

    base_name = strip_color_suffix(str(product.get("name") or ""), product.get("color_name"))
    name_key = _norm_lower(base_name)
    if name_key:
        return f"name:{name_key}"

    slug = str(product.get("slug") or "").strip()
    if slug:
        color_slug = simple_slug(str(product.get("color_name") or ""))
        if color_slug and slug.lower().endswith(f"-{color_slug}"):
            slug = slug[: -(len(color_slug) + 1)]
        slug_key = _norm_lower(slug)
        if slug_key:
            return f"slug:{slug_key}"

    return f"id:{product.get('id')}"


def dedupe_by_color_group(products: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Collapse colour variants so each product appears once.

    First-seen order is kept. When a group is represented by a colour
    variant and its base row shows up later, the base row takes its place.

    Args:
        products: Product rows (must include id; color_group_id, name,
            slug and color_name improve grouping)

    Returns:
        One row per group, in order of first appearance

    Example:
        dedupe_by_color_group([
            {"id": "2", "color_group_id": "g1", "color_name": "Red"},
            {"id": "3", "color_group_id": "g1", "color_name": None},
        ])
        # -> [{"id": "3", ...}]   (base replaces the red variant)
    """
    chosen: dict[str, dict[str, Any]] = {}

    for product in products or []:
        key = color_group_key(product)
        existing = chosen.get(key)
        if existing is None:
            chosen[key] = product
        elif is_base_variant(product) and not is_base_variant(existing):
            chosen[key] = product

    return list(chosen.values())
