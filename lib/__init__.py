# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Supabase singleton and PostgREST error helpers
# - redis_client.py: Shared Redis connection
# - formatting.py: Images, currency, phone numbers, file names, tags
# - product_dedupe.py: Collapse colour variants in listings
# - size_chart.py: Parse and sanitize product size charts
# - rate_limit.py: Fixed-window limiter for public endpoints
# - user_state.py: Wishlist, recently viewed, pinned tickets, ticket notes
# - utils.py: Number parsing, timestamps, UUID normalization
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import (
    SupabaseClient,
    SupabaseClientError,
    is_not_found,
    is_unique_violation,
    missing_column,
)
from lib.formatting import (
    format_bdt,
    normalize_images,
    first_image,
    safe_like,
)
from lib.product_dedupe import dedupe_by_color_group
from lib.size_chart import parse_size_chart, sanitize_size_chart
from lib.utils import normalize_uuid, to_number, safe_int

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    "is_not_found",
    "is_unique_violation",
    "missing_column",
    # Formatting
    "format_bdt",
    "normalize_images",
    "first_image",
    "safe_like",
    # Products
    "dedupe_by_color_group",
    "parse_size_chart",
    "sanitize_size_chart",
    # Utils
    "normalize_uuid",
    "to_number",
    "safe_int",
]
