# =============================================================================
# core/models/report.py - Sales Report Schemas
# =============================================================================
# ReportFilters drives both the JSON report and the CSV export. The range is
# given as a mode plus an anchor date; weekly ranges start on Saturday.
# =============================================================================

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field


class ReportFilters(BaseModel):
    """
    Admin report query.

    Example:
        {"mode": "weekly", "anchor": "2025-01-14", "payment_method": "bkash", "sort": "highest"}
    """
    mode: Literal["daily", "weekly", "monthly"] = "daily"
    anchor: date | None = Field(default=None, description="Any date inside the range; today when omitted")
    include_non_sales: bool = Field(default=False, description="Include pending/cancelled orders")
    status: str = "all"
    payment_method: Literal["all", "cod", "bkash", "other"] = "all"
    payment_status: str = "all"
    min_total: float | None = None
    max_total: float | None = None
    search: str = ""
    sort: Literal["newest", "oldest", "highest", "lowest"] = "newest"
    use_snapshot: bool = Field(default=False, description="Monthly mode: serve the stored snapshot if present")
