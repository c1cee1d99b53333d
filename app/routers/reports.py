# =============================================================================
# app/routers/reports.py - Admin Sales Report Endpoints
# =============================================================================
# Daily / weekly / monthly sales reports, CSV download and monthly
# snapshots.
# =============================================================================

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.auth import require_admin, AuthUser
from core.models.report import ReportFilters
from core.services.report_service import ReportService

router = APIRouter()


@router.get("")
async def get_report(
    admin: AuthUser = Depends(require_admin),
    filters: ReportFilters = Depends(),
):
    """Summary, daily series, top products and breakdowns for the range."""
    return ReportService.get_report(filters)


@router.get("/csv")
async def download_report_csv(
    admin: AuthUser = Depends(require_admin),
    filters: ReportFilters = Depends(),
):
    """The same report as a multi-section CSV file."""
    content, filename = ReportService.export_report_csv(filters)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/snapshots")
async def list_snapshots(admin: AuthUser = Depends(require_admin)):
    """Stored monthly snapshots, newest month first (max 24)."""
    return {"snapshots": ReportService.list_snapshots()}


@router.post("/snapshots")
async def save_snapshot(
    admin: AuthUser = Depends(require_admin),
    month: Annotated[date | None, Query(description="Any date in the month; previous month when omitted")] = None,
):
    """Compute and store the snapshot for a month."""
    return {"snapshot": ReportService.save_monthly_snapshot(month)}
