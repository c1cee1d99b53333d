# =============================================================================
# app/routers/admin_dashboard.py - Admin Dashboard Endpoints
# =============================================================================
# Headline stats, best sellers and product review replies.
# =============================================================================

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from app.auth import require_admin, AuthUser
from core.services.dashboard_service import DashboardService

router = APIRouter()


class ReviewReplyRequest(BaseModel):
    reply: str = ""


@router.get("/dashboard")
async def get_dashboard(admin: AuthUser = Depends(require_admin)):
    """Counts, delivered revenue and the 10 most recent orders."""
    return await DashboardService.get_stats()


@router.get("/dashboard/best-sellers")
async def get_best_sellers(
    admin: AuthUser = Depends(require_admin),
    days: Annotated[int, Query(ge=1, le=365, description="Trailing window in days")] = 30,
    sort: Annotated[Literal["units", "revenue"], Query()] = "units",
):
    return {"best_sellers": DashboardService.get_best_sellers(days=days, sort=sort)}


@router.get("/reviews")
async def list_reviews(admin: AuthUser = Depends(require_admin)):
    """Latest 50 reviews with their replies (newest reply first)."""
    return DashboardService.list_reviews()


@router.post("/reviews/{review_id}/reply")
async def reply_to_review(
    review_id: Annotated[str, Path(description="Review id")],
    request: ReviewReplyRequest,
    admin: AuthUser = Depends(require_admin),
):
    """
    Reply to a review.

    When the review already has a reply and only one is allowed, the
    existing reply is updated instead.
    """
    reply, updated = DashboardService.submit_review_reply(review_id, str(admin.id), request.reply)
    return {
        "reply": reply,
        "updated_existing": updated,
        "message": "Reply updated" if updated else "Reply posted",
    }
