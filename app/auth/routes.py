# =============================================================================
# app/auth/routes.py - Who-Am-I Endpoints
# =============================================================================
# Sign-up and login happen against Supabase Auth in the browser. The API
# only reports who the bearer is and which portal they land on after login:
#   admin -> /admin, seller -> /seller (or /account while pending),
#   everyone else -> /
# =============================================================================

import logging
from fastapi import APIRouter, Depends

from app.auth.dependencies import get_current_user, get_current_profile_user
from app.auth.models import AuthUser, UserResponse, UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


def home_path_for(user: AuthUser) -> str:
    """Landing page for a resolved user."""
    if user.role == UserRole.ADMIN:
        return "/admin"
    if user.role == UserRole.SELLER:
        pending = str(user.seller_status or "").lower() not in ("", "approved")
        return "/account" if pending else "/seller"
    return "/"


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    user: AuthUser = Depends(get_current_profile_user)
) -> UserResponse:
    """Profile-backed identity of the caller, with their landing page."""
    logger.debug(f"/auth/me for {user.id} as {user.role.value}")
    return UserResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        seller_status=user.seller_status,
        full_name=user.full_name,
        home_path=home_path_for(user),
    )


@router.get("/verify")
async def verify_token(user: AuthUser = Depends(get_current_user)) -> dict:
    """Cheap token check (no profile lookup). 401 when invalid or expired."""
    return {"valid": True, "user_id": str(user.id), "email": user.email}
