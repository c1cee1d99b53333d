# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Provides JWT-based authentication using Supabase Auth, plus role checks
# backed by profiles.role.
#
# Usage:
#   from app.auth import get_current_user, require_admin, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

from app.auth.dependencies import (
    decode_access_token,
    get_current_user,
    get_current_user_optional,
    get_current_profile_user,
    require_admin,
    require_seller,
    require_approved_seller,
    resolve_role,
)
from app.auth.models import AuthUser, UserResponse, UserRole

__all__ = [
    "decode_access_token",
    "get_current_user",
    "get_current_user_optional",
    "get_current_profile_user",
    "require_admin",
    "require_seller",
    "require_approved_seller",
    "resolve_role",
    "AuthUser",
    "UserResponse",
    "UserRole",
]
