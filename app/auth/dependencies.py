# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Verifies Supabase access tokens and resolves the caller's role.
#
# Tokens are signed either with the project's legacy HS256 secret or with
# the newer asymmetric signing keys (ES256/RS256) published at
# {SUPABASE_URL}/auth/v1/.well-known/jwks.json.
#
# The token is only trusted for the user id and email. Roles come from
# profiles.role (customer / seller / admin) on every guarded request, so a
# role change takes effect without re-login.
#
# Usage:
#   from app.auth import get_current_user, require_admin, AuthUser
#
#   @router.get("/admin-only")
#   async def admin_only(admin: AuthUser = Depends(require_admin)):
#       ...
# =============================================================================

import logging
import time
from typing import Any, Optional
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError

from app.config import settings
from app.auth.models import AuthUser, UserRole
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

security = HTTPBearer()
security_optional = HTTPBearer(auto_error=False)


# =============================================================================
# Signing Keys
# =============================================================================

class JwksCache:
    """
    Supabase signing keys, refreshed at most once per `ttl` seconds.

    A failed refresh keeps serving the last good key set.
    """

    def __init__(self, ttl: int = 3600):
        self.ttl = ttl
        self._keys: list[dict[str, Any]] = []
        self._fetched_at = 0.0

    @property
    def url(self) -> str:
        return f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/.well-known/jwks.json"

    def _refresh(self) -> None:
        try:
            response = httpx.get(self.url, timeout=10)
            response.raise_for_status()
            self._keys = response.json().get("keys", [])
            self._fetched_at = time.time()
            logger.debug(f"Loaded {len(self._keys)} signing key(s)")
        except Exception as e:
            logger.warning(f"JWKS refresh failed, keeping {len(self._keys)} cached key(s): {e}")

    def find(self, kid: str) -> dict[str, Any] | None:
        if not self._keys or time.time() - self._fetched_at >= self.ttl:
            self._refresh()
        return next((k for k in self._keys if k.get("kid") == kid), None)


jwks_cache = JwksCache()


def _signing_key(token: str) -> tuple[Any, str]:
    """(key, algorithm) to verify a token with; HS256 secret by default."""
    try:
        header = jwt.get_unverified_header(token)
    except JWTError:
        return settings.SUPABASE_JWT_SECRET, "HS256"

    alg = header.get("alg", "HS256")
    kid = header.get("kid")
    if alg != "HS256" and kid:
        key = jwks_cache.find(kid)
        if key:
            return key, alg
        logger.warning(f"No signing key for kid={kid} ({alg}), trying the HS256 secret")
    return settings.SUPABASE_JWT_SECRET, "HS256"


def decode_access_token(token: str) -> AuthUser:
    """
    Verify a Supabase access token and build an AuthUser.

    Shared by the HTTP dependencies and the WebSocket endpoint.

    Raises:
        ExpiredSignatureError: Token expired
        JWTError: Signature/claims invalid, or sub missing/malformed
    """
    key, algorithm = _signing_key(token)
    payload = jwt.decode(token, key, algorithms=[algorithm], audience="authenticated")

    try:
        user_id = UUID(str(payload.get("sub") or ""))
    except ValueError:
        raise JWTError("token has no valid subject")

    return AuthUser(id=user_id, email=payload.get("email"))


# =============================================================================
# Token Dependencies
# =============================================================================

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> AuthUser:
    """
    The bearer of a valid access token (role not yet resolved).

    Raises:
        HTTPException: 401 if the token is invalid or expired
    """
    try:
        return decode_access_token(credentials.credentials)
    except ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise _unauthorized("Token has expired")
    except JWTError as e:
        logger.warning(f"Rejected token: {e}")
        raise _unauthorized(f"Invalid token: {e}")


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional)
) -> Optional[AuthUser]:
    """
    Like get_current_user, but None for missing or unusable tokens.

    Checkout uses this: guests and signed-in customers share the endpoint.
    """
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except JWTError:
        return None


# =============================================================================
# Role Checks
# =============================================================================

def resolve_role(user: AuthUser) -> AuthUser:
    """
    Attach role, seller status and display name from the user's profile.

    Users without a profile row, or with an unknown role, are customers.
    """
    profile = SupabaseClient.fetch_profile(user.id) or {}
    try:
        role = UserRole(str(profile.get("role") or "customer").lower())
    except ValueError:
        role = UserRole.CUSTOMER

    return user.model_copy(update={
        "role": role,
        "seller_status": profile.get("seller_status"),
        "full_name": profile.get("full_name"),
        "email": user.email or profile.get("email"),
    })


async def get_current_profile_user(
    user: AuthUser = Depends(get_current_user),
) -> AuthUser:
    """Authenticated user with role information resolved."""
    return resolve_role(user)


def _forbidden(user: AuthUser, detail: str) -> HTTPException:
    logger.warning(f"{detail}: user {user.id} is {user.role.value}")
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


async def require_admin(
    user: AuthUser = Depends(get_current_profile_user),
) -> AuthUser:
    """Allow only admins (403 otherwise)."""
    if user.role != UserRole.ADMIN:
        raise _forbidden(user, "Admin access required")
    return user


async def require_seller(
    user: AuthUser = Depends(get_current_profile_user),
) -> AuthUser:
    """
    Allow any seller, including one whose application is pending.

    Used for read-only seller pages.
    """
    if user.role != UserRole.SELLER:
        raise _forbidden(user, "Seller account required")
    return user


async def require_approved_seller(
    user: AuthUser = Depends(require_seller),
) -> AuthUser:
    """
    Allow sellers that are not waiting on approval; guards product writes.

    Sellers created before applications existed have no status and pass.
    """
    seller_status = str(user.seller_status or "").lower()
    if seller_status and seller_status != "approved":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your seller account is awaiting approval",
        )
    return user
