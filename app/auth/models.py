# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserRole(str, Enum):
    """Values of profiles.role."""
    CUSTOMER = "customer"
    SELLER = "seller"
    ADMIN = "admin"


class AuthUser(BaseModel):
    """
    Authenticated user extracted from Supabase JWT.

    id/email come from the token. role, seller_status and full_name are
    filled from the profile row by the role dependencies.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None
    role: UserRole = UserRole.CUSTOMER
    seller_status: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        """Name shown on replies and notes."""
        return self.full_name or ("Admin" if self.is_admin else (self.email or "Customer"))


class UserResponse(BaseModel):
    """Response for GET /auth/me."""
    id: UUID
    email: Optional[str] = None
    role: UserRole
    seller_status: Optional[str] = None
    full_name: Optional[str] = None
    home_path: str = "/"
