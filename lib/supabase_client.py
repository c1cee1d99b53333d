# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# One service-role Supabase client for the whole process, plus the small
# helpers every service leans on:
# - Profile lookups (role checks, contact details)
# - Single-row fetches that return None instead of raising on "no rows"
# - Classification of PostgREST errors (not found, unique violation,
#   unknown column)
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   profile = SupabaseClient.fetch_profile(user_id)
# =============================================================================

from __future__ import annotations

import logging
import re
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from app.config import settings

logger = logging.getLogger(__name__)

# PostgREST code for ".single()" with no rows
NOT_FOUND_CODE = "PGRST116"

# Postgres unique_violation
UNIQUE_VIOLATION_CODE = "23505"

_MISSING_COLUMN_RE = re.compile(r'column "([^"]+)"')


class SupabaseClientError(Exception):
    """
    Supabase client or query failure outside a service's own error handling.

    Surfaced by the API as a 503 with `code` and `suggestion`.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}" + (f" ({self.suggestion})" if self.suggestion else "")


# =============================================================================
# Error Classification
# =============================================================================

def is_not_found(error: Exception) -> bool:
    """True when the error is PostgREST's "no rows returned" error."""
    return NOT_FOUND_CODE in str(error)


def is_unique_violation(error: Exception) -> bool:
    """
    True when the error is a unique-constraint violation.

    postgrest-py raises APIError with a `code` attribute; older clients only
    put the code in the message, so both are checked.
    """
    code = str(getattr(error, "code", "") or "")
    if code == UNIQUE_VIOLATION_CODE:
        return True
    message = str(error).lower()
    return (
        UNIQUE_VIOLATION_CODE in message
        or "duplicate key" in message
        or "unique constraint" in message
    )


def missing_column(error: Exception) -> str | None:
    """
    Extract the column name from an "unknown column" error.

    Example:
        'column "company_name" of relation "profiles" does not exist'
        -> "company_name"
    """
    match = _MISSING_COLUMN_RE.search(str(error))
    return match.group(1) if match else None


class SupabaseClient:
    """
    Process-wide Supabase client plus row/profile helpers.

    The client uses the service_role key, so row level security does not
    apply: every service scopes its own queries (for example
    `.eq("seller_id", user.id)` in the seller portal).
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        The shared client, created on first use.

        Raises:
            SupabaseClientError: If the URL or service key is unusable
        """
        if cls._instance is not None:
            return cls._instance
        try:
            cls._instance = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create Supabase client: {e}",
                code="CLIENT_INIT_FAILED",
                suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY",
            )
        logger.info(f"Supabase client ready for {settings.SUPABASE_URL}")
        return cls._instance

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        return str(uuid_value)

    # -------------------------------------------------------------------------
    # Single Row Fetches
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_row(
        cls,
        table: str,
        row_id: str | UUID,
        columns: str = "*",
    ) -> dict[str, Any] | None:
        """
        Fetch one row by primary key.

        Args:
            table: Table name
            row_id: Row UUID
            columns: PostgREST select expression (may include embeds)

        Returns:
            Row dict, or None if not found

        Raises:
            SupabaseClientError: If query fails
        """
        client = cls.get_client()
        row_id_str = cls._normalize_uuid(row_id)

        try:
            response = (
                client.table(table)
                .select(columns)
                .eq("id", row_id_str)
                .single()
                .execute()
            )
            return response.data

        except Exception as e:
            if is_not_found(e):
                return None
            raise SupabaseClientError(
                message=f"Failed to fetch {table} row: {e}",
                code="FETCH_ROW_FAILED",
                suggestion=f"Check that the {table} id exists",
                details={"table": table, "id": row_id_str}
            )

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_profile(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """
        Fetch a user's profile row.

        The profile holds the role (customer / seller / admin), seller status
        and the contact/address fields used at checkout.

        Args:
            user_id: The auth user UUID (profiles.id)

        Returns:
            Profile dict, or None if the user has no profile yet

        Raises:
            SupabaseClientError: If query fails
        """
        return cls.fetch_row("profiles", user_id)

    @classmethod
    def fetch_auth_email(cls, user_id: str | UUID) -> str | None:
        """
        Look up a user's email through the auth admin API.

        Used when a profile row has no email copy. Failures return None.
        """
        client = cls.get_client()
        try:
            response = client.auth.admin.get_user_by_id(cls._normalize_uuid(user_id))
            user = getattr(response, "user", None)
            return getattr(user, "email", None) if user else None
        except Exception as e:
            logger.warning(f"Auth email lookup failed for {user_id}: {e}")
            return None
