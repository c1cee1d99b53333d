# =============================================================================
# lib/user_state.py - Per-User Convenience Lists
# =============================================================================
# Small, non-authoritative lists that follow a user between devices:
# - wishlist product ids (max 200, newest first)
# - recently viewed product ids (max 12, newest first)
# - pinned support tickets (per admin)
# - internal notes on a support ticket (per ticket, newest first)
#
# Everything is stored in Redis under spraxe:<owner>:<name>. These lists are
# conveniences, not records: when Redis fails the error is logged and the
# caller gets an empty (or unchanged) list rather than a 500.
#
# Usage:
#   from lib.user_state import UserState
#   ids = UserState.toggle_wishlist(user_id, product_id)
# =============================================================================

import json
import logging
from typing import Any

import redis

from lib.redis_client import get_redis_client
from lib.utils import utc_now_iso

logger = logging.getLogger(__name__)

KEY_PREFIX = "spraxe"

WISHLIST_MAX = 200
RECENTLY_VIEWED_MAX = 12
NOTES_MAX = 200
PINNED_MAX = 500


def _key(owner: str, name: str) -> str:
    return f"{KEY_PREFIX}:{owner}:{name}"


def _unique(ids: list[Any], limit: int) -> list[str]:
    """Trim, drop blanks and duplicates (first wins), cap at `limit`."""
    result: list[str] = []
    seen: set[str] = set()
    for raw in ids:
        value = str(raw or "").strip()
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result[:limit]


class UserState:
    """Redis-backed best-effort lists keyed by user (or ticket)."""

    # -------------------------------------------------------------------------
    # Low-level JSON list storage
    # -------------------------------------------------------------------------

    @staticmethod
    def _read(key: str) -> list[Any]:
        try:
            raw = get_redis_client().get(key)
        except redis.RedisError as e:
            logger.warning(f"Failed to read {key}: {e}")
            return []
        if not raw:
            return []
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding malformed value at {key}")
            return []
        return value if isinstance(value, list) else []

    @staticmethod
    def _write(key: str, value: list[Any]) -> bool:
        try:
            if value:
                get_redis_client().set(key, json.dumps(value))
            else:
                get_redis_client().delete(key)
            return True
        except redis.RedisError as e:
            logger.warning(f"Failed to write {key}: {e}")
            return False

    # -------------------------------------------------------------------------
    # Wishlist
    # -------------------------------------------------------------------------

    @classmethod
    def get_wishlist(cls, user_id: str) -> list[str]:
        """Wishlist product ids, newest first."""
        return _unique(cls._read(_key(user_id, "wishlist_product_ids")), WISHLIST_MAX)

    @classmethod
    def add_to_wishlist(cls, user_id: str, product_id: str) -> list[str]:
        """Prepend a product (moving it to the front if present)."""
        ids = _unique([product_id] + cls.get_wishlist(user_id), WISHLIST_MAX)
        cls._write(_key(user_id, "wishlist_product_ids"), ids)
        return ids

    @classmethod
    def remove_from_wishlist(cls, user_id: str, product_id: str) -> list[str]:
        ids = [i for i in cls.get_wishlist(user_id) if i != str(product_id)]
        cls._write(_key(user_id, "wishlist_product_ids"), ids)
        return ids

    @classmethod
    def toggle_wishlist(cls, user_id: str, product_id: str) -> tuple[list[str], bool]:
        """
        Add the product if absent, remove it if present.

        Returns:
            (ids, in_wishlist_after_toggle)
        """
        if str(product_id) in cls.get_wishlist(user_id):
            return cls.remove_from_wishlist(user_id, product_id), False
        return cls.add_to_wishlist(user_id, product_id), True

    @classmethod
    def clear_wishlist(cls, user_id: str) -> list[str]:
        cls._write(_key(user_id, "wishlist_product_ids"), [])
        return []

    # -------------------------------------------------------------------------
    # Recently Viewed
    # -------------------------------------------------------------------------

    @classmethod
    def get_recently_viewed(cls, user_id: str) -> list[str]:
        return _unique(cls._read(_key(user_id, "recently_viewed_product_ids")), RECENTLY_VIEWED_MAX)

    @classmethod
    def record_view(cls, user_id: str, product_id: str) -> list[str]:
        """Move a product to the front of the recently viewed list."""
        ids = _unique([product_id] + cls.get_recently_viewed(user_id), RECENTLY_VIEWED_MAX)
        cls._write(_key(user_id, "recently_viewed_product_ids"), ids)
        return ids

    @classmethod
    def clear_recently_viewed(cls, user_id: str) -> list[str]:
        cls._write(_key(user_id, "recently_viewed_product_ids"), [])
        return []

    # -------------------------------------------------------------------------
    # Pinned Tickets (admin inbox)
    # -------------------------------------------------------------------------

    @classmethod
    def get_pinned_tickets(cls, admin_id: str) -> list[str]:
        return _unique(cls._read(_key(admin_id, "pinned_tickets")), PINNED_MAX)

    @classmethod
    def set_pinned(cls, admin_id: str, ticket_ids: list[str], pinned: bool) -> list[str]:
        """Pin or unpin one or more tickets; returns the new pinned list."""
        current = cls.get_pinned_tickets(admin_id)
        targets = {str(t) for t in ticket_ids}
        if pinned:
            updated = _unique(current + list(ticket_ids), PINNED_MAX)
        else:
            updated = [t for t in current if t not in targets]
        cls._write(_key(admin_id, "pinned_tickets"), updated)
        return updated

    # -------------------------------------------------------------------------
    # Internal Notes (per ticket)
    # -------------------------------------------------------------------------

    @classmethod
    def get_ticket_notes(cls, ticket_id: str) -> list[dict[str, Any]]:
        return [n for n in cls._read(_key(f"ticket:{ticket_id}", "notes")) if isinstance(n, dict)]

    @classmethod
    def add_ticket_note(cls, ticket_id: str, text: str, author: str) -> list[dict[str, Any]]:
        """
        Prepend an internal note to a ticket.

        Notes are visible to admins only and never emailed.
        """
        note = {"at": utc_now_iso(), "text": text.strip(), "by": author}
        notes = ([note] + cls.get_ticket_notes(ticket_id))[:NOTES_MAX]
        cls._write(_key(f"ticket:{ticket_id}", "notes"), notes)
        return notes
