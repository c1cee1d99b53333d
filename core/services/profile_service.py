# =============================================================================
# core/services/profile_service.py - Customer Profile Operations
# =============================================================================
# Reads and updates the signed-in customer's profile row: phone number and
# delivery address (used to pre-fill checkout).
# =============================================================================

import logging
import re
from typing import Any

from lib.supabase_client import SupabaseClient
from lib.formatting import normalize_bd_phone
from core.models.profile import AddressUpdate
from app.exceptions import DatabaseError, ValidationFailedError

logger = logging.getLogger(__name__)

BD_DIVISIONS = ["Barisal", "Chittagong", "Dhaka", "Khulna", "Mymensingh", "Rajshahi", "Rangpur", "Sylhet"]

BD_DISTRICTS: dict[str, list[str]] = {
    "Barisal": ["Barguna", "Barisal", "Bhola", "Jhalokati", "Patuakhali", "Pirojpur"],
    "Chittagong": [
        "Bandarban", "Brahmanbaria", "Chandpur", "Chittagong", "Comilla", "Cox's Bazar",
        "Feni", "Khagrachhari", "Lakshmipur", "Noakhali", "Rangamati",
    ],
    "Dhaka": [
        "Dhaka", "Faridpur", "Gazipur", "Gopalganj", "Kishoreganj", "Madaripur", "Manikganj",
        "Munshiganj", "Narayanganj", "Narsingdi", "Rajbari", "Shariatpur", "Tangail",
    ],
    "Khulna": [
        "Bagerhat", "Chuadanga", "Jessore", "Jhenaidah", "Khulna", "Kushtia", "Magura",
        "Meherpur", "Narail", "Satkhira",
    ],
    "Mymensingh": ["Jamalpur", "Mymensingh", "Netrokona", "Sherpur"],
    "Rajshahi": ["Bogra", "Chapainawabganj", "Joypurhat", "Naogaon", "Natore", "Pabna", "Rajshahi", "Sirajganj"],
    "Rangpur": ["Dinajpur", "Gaibandha", "Kurigram", "Lalmonirhat", "Nilphamari", "Panchagarh", "Rangpur", "Thakurgaon"],
    "Sylhet": ["Habiganj", "Moulvibazar", "Sunamganj", "Sylhet"],
}

# Operator digit 3-9 after the 01 prefix
_STRICT_MOBILE_RE = re.compile(r"^01[3-9]\d{8}$")
_ZIP_RE = re.compile(r"^\d{4}$")


def compose_address(address: AddressUpdate) -> str:
    """
    Single-line delivery address.

    Example:
        "House 12, Road 4, Tongi, 1230, Gazipur, Dhaka"
    """
    zip_part = f"{address.zip_code.strip()}, " if address.zip_code.strip() else ""
    return (
        f"{address.road.strip()}, {address.city.strip()}, {zip_part}"
        f"{address.district.strip()}, {address.division.strip()}"
    )


class ProfileService:
    """Service for customer profile operations."""

    @staticmethod
    def get_profile(user_id: str) -> dict[str, Any]:
        """Profile row, or an empty dict if none exists yet."""
        return SupabaseClient.fetch_profile(user_id) or {}

    @staticmethod
    def get_role(user_id: str) -> str:
        """profiles.role, defaulting to "customer"."""
        profile = SupabaseClient.fetch_profile(user_id) or {}
        return str(profile.get("role") or "customer")

    @staticmethod
    def update_phone(user_id: str, phone: str) -> dict[str, Any]:
        """
        Save a BD mobile number.

        Raises:
            ValidationFailedError: If the number isn't 11 digits starting 01[3-9]
        """
        cleaned = normalize_bd_phone(re.sub(r"\s+", "", phone or ""))
        if not _STRICT_MOBILE_RE.match(cleaned):
            raise ValidationFailedError(
                "Enter a valid BD number (e.g. 017XXXXXXXX). Must be 11 digits and start with 01.",
                field="phone",
            )

        client = SupabaseClient.get_client()
        try:
            client.table("profiles").update({"phone": cleaned}).eq("id", user_id).execute()
        except Exception as e:
            logger.error(f"Failed to update phone for {user_id}: {e}")
            raise DatabaseError("update phone", str(e))

        return {"phone": cleaned}

    @staticmethod
    def update_address(user_id: str, address: AddressUpdate) -> dict[str, Any]:
        """
        Save the delivery address and its composed single-line form.

        Raises:
            ValidationFailedError: Missing division/district/city/road, or a
                zip code that isn't 4 digits
        """
        if not all(v.strip() for v in (address.division, address.district, address.city, address.road)):
            raise ValidationFailedError("Please fill all required address fields.")

        zip_code = address.zip_code.strip()
        if zip_code and not _ZIP_RE.match(zip_code):
            raise ValidationFailedError("Zip code should be 4 digits (e.g. 1230).", field="zip_code")

        updates = {
            "division": address.division.strip(),
            "district": address.district.strip(),
            "city": address.city.strip(),
            "road": address.road.strip(),
            "zip_code": zip_code,
            "address": compose_address(address),
        }

        client = SupabaseClient.get_client()
        try:
            client.table("profiles").update(updates).eq("id", user_id).execute()
        except Exception as e:
            logger.error(f"Failed to update address for {user_id}: {e}")
            raise DatabaseError("update address", str(e))

        return updates
