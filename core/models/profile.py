# =============================================================================
# core/models/profile.py - Customer Account and Seller Schemas
# =============================================================================
# These models define the request shapes for the account area:
# - PhoneUpdate / AddressUpdate: customer profile edits
# - SellerApplication: "become a seller" form
#
# Profiles live in the `profiles` table keyed by the auth user id.
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field


class SellerStatus(str, Enum):
    """profiles.seller_status values."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PhoneUpdate(BaseModel):
    """Change the phone number on the customer's profile."""
    phone: str = Field(..., description="BD mobile, e.g. 017XXXXXXXX")


class AddressUpdate(BaseModel):
    """
    Delivery address saved on the profile and pre-filled at checkout.

    Example:
        {
            "division": "Dhaka",
            "district": "Gazipur",
            "city": "Tongi",
            "road": "House 12, Road 4",
            "zip_code": "1230"
        }
    """
    division: str = ""
    district: str = ""
    city: str = ""
    road: str = ""
    zip_code: str = ""


class SellerApplication(BaseModel):
    """Seller application form."""
    shop_name: str = ""
    shop_description: str = ""
    company_name: str = ""
    business_type: str = ""
    business_address: str = ""
    phone: str = ""
