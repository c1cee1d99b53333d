# =============================================================================
# app/routers/account.py - Customer Account Endpoints
# =============================================================================
# Profile contact details used at checkout, the BD address lists for the
# address form, and the seller application.
# =============================================================================

from fastapi import APIRouter, Depends

from app.auth import get_current_user, get_current_profile_user, AuthUser
from core.models.profile import AddressUpdate, PhoneUpdate, SellerApplication
from core.services.profile_service import BD_DISTRICTS, BD_DIVISIONS, ProfileService
from core.services.seller_service import SellerService

router = APIRouter()


@router.get("/profile")
async def get_profile(user: AuthUser = Depends(get_current_user)):
    return ProfileService.get_profile(str(user.id))


@router.put("/phone")
async def update_phone(
    request: PhoneUpdate,
    user: AuthUser = Depends(get_current_user),
):
    """Save a BD mobile number (01 + operator digit + 8 digits)."""
    return ProfileService.update_phone(str(user.id), request.phone)


@router.put("/address")
async def update_address(
    request: AddressUpdate,
    user: AuthUser = Depends(get_current_user),
):
    """
    Save the structured address.

    The composed one-line address is stored as well; checkout uses it.
    """
    return ProfileService.update_address(str(user.id), request)


@router.get("/address-options")
async def address_options():
    """Divisions and their districts for the address form."""
    return {"divisions": BD_DIVISIONS, "districts": BD_DISTRICTS}


@router.post("/seller-application")
async def apply_as_seller(
    request: SellerApplication,
    user: AuthUser = Depends(get_current_profile_user),
):
    """
    Apply to become a seller.

    The profile switches to role=seller with a pending status until an
    admin approves it.
    """
    saved = SellerService.apply_as_seller(user, request)
    return {"profile": saved, "message": "Application submitted. We'll review it shortly."}
