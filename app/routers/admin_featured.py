# =============================================================================
# app/routers/admin_featured.py - Homepage Media Endpoints
# =============================================================================
# Hero slider, info carousel and mid-page banner administration.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, File, Path, UploadFile

from app.auth import require_admin, AuthUser
from core.models.featured import AddFeaturedRequest, SaveFeaturedRequest
from core.services.featured_service import FeaturedService

router = APIRouter()


@router.get("")
async def list_featured(admin: AuthUser = Depends(require_admin)):
    """All slides grouped by placement, plus the banner."""
    return {
        "images": FeaturedService.list_featured(),
        "banner": FeaturedService.get_banner(),
    }


@router.post("")
async def add_featured(
    request: AddFeaturedRequest,
    admin: AuthUser = Depends(require_admin),
):
    """Add a placeholder slide at the end of a placement."""
    return FeaturedService.add_featured(request)


@router.put("")
async def save_featured(
    request: SaveFeaturedRequest,
    admin: AuthUser = Depends(require_admin),
):
    """
    Save all slides and the banner.

    Every write is attempted; failed slide ids are reported back.
    """
    result = FeaturedService.save_all(request)
    ok = not result["failed"] and result["banner_saved"]
    return {**result, "message": "Updated successfully" if ok else "Failed to update some settings"}


@router.delete("/{image_id}")
async def delete_featured(
    image_id: Annotated[int, Path(description="featured_images id")],
    admin: AuthUser = Depends(require_admin),
):
    FeaturedService.delete_featured(image_id)
    return {"deleted": image_id}


@router.post("/upload")
async def upload_featured_image(
    file: Annotated[UploadFile, File(description="Slide or banner image")],
    admin: AuthUser = Depends(require_admin),
):
    """Upload to the feature-image bucket; returns public URL and path."""
    content = await file.read()
    return FeaturedService.upload_featured_image(file.filename or "image.jpg", file.content_type or "", content)
