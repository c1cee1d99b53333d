# =============================================================================
# core/models/featured.py - Homepage Media Schemas
# =============================================================================
# featured_images rows drive two homepage sliders, split by `placement`:
# - "hero" (or no placement): the main hero slider
# - "info_carousel": the carousel inside the info section
#
# The mid-page banner is a single JSON value in site_settings under the key
# "home_mid_banner".
# =============================================================================

from typing import Literal

from pydantic import BaseModel, Field

Placement = Literal["hero", "info_carousel"]


class FeaturedImageUpdate(BaseModel):
    """Editable fields of one featured_images row."""
    id: int
    title: str = ""
    description: str = ""
    image_url: str = ""
    mobile_image_url: str | None = None
    link_url: str | None = None
    storage_path: str | None = None
    image_width: int | None = None
    image_height: int | None = None
    mobile_storage_path: str | None = None
    mobile_image_width: int | None = None
    mobile_image_height: int | None = None
    sort_order: int = 0
    is_active: bool = True


class SiteBanner(BaseModel):
    title: str | None = None
    image_url: str | None = None
    mobile_image_url: str | None = None
    link_url: str | None = None
    is_active: bool = True
    storage_path: str | None = None
    image_width: int | None = None
    image_height: int | None = None
    mobile_storage_path: str | None = None
    mobile_image_width: int | None = None
    mobile_image_height: int | None = None


class SaveFeaturedRequest(BaseModel):
    """
    Save every slide plus the banner in one request.

    Example:
        {"images": [{"id": 3, "title": "Eid Sale", "image_url": "...", "sort_order": 1}],
         "banner": {"image_url": "...", "is_active": true}}
    """
    images: list[FeaturedImageUpdate] = Field(default_factory=list)
    banner: SiteBanner | None = None


class AddFeaturedRequest(BaseModel):
    placement: Placement = "hero"
