# =============================================================================
# core/services/featured_service.py - Homepage Media Administration
# =============================================================================
# Admin management of the hero slider, the info carousel and the mid-page
# banner. Images are uploaded to the public "feature-image" bucket under
# featured/{timestamp}-{random}.{ext}.
# =============================================================================

import logging
import re
import secrets
import time
from typing import Any

from lib.supabase_client import SupabaseClient
from lib.utils import utc_now_iso
from core.models.featured import AddFeaturedRequest, SaveFeaturedRequest
from core.services.storage_service import FEATURE_IMAGE_BUCKET, StorageService
from app.exceptions import DatabaseError
from app.websocket.broadcast import TOPIC_FEATURED, publish_event

logger = logging.getLogger(__name__)

BANNER_SETTING_KEY = "home_mid_banner"
PLACEHOLDER_IMAGE_URL = (
    "https://images.pexels.com/photos/1350789/pexels-photo-1350789.jpeg"
    "?auto=compress&cs=tinysrgb&w=600"
)


def placement_of(image: dict[str, Any]) -> str:
    """Rows without a placement belong to the hero slider."""
    return image.get("placement") or "hero"


def featured_upload_path(filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "jpg"
    ext = re.sub(r"[^a-z0-9]", "", ext) or "jpg"
    return f"featured/{int(time.time() * 1000)}-{secrets.token_hex(6)}.{ext}"


class FeaturedService:
    """Service for featured images and the homepage banner."""

    @staticmethod
    def list_featured(active_only: bool = False) -> dict[str, list[dict[str, Any]]]:
        """
        Featured images grouped by placement, each sorted by sort_order.

        Returns:
            {"hero": [...], "info_carousel": [...]}
        """
        client = SupabaseClient.get_client()
        query = client.table("featured_images").select("*")
        if active_only:
            query = query.eq("is_active", True)

        try:
            rows = query.order("sort_order").execute().data or []
        except Exception as e:
            logger.error(f"Failed to load featured images: {e}")
            raise DatabaseError("load featured images", str(e))

        grouped: dict[str, list[dict[str, Any]]] = {"hero": [], "info_carousel": []}
        for row in rows:
            grouped.setdefault(placement_of(row), []).append(row)
        for group in grouped.values():
            group.sort(key=lambda r: r.get("sort_order") or 0)
        return grouped

    @staticmethod
    def get_banner() -> dict[str, Any] | None:
        """The mid-page banner, or None when unset or unreadable."""
        client = SupabaseClient.get_client()
        try:
            rows = (
                client.table("site_settings")
                .select("key,value")
                .eq("key", BANNER_SETTING_KEY)
                .limit(1)
                .execute()
            ).data or []
        except Exception as e:
            logger.warning(f"Banner lookup failed: {e}")
            return None

        value = rows[0].get("value") if rows else None
        return value if isinstance(value, dict) else None

    @staticmethod
    def add_featured(request: AddFeaturedRequest) -> dict[str, Any]:
        """
        Append a placeholder slide to a placement.

        The new slide's sort_order is one past the current maximum in that
        placement.
        """
        pool = FeaturedService.list_featured().get(request.placement, [])
        next_order = max([r.get("sort_order") or 0 for r in pool] + [0]) + 1
        is_info = request.placement == "info_carousel"

        payload = {
            "title": "New Carousel Image" if is_info else "New Featured Slide",
            "description": "" if is_info else "Add description",
            "image_url": PLACEHOLDER_IMAGE_URL,
            "mobile_image_url": None,
            "sort_order": next_order,
            "is_active": True,
            "link_url": None,
            "placement": request.placement,
        }

        client = SupabaseClient.get_client()
        try:
            response = client.table("featured_images").insert(payload).execute()
        except Exception as e:
            logger.error(f"Failed to add featured image: {e}")
            raise DatabaseError("add new image", str(e))

        publish_event(TOPIC_FEATURED, "featured_changed", {"action": "insert"})
        return (response.data or [payload])[0]

    @staticmethod
    def save_all(request: SaveFeaturedRequest) -> dict[str, Any]:
        """
        Update every slide and upsert the banner.

        All writes are attempted; failures are collected.

        Returns:
            {"updated": n, "failed": [ids], "banner_saved": bool}
        """
        client = SupabaseClient.get_client()
        now = utc_now_iso()
        failed: list[int] = []

        for image in request.images:
            fields = image.model_dump(exclude={"id"})
            try:
                client.table("featured_images").update({**fields, "updated_at": now}).eq("id", image.id).execute()
            except Exception as e:
                logger.error(f"Featured image {image.id} update failed: {e}")
                failed.append(image.id)

        banner_saved = True
        if request.banner is not None:
            try:
                (
                    client.table("site_settings")
                    .upsert({"key": BANNER_SETTING_KEY, "value": request.banner.model_dump()}, on_conflict="key")
                    .execute()
                )
            except Exception as e:
                logger.error(f"Banner save failed: {e}")
                banner_saved = False

        publish_event(TOPIC_FEATURED, "featured_changed", {"action": "update"})
        return {
            "updated": len(request.images) - len(failed),
            "failed": failed,
            "banner_saved": banner_saved,
        }

    @staticmethod
    def delete_featured(image_id: int) -> None:
        client = SupabaseClient.get_client()
        try:
            client.table("featured_images").delete().eq("id", image_id).execute()
        except Exception as e:
            logger.error(f"Failed to delete featured image {image_id}: {e}")
            raise DatabaseError("delete image", str(e))
        logger.info(f"Deleted featured image {image_id}")
        publish_event(TOPIC_FEATURED, "featured_changed", {"action": "delete"})

    @staticmethod
    def upload_featured_image(filename: str, content_type: str, content: bytes) -> dict[str, str]:
        """
        Upload a slide/banner image.

        Returns:
            {"public_url", "path"}

        Raises:
            InvalidFileTypeError / FileTooLargeError: Not an acceptable image
            StorageUploadError: Upload failed
        """
        StorageService.validate_image(filename, content_type, len(content))
        path = featured_upload_path(filename)
        StorageService.upload(FEATURE_IMAGE_BUCKET, path, content, content_type)
        return {"public_url": StorageService.get_public_url(FEATURE_IMAGE_BUCKET, path), "path": path}
