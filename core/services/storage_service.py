# =============================================================================
# core/services/storage_service.py - Supabase Storage Operations
# =============================================================================
# Handles uploads, public URLs and signed URLs for the three buckets:
# - product-images: inventory photos (public)
# - feature-image: homepage hero/carousel media (public)
# - support-attachments: customer screenshots on tickets (private, signed)
# =============================================================================

import logging

from lib.supabase_client import SupabaseClient
from app.config import settings
from app.exceptions import StorageUploadError, InvalidFileTypeError, FileTooLargeError

logger = logging.getLogger(__name__)

# Storage bucket names
PRODUCT_IMAGES_BUCKET = "product-images"
FEATURE_IMAGE_BUCKET = "feature-image"
SUPPORT_ATTACHMENTS_BUCKET = "support-attachments"

SIGNED_URL_TTL_SECONDS = 3600


class StorageService:
    """
    Service for Supabase Storage operations.

    Handles image validation, uploading and URL generation.
    """

    @staticmethod
    def validate_image(filename: str, content_type: str | None, size: int) -> None:
        """
        Check that an upload is an image within the size limit.

        Raises:
            InvalidFileTypeError: If content type isn't image/*
            FileTooLargeError: If larger than MAX_IMAGE_SIZE_MB
        """
        if not (content_type or "").startswith("image/"):
            raise InvalidFileTypeError(filename, ["image/*"])
        if size > settings.max_image_size_bytes:
            raise FileTooLargeError(size / (1024 * 1024), settings.MAX_IMAGE_SIZE_MB)

    @staticmethod
    def upload(
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        """
        Upload raw bytes to a bucket.

        Args:
            bucket: Bucket name
            path: Object path inside the bucket
            content: File bytes
            content_type: MIME type stored with the object
            upsert: Overwrite an existing object at `path`

        Returns:
            Storage path where file was uploaded

        Raises:
            StorageUploadError: If upload fails
        """
        client = SupabaseClient.get_client()

        try:
            client.storage.from_(bucket).upload(
                path=path,
                file=content,
                file_options={
                    "content-type": content_type,
                    "cache-control": "3600",
                    "upsert": "true" if upsert else "false",
                }
            )

            logger.info(f"Uploaded file to storage: {bucket}/{path}")
            return path

        except Exception as e:
            logger.error(f"Storage upload failed: {e}")
            raise StorageUploadError(str(e))

    @staticmethod
    def get_public_url(bucket: str, path: str) -> str:
        """
        Get a public URL for a storage file.

        Raises:
            StorageUploadError: If the URL can't be generated (the upload
                is useless to the caller without it)
        """
        client = SupabaseClient.get_client()

        try:
            url = client.storage.from_(bucket).get_public_url(path)
        except Exception as e:
            logger.error(f"Failed to get public URL: {e}")
            raise StorageUploadError(f"Could not generate image URL: {e}")

        if not url:
            raise StorageUploadError("Could not generate image URL")
        return url

    @staticmethod
    def create_signed_url(
        bucket: str,
        path: str,
        expires_in: int = SIGNED_URL_TTL_SECONDS,
    ) -> str | None:
        """
        Create a time-limited URL for a private object.

        Returns:
            Signed URL, or None if signing failed (the attachment is still
            listed, just without a link)
        """
        client = SupabaseClient.get_client()

        try:
            result = client.storage.from_(bucket).create_signed_url(path, expires_in)
        except Exception as e:
            logger.warning(f"Failed to sign {bucket}/{path}: {e}")
            return None

        if isinstance(result, dict):
            return result.get("signedURL") or result.get("signedUrl")
        return None

    @staticmethod
    def delete_files(bucket: str, paths: list[str]) -> bool:
        """
        Delete objects from a bucket.

        Returns:
            True if deleted successfully
        """
        if not paths:
            return True

        client = SupabaseClient.get_client()

        try:
            client.storage.from_(bucket).remove(paths)
            logger.info(f"Deleted {len(paths)} file(s) from {bucket}")
            return True

        except Exception as e:
            logger.error(f"Failed to delete files: {e}")
            return False
