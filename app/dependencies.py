# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared concerns.
# These are injected into route handlers using Depends().
# - rate_limited(): per-IP limit for public endpoints
# - read_uploads(): multipart files -> (name, content type, bytes)
# =============================================================================

from typing import Callable

from fastapi import Request, UploadFile

from lib.rate_limit import RateLimiter, client_ip
from app.exceptions import RateLimitedError


def rate_limited(bucket: str) -> Callable[[Request], None]:
    """
    Build a dependency that limits requests per client IP.

    Example:
        @router.post("/track", dependencies=[Depends(rate_limited("track-order"))])
    """
    def dependency(request: Request) -> None:
        ip = client_ip(request.headers)
        if ip == "unknown" and request.client:
            ip = request.client.host
        allowed, retry_after = RateLimiter.check(f"{bucket}:{ip}")
        if not allowed:
            raise RateLimitedError(retry_after)

    return dependency


async def read_uploads(files: list[UploadFile] | None) -> list[tuple[str, str, bytes]]:
    """Read uploaded files into memory, skipping empty parts."""
    result = []
    for upload in files or []:
        if not upload.filename:
            continue
        content = await upload.read()
        result.append((upload.filename, upload.content_type or "", content))
    return result
