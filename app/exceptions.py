# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every error carries a human-readable message plus a suggestion on how to
# fix it, which the storefront shows directly in its toast notifications.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class SpraxeException(Exception):
    """
    Base exception for the Spraxe API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "SPRAXE_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Generic Exceptions
# =============================================================================

class ValidationFailedError(SpraxeException):
    """Raised when user input fails a business rule."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            code="VALIDATION_FAILED",
            status_code=400,
            suggestion="Correct the highlighted value and try again",
            details={"field": field} if field else None,
        )


class NothingToUpdateError(ValidationFailedError):
    """Raised when an edit form has no field marked as changed."""

    def __init__(self):
        super().__init__("Nothing to update")
        self.code = "NOTHING_TO_UPDATE"
        self.suggestion = "Choose at least one field to change"


class ForbiddenError(SpraxeException):
    """Raised when the caller's role does not allow the action."""

    def __init__(self, message: str = "You do not have access to this resource", required_role: str | None = None):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
            suggestion="Sign in with an account that has the required role",
            details={"required_role": required_role} if required_role else None,
        )


class RateLimitedError(SpraxeException):
    """Raised when a client exceeds the public endpoint request budget."""

    def __init__(self, retry_after: int):
        super().__init__(
            message="Too many requests. Please try again later.",
            code="RATE_LIMITED",
            status_code=429,
            suggestion=f"Wait {retry_after} seconds before retrying",
            details={"retry_after": retry_after},
        )
        self.retry_after = retry_after


class DatabaseError(SpraxeException):
    """Raised when a backend query fails unexpectedly."""

    def __init__(self, action: str, error: str):
        super().__init__(
            message=f"Failed to {action}: {error}",
            code="DATABASE_ERROR",
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
            details={"action": action},
        )


# =============================================================================
# Catalog / Inventory Exceptions
# =============================================================================

class ProductNotFoundError(SpraxeException):
    """Raised when a product ID doesn't exist (or isn't owned by the seller)."""

    def __init__(self, product_id: str):
        super().__init__(
            message=f"Product not found: {product_id}",
            code="PRODUCT_NOT_FOUND",
            status_code=404,
            suggestion="Refresh the inventory list; the product may have been deleted",
            details={"product_id": product_id},
        )


class TooManyImagesError(SpraxeException):
    """Raised when a product would exceed its image limit."""

    def __init__(self, max_images: int):
        super().__init__(
            message=f"Maximum {max_images} images allowed",
            code="TOO_MANY_IMAGES",
            status_code=400,
            suggestion="Remove an existing image before adding another",
            details={"max_images": max_images},
        )


# =============================================================================
# Order Exceptions
# =============================================================================

class OrderNotFoundError(SpraxeException):
    """Raised when an order lookup has no match."""

    def __init__(self, reference: str | None = None):
        super().__init__(
            message="Order not found.",
            code="ORDER_NOT_FOUND",
            status_code=404,
            suggestion="Check the order number and the phone or email used at checkout",
            details={"reference": reference} if reference else None,
        )


class ProductUnavailableError(SpraxeException):
    """Raised when a cart item no longer exists or is inactive."""

    def __init__(self):
        super().__init__(
            message="One or more items are unavailable.",
            code="PRODUCT_UNAVAILABLE",
            status_code=400,
            suggestion="Remove unavailable items from your cart and try again",
        )


class InsufficientStockError(SpraxeException):
    """Raised when a quantity exceeds the stock on hand."""

    def __init__(self, product_name: str, available: int):
        super().__init__(
            message=f"Insufficient stock for {product_name}. Available: {available}",
            code="INSUFFICIENT_STOCK",
            status_code=400,
            suggestion="Reduce the quantity in your cart",
            details={"product": product_name, "available": available},
        )


class VoucherError(SpraxeException):
    """Raised when a discount code cannot be applied."""

    def __init__(self, message: str, voucher_code: str):
        super().__init__(
            message=message,
            code="VOUCHER_INVALID",
            status_code=400,
            suggestion="Remove the voucher or try a different code",
            details={"voucher_code": voucher_code},
        )


# =============================================================================
# Support Exceptions
# =============================================================================

class TicketNotFoundError(SpraxeException):
    """Raised when a ticket ID doesn't exist or isn't visible to the caller."""

    def __init__(self, ticket_id: str):
        super().__init__(
            message=f"Ticket not found: {ticket_id}",
            code="TICKET_NOT_FOUND",
            status_code=404,
            suggestion="Check that the ticket_id is correct",
            details={"ticket_id": ticket_id},
        )


class TicketClosedError(SpraxeException):
    """Raised when replying to a closed ticket."""

    def __init__(self, ticket_id: str):
        super().__init__(
            message="Closed tickets cannot be replied to",
            code="TICKET_CLOSED",
            status_code=409,
            suggestion="Open a new ticket instead",
            details={"ticket_id": ticket_id},
        )


# =============================================================================
# Upload Exceptions
# =============================================================================

class InvalidFileTypeError(SpraxeException):
    """Raised when uploaded file type is not allowed."""

    def __init__(self, filename: str, allowed: list[str]):
        super().__init__(
            message=f"Invalid file type: {filename}",
            code="INVALID_FILE_TYPE",
            status_code=400,
            suggestion=f"Only these file types are supported: {', '.join(allowed)}",
            details={"filename": filename, "allowed_types": allowed},
        )


class FileTooLargeError(SpraxeException):
    """Raised when uploaded file exceeds size limit."""

    def __init__(self, size_mb: float, max_mb: int):
        super().__init__(
            message=f"File too large: {size_mb:.1f}MB (max: {max_mb}MB)",
            code="FILE_TOO_LARGE",
            status_code=413,
            suggestion=f"Upload a file smaller than {max_mb}MB",
            details={"size_mb": size_mb, "max_mb": max_mb},
        )


class StorageUploadError(SpraxeException):
    """Raised when file upload to storage fails."""

    def __init__(self, error: str):
        super().__init__(
            message=f"Failed to upload file to storage: {error}",
            code="STORAGE_UPLOAD_ERROR",
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
            details={"error": error},
        )


# =============================================================================
# Email Exceptions
# =============================================================================

class EmailConfigError(SpraxeException):
    """Raised when the email provider is not configured."""

    def __init__(self):
        super().__init__(
            message="Email service is not configured",
            code="EMAIL_NOT_CONFIGURED",
            status_code=500,
            suggestion="Set BREVO_API_KEY in the environment",
        )


class EmailDeliveryError(SpraxeException):
    """Raised when the email provider rejects a message."""

    def __init__(self, status: int, error: str):
        super().__init__(
            message=f"Failed to send email: {error}",
            code="EMAIL_DELIVERY_FAILED",
            status_code=502,
            suggestion="Check the recipient address and the Brevo account status",
            details={"provider_status": status},
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def spraxe_exception_handler(
    request: Request,
    exc: SpraxeException
) -> JSONResponse:
    """
    Convert SpraxeException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Converts validation errors to user-friendly messages.
    """
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "code": "VALIDATION_ERROR",
            "errors": str(exc)
        }
    )
