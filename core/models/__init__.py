# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for request validation:
# - product.py: Inventory filters, bulk edit, colour variant groups
# - profile.py: Customer phone/address, seller application
# - order.py: Checkout, tracking, status updates
# - support.py: Ticket inbox filters, replies, notifications
# - featured.py: Homepage slides and mid banner
# - report.py: Sales report filters
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Product Models - Inventory and seller products
# -----------------------------------------------------------------------------
from .product import (
    ApprovalStatus,
    BulkEditRequest,
    HotlinkRequest,
    InventoryFilters,
    ProductSort,
    SellerProductUpdate,
    SpecRow,
    StockFilter,
    VariantDraft,
    VariantGroup,
    VariantGroupSave,
)

# -----------------------------------------------------------------------------
# Profile Models - Account and seller onboarding
# -----------------------------------------------------------------------------
from .profile import (
    AddressUpdate,
    PhoneUpdate,
    SellerApplication,
    SellerStatus,
)

# -----------------------------------------------------------------------------
# Order Models - Checkout and tracking
# -----------------------------------------------------------------------------
from .order import (
    CartItem,
    GuestDetails,
    InvoiceEmailRequest,
    OrderStatus,
    OrderStatusUpdate,
    PlaceOrderRequest,
    TrackOrderRequest,
)

# -----------------------------------------------------------------------------
# Support Models - Tickets
# -----------------------------------------------------------------------------
from .support import (
    AdminReplyRequest,
    BulkTicketPatch,
    InboxFilters,
    NoteRequest,
    PinRequest,
    SupportReplyNotification,
    TagsRequest,
    TicketConfirmationNotification,
    TicketCreateRequest,
    TicketPatch,
    TicketPriority,
    TicketStatus,
)

# -----------------------------------------------------------------------------
# Homepage and Report Models
# -----------------------------------------------------------------------------
from .featured import (
    AddFeaturedRequest,
    FeaturedImageUpdate,
    SaveFeaturedRequest,
    SiteBanner,
)
from .report import ReportFilters

# -----------------------------------------------------------------------------
# __all__ - Explicit public API
# -----------------------------------------------------------------------------
__all__ = [
    # Product
    "ApprovalStatus",
    "BulkEditRequest",
    "HotlinkRequest",
    "InventoryFilters",
    "ProductSort",
    "SellerProductUpdate",
    "SpecRow",
    "StockFilter",
    "VariantDraft",
    "VariantGroup",
    "VariantGroupSave",
    # Profile
    "AddressUpdate",
    "PhoneUpdate",
    "SellerApplication",
    "SellerStatus",
    # Order
    "CartItem",
    "GuestDetails",
    "InvoiceEmailRequest",
    "OrderStatus",
    "OrderStatusUpdate",
    "PlaceOrderRequest",
    "TrackOrderRequest",
    # Support
    "AdminReplyRequest",
    "BulkTicketPatch",
    "InboxFilters",
    "NoteRequest",
    "PinRequest",
    "SupportReplyNotification",
    "TagsRequest",
    "TicketConfirmationNotification",
    "TicketCreateRequest",
    "TicketPatch",
    "TicketPriority",
    "TicketStatus",
    # Featured
    "AddFeaturedRequest",
    "FeaturedImageUpdate",
    "SaveFeaturedRequest",
    "SiteBanner",
    # Report
    "ReportFilters",
]
