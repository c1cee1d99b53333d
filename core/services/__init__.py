# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .storage_service import StorageService
from .email_service import EmailService
from .catalog_service import CatalogService
from .featured_service import FeaturedService
from .inventory_service import InventoryService
from .seller_service import SellerService
from .profile_service import ProfileService
from .order_service import OrderService
from .support_service import SupportService
from .dashboard_service import DashboardService
from .report_service import ReportService

__all__ = [
    "StorageService",
    "EmailService",
    "CatalogService",
    "FeaturedService",
    "InventoryService",
    "SellerService",
    "ProfileService",
    "OrderService",
    "SupportService",
    "DashboardService",
    "ReportService",
]
