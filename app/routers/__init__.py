# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# FastAPI routers organized by feature:
# - health.py: Liveness and readiness checks
# - catalog.py: Homepage, search suggestions, category lists, recently viewed
# - wishlist.py: Customer wishlist
# - orders.py: Checkout, order tracking, "my orders", invoices
# - account.py: Profile, phone, address, seller application
# - support.py: Customer support tickets
# - seller.py: Seller dashboard and product editing
# - admin_dashboard.py: Admin KPIs, best sellers, reviews
# - admin_inventory.py: Inventory table, bulk actions, variants, images
# - admin_featured.py: Hero slider, info carousel, mid-page banner
# - admin_support.py: Support inbox and ticket workspace
# - admin_orders.py: Order management and status changes
# - reports.py: Sales reports, CSV export, monthly snapshots
# - notifications.py: Manual email (re)sends
# - tasks.py: Background task status
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import catalog
from . import wishlist
from . import orders
from . import account
from . import support
from . import seller
from . import admin_dashboard
from . import admin_inventory
from . import admin_featured
from . import admin_support
from . import admin_orders
from . import reports
from . import notifications
from . import tasks

__all__ = [
    "health",
    "catalog",
    "wishlist",
    "orders",
    "account",
    "support",
    "seller",
    "admin_dashboard",
    "admin_inventory",
    "admin_featured",
    "admin_support",
    "admin_orders",
    "reports",
    "notifications",
    "tasks",
]
