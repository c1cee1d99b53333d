# =============================================================================
# app/ - FastAPI Application Package
# =============================================================================
# HTTP surface of the Spraxe API:
# - main.py: app factory, CORS, exception handlers, router mounting
# - config.py: Settings loaded from the environment
# - auth/: Supabase JWT verification and role guards
# - routers/: storefront, seller and admin endpoints
# - websocket/: realtime change notifications
#
# Routers stay thin; business rules live in core/services.
# =============================================================================
