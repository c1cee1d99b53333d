# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains framework-agnostic business logic:
# - models/: Pydantic schemas for request payloads and filters
# - services/: Storefront, seller, admin and support operations against
#   Supabase (tables + storage) and the email provider
#
# Services raise app.exceptions errors and never touch Request objects
# or Celery directly, so they can be called from routers and workers alike.
# =============================================================================
