# =============================================================================
# tests/ - Test Suite
# =============================================================================
# Unit tests for the Spraxe API. Supabase, Redis and Brevo are replaced by
# mocks (see conftest.py), so no running services are needed.
#
# Run tests with: pytest
# =============================================================================
