# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - Provides a chainable Supabase query mock and an in-memory Redis double
# - Common row fixtures (products, orders, tickets)
# =============================================================================

import os
from typing import Any
from unittest.mock import MagicMock

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("BREVO_API_KEY", "test-brevo-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest


# =============================================================================
# Supabase Query Mock
# =============================================================================

QUERY_METHODS = (
    "select", "insert", "update", "upsert", "delete",
    "eq", "neq", "in_", "is_", "or_", "ilike", "gte", "lt", "lte", "gt",
    "order", "limit", "range", "single", "maybe_single",
)


def make_query(data: Any = None, count: int | None = None) -> MagicMock:
    """
    A PostgREST query builder double.

    Every builder method returns the same mock, and execute() returns an
    object with `.data` and `.count`.
    """
    query = MagicMock()
    for name in QUERY_METHODS:
        getattr(query, name).return_value = query
    query.execute.return_value = MagicMock(data=data, count=count)
    return query


def make_client(tables: dict[str, Any] | None = None) -> MagicMock:
    """
    Supabase client double whose .table(name) returns a per-table query.

    Args:
        tables: table name -> MagicMock query (see make_query) or raw data
    """
    queries = {}
    for name, value in (tables or {}).items():
        queries[name] = value if isinstance(value, MagicMock) else make_query(value)

    client = MagicMock()
    client.table.side_effect = lambda name: queries.setdefault(name, make_query([]))
    client.queries = queries
    return client


@pytest.fixture
def supabase_query():
    return make_query


@pytest.fixture
def supabase_client():
    return make_client


# =============================================================================
# Redis Double
# =============================================================================

class InMemoryRedis:
    """Just enough of redis.Redis for the JSON-list helpers."""

    def __init__(self):
        self.store: dict[str, str] = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = value
        return True

    def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    def ping(self):
        return True


@pytest.fixture
def fake_redis():
    return InMemoryRedis()


# =============================================================================
# Row Fixtures
# =============================================================================

@pytest.fixture
def sample_products():
    """A product with a red/blue colour group plus one standalone product."""
    return [
        {
            "id": "p-red",
            "name": "Cotton Polo - Red",
            "slug": "cotton-polo-red",
            "color_name": "Red",
            "color_group_id": "g-polo",
            "price": 1200,
            "retail_price": 1200,
            "stock_quantity": 4,
            "images": ["https://cdn.test/polo-red.jpg"],
        },
        {
            "id": "p-base",
            "name": "Cotton Polo",
            "slug": "cotton-polo",
            "color_name": None,
            "color_group_id": "g-polo",
            "price": 1150,
            "retail_price": 1150,
            "stock_quantity": 10,
            "images": '["https://cdn.test/polo.jpg"]',
        },
        {
            "id": "p-mug",
            "name": "Ceramic Mug",
            "slug": "ceramic-mug",
            "color_name": None,
            "color_group_id": None,
            "price": 350,
            "retail_price": 350,
            "stock_quantity": 0,
            "images": None,
        },
    ]


@pytest.fixture
def sample_orders():
    """Orders across statuses and payment methods (March 2025)."""
    return [
        {
            "id": "o1",
            "order_number": "ORD-20250301-0001",
            "created_at": "2025-03-01T10:00:00+00:00",
            "status": "delivered",
            "payment_method": "cod",
            "payment_status": "paid",
            "subtotal": 1000,
            "shipping_cost": 60,
            "discount_amount": 0,
            "total": 1060,
            "total_amount": 1060,
        },
        {
            "id": "o2",
            "order_number": "ORD-20250302-0002",
            "created_at": "2025-03-02T12:00:00+00:00",
            "status": "processing",
            "payment_method": "bkash",
            "payment_status": "unpaid",
            "subtotal": 2000,
            "shipping_cost": 120,
            "discount_amount": 100,
            "total": 2020,
            "total_amount": 2020,
        },
        {
            "id": "o3",
            "order_number": "ORD-20250303-0003",
            "created_at": "2025-03-03T08:00:00+00:00",
            "status": "cancelled",
            "payment_method": "cod",
            "payment_status": "unpaid",
            "subtotal": 500,
            "shipping_cost": 60,
            "discount_amount": 0,
            "total": 560,
            "total_amount": 560,
        },
    ]
