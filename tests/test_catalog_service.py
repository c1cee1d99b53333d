# =============================================================================
# tests/test_catalog_service.py - Storefront Catalog and Homepage Media Tests
# =============================================================================
# Pure helpers are tested directly; Supabase reads go through the client
# doubles from conftest.
#
# Run with: pytest tests/test_catalog_service.py -v
# =============================================================================

import re
from unittest.mock import MagicMock, patch

from core.models.featured import FeaturedImageUpdate, SaveFeaturedRequest
from core.services.catalog_service import (
    TARGET_CATEGORIES,
    CatalogService,
    _card,
    curate_categories,
    display_price,
)
from core.services.featured_service import FeaturedService, featured_upload_path, placement_of
from tests.conftest import make_client, make_query

CATALOG_CLIENT = "core.services.catalog_service.SupabaseClient.get_client"
FEATURED_CLIENT = "core.services.featured_service.SupabaseClient.get_client"


# =============================================================================
# Helpers
# =============================================================================

class TestDisplayPrice:
    """Tests for the shopper-facing price."""

    def test_prefers_price(self):
        assert display_price({"price": 900, "retail_price": 1000, "base_price": 800}) == 900

    def test_falls_back_to_retail_then_base(self):
        assert display_price({"price": None, "retail_price": "1000.00"}) == 1000
        assert display_price({"base_price": 750}) == 750

    def test_missing_prices(self):
        assert display_price({}) == 0.0


class TestCurateCategories:
    """Tests for the homepage category strip."""

    def test_keeps_target_categories_in_order(self):
        rows = [
            {"id": "c3", "name": "Watches"},
            {"id": "c9", "name": "Groceries"},
            {"id": "c1", "name": "women’s fashion"},
            {"id": "c2", "name": "Gadgets"},
        ]
        curated = curate_categories(rows)

        assert [c["id"] for c in curated] == ["c1", "c2", "c3"]
        assert TARGET_CATEGORIES[0] == "Women’s Fashion"

    def test_accent_is_stable_per_category(self):
        first = curate_categories([{"id": "c2", "name": "Gadgets"}])[0]["accent"]
        second = curate_categories([{"id": "c2", "name": "Gadgets"}])[0]["accent"]
        assert first == second
        assert set(first) == {"border", "background", "shadow"}


class TestCard:
    """Tests for product card shaping."""

    def test_card_normalizes_images(self, sample_products):
        card = _card(sample_products[1])
        assert card["images"] == ["https://cdn.test/polo.jpg"]
        assert card["image"] == "https://cdn.test/polo.jpg"
        assert card["display_price"] == 1150

    def test_card_without_images(self, sample_products):
        card = _card(sample_products[2])
        assert card["images"] == []
        assert card["image"] is None


# =============================================================================
# Queries
# =============================================================================

class TestSearchSuggest:
    """Tests for typeahead suggestions."""

    def test_short_query_skips_database(self):
        with patch(CATALOG_CLIENT) as get_client:
            assert CatalogService.search_suggest(" a ") == {"products": [], "categories": []}
        get_client.assert_not_called()

    def test_products_are_deduplicated(self, sample_products):
        client = make_client({
            "products": sample_products,
            "categories": [{"id": "c1", "name": "Polo Shirts", "slug": "polo"}],
        })
        with patch(CATALOG_CLIENT, return_value=client):
            result = CatalogService.search_suggest("polo")

        assert [p["id"] for p in result["products"]] == ["p-base", "p-mug"]
        assert result["categories"] == [{"id": "c1", "name": "Polo Shirts", "slug": "polo"}]

    def test_query_failure_returns_empty(self):
        query = make_query()
        query.execute.side_effect = Exception("timeout")
        with patch(CATALOG_CLIENT, return_value=make_client({"products": query})):
            assert CatalogService.search_suggest("polo") == {"products": [], "categories": []}


class TestBestSellers:
    """Tests for the best seller list."""

    def test_rpc_order_is_kept(self, sample_products):
        client = make_client({"products": [sample_products[1], sample_products[2]]})
        client.rpc.return_value.execute.return_value = MagicMock(data=[
            {"product_id": "p-mug", "sold_qty": 9},
            {"product_id": "p-base", "sold_qty": "4"},
        ])
        with patch(CATALOG_CLIENT, return_value=client):
            products, sold = CatalogService.get_best_sellers(limit=5)

        client.rpc.assert_called_once_with("get_best_sellers", {"limit_count": 5})
        assert [p["id"] for p in products] == ["p-mug", "p-base"]
        assert sold == {"p-mug": 9, "p-base": 4}

    def test_rpc_failure_falls_back_to_total_sales(self, sample_products):
        client = make_client({"products": [sample_products[2]]})
        client.rpc.side_effect = Exception("function get_best_sellers does not exist")
        with patch(CATALOG_CLIENT, return_value=client):
            products, sold = CatalogService.get_best_sellers()

        assert [p["id"] for p in products] == ["p-mug"]
        assert sold == {}
        client.queries["products"].order.assert_called_with("total_sales", desc=True)

    def test_no_sales(self):
        client = make_client()
        client.rpc.return_value.execute.return_value = MagicMock(data=[])
        with patch(CATALOG_CLIENT, return_value=client):
            assert CatalogService.get_best_sellers() == ([], {})


class TestResolveProducts:
    """Tests for stored id lists (wishlist, recently viewed)."""

    def test_keeps_stored_order_and_resolves_groups(self, sample_products):
        query = make_query()
        query.execute.side_effect = [
            MagicMock(data=[sample_products[2]]),
            MagicMock(data=[sample_products[1]]),
        ]
        with patch(CATALOG_CLIENT, return_value=make_client({"products": query})):
            products = CatalogService.resolve_products(["g-polo", "p-mug", "missing"])

        assert [p["id"] for p in products] == ["p-base", "p-mug"]

    def test_empty_ids(self):
        with patch(CATALOG_CLIENT) as get_client:
            assert CatalogService.resolve_products(["", None]) == []
        get_client.assert_not_called()


# =============================================================================
# Homepage Media
# =============================================================================

class TestFeaturedHelpers:
    """Tests for featured image helpers."""

    def test_placement_defaults_to_hero(self):
        assert placement_of({}) == "hero"
        assert placement_of({"placement": "info_carousel"}) == "info_carousel"

    def test_upload_path(self):
        assert re.match(r"^featured/\d+-[0-9a-f]{12}\.png$", featured_upload_path("Eid Banner.PNG"))
        assert featured_upload_path("banner").endswith(".jpg")


class TestFeaturedService:
    """Tests for featured image administration."""

    def test_list_groups_by_placement(self):
        rows = [
            {"id": 1, "sort_order": 2},
            {"id": 2, "sort_order": 1, "placement": "hero"},
            {"id": 3, "sort_order": 1, "placement": "info_carousel"},
        ]
        with patch(FEATURED_CLIENT, return_value=make_client({"featured_images": rows})):
            grouped = FeaturedService.list_featured()

        assert [r["id"] for r in grouped["hero"]] == [2, 1]
        assert [r["id"] for r in grouped["info_carousel"]] == [3]

    def test_save_all_collects_failures(self):
        query = make_query()
        query.execute.side_effect = [MagicMock(data=[]), Exception("row locked")]
        request = SaveFeaturedRequest(images=[
            FeaturedImageUpdate(id=1, title="Eid Sale"),
            FeaturedImageUpdate(id=2, title="Winter"),
        ])

        with patch(FEATURED_CLIENT, return_value=make_client({"featured_images": query})):
            with patch("core.services.featured_service.publish_event") as publish:
                result = FeaturedService.save_all(request)

        assert result == {"updated": 1, "failed": [2], "banner_saved": True}
        publish.assert_called_once()

    def test_banner_lookup_ignores_non_objects(self):
        client = make_client({"site_settings": [{"key": "home_mid_banner", "value": "oops"}]})
        with patch(FEATURED_CLIENT, return_value=client):
            assert FeaturedService.get_banner() is None
