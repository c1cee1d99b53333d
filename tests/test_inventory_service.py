# =============================================================================
# tests/test_inventory_service.py - Inventory Administration Tests
# =============================================================================
# Covers the pure helpers behind the admin inventory screen plus the bulk
# update flow with a mocked Supabase client.
#
# Run with: pytest tests/test_inventory_service.py -v
# =============================================================================

from unittest.mock import patch

import pytest

from app.exceptions import (
    DatabaseError,
    NothingToUpdateError,
    ProductNotFoundError,
    TooManyImagesError,
    ValidationFailedError,
)
from core.models.product import BulkEditRequest, SpecRow, VariantDraft, VariantGroupSave
from core.services.inventory_service import (
    InventoryService,
    add_hotlinks,
    build_bulk_update,
    stock_status,
    validate_variant_draft,
    variant_identity,
)
from tests.conftest import make_client, make_query


def _draft(**overrides):
    values = {
        "id": "v1",
        "stock_quantity": 5,
        "price": 1200,
        "retail_price": 1300,
        "base_price": 900,
        "min_order_quantity": 1,
        "unit": "pieces",
        "color_name": "Red",
        "color_hex": "#ff0000",
        "images": ["https://cdn.test/a.jpg"],
    }
    values.update(overrides)
    return VariantDraft(**values)


class TestStockStatus:
    """Tests for stock badges."""

    @pytest.mark.parametrize("stock,expected", [(0, "out"), (-1, "out"), (None, "out"), (3, "low"), (5, "low"), (6, "ok")])
    def test_badges(self, stock, expected):
        assert stock_status(stock) == expected


class TestBuildBulkUpdate:
    """Tests for the bulk edit payload."""

    def test_only_chosen_fields_included(self):
        edit = BulkEditRequest(ids=["a"], is_active="false", price="  1500 ", stock_quantity="")
        assert build_bulk_update(edit) == {"is_active": False, "price": 1500.0}

    def test_approval_and_featured(self):
        edit = BulkEditRequest(ids=["a"], is_featured="true", approval_status="approved")
        assert build_bulk_update(edit) == {"is_featured": True, "approval_status": "approved"}

    def test_nothing_chosen(self):
        with pytest.raises(NothingToUpdateError):
            build_bulk_update(BulkEditRequest(ids=["a"]))

    @pytest.mark.parametrize("value", ["abc", "-1", "inf"])
    def test_invalid_numbers_rejected(self, value):
        with pytest.raises(ValidationFailedError) as exc_info:
            build_bulk_update(BulkEditRequest(ids=["a"], retail_price=value))
        assert exc_info.value.message == "Please enter a valid retail price."
        assert exc_info.value.details == {"field": "retail_price"}


class TestValidateVariantDraft:
    """Tests for per-variant validation messages."""

    def test_valid(self):
        assert validate_variant_draft(_draft(), "Red", is_base=False) is None

    def test_base_needs_no_colour(self):
        assert validate_variant_draft(_draft(color_name="", color_hex=""), "Base", is_base=True) is None

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"stock_quantity": -1}, "Red: Stock cannot be negative."),
            ({"price": 0}, "Red: Price must be greater than 0."),
            ({"min_order_quantity": 0}, "Red: Min order quantity must be at least 1."),
            ({"unit": " "}, "Red: Unit is required."),
            ({"images": []}, "Red: Add at least 1 image."),
            ({"images": [f"https://cdn.test/{i}.jpg" for i in range(6)]}, "Red: Max 5 images."),
            ({"color_name": " "}, "Red: Color name is required."),
            ({"color_hex": "red"}, "Red: Color hex must be valid (e.g. #000000)."),
        ],
    )
    def test_errors(self, overrides, message):
        assert validate_variant_draft(_draft(**overrides), "Red", is_base=False) == message


class TestVariantIdentity:
    """Tests for slug and SKU of new colour variants."""

    def test_slug_and_sku(self):
        identity = variant_identity({"name": "Cotton Tee", "slug": "cotton-tee", "sku": "TEE01"}, "Sky Blue")
        assert identity == {"name": "Cotton Tee", "slug": "cotton-tee-sky-blue", "sku": "TEE01-SKYBLUE"}

    def test_missing_sku(self):
        assert variant_identity({"name": "Mug"}, "Black")["sku"] == "SKU-BLACK"


class TestAddHotlinks:
    """Tests for adding external image URLs."""

    def test_appends_new_urls_only(self):
        result = add_hotlinks(["https://cdn.test/a.jpg"], ["https://cdn.test/a.jpg", " https://x.test/b.png ", ""])
        assert result == ["https://cdn.test/a.jpg", "https://x.test/b.png"]

    def test_capped_at_max_images(self):
        current = [f"https://cdn.test/{i}.jpg" for i in range(4)]
        result = add_hotlinks(current, ["https://x.test/5.jpg", "https://x.test/6.jpg"])
        assert len(result) == 5

    def test_rejects_non_http(self):
        with pytest.raises(ValidationFailedError):
            add_hotlinks([], ["ftp://x.test/a.jpg"])


class TestInventoryWrites:
    """Tests for writes against a mocked Supabase client."""

    def test_bulk_update_targets_selected_ids(self):
        client = make_client()
        with patch("core.services.inventory_service.SupabaseClient.get_client", return_value=client), \
             patch("core.services.inventory_service.publish_inventory_change") as publish:
            count = InventoryService.bulk_update(BulkEditRequest(ids=["a", "b"], is_active="true"))

        assert count == 2
        products = client.queries["products"]
        products.update.assert_called_once_with({"is_active": True})
        products.in_.assert_called_once_with("id", ["a", "b"])
        publish.assert_called_once_with(["a", "b"], "update")

    def test_set_flags_missing_product(self):
        client = make_client({"products": make_query([])})
        with patch("core.services.inventory_service.SupabaseClient.get_client", return_value=client), \
             patch("core.services.inventory_service.publish_inventory_change"):
            with pytest.raises(ProductNotFoundError):
                InventoryService.toggle_active("missing", False)

    def test_set_flags_requires_a_flag(self):
        with pytest.raises(NothingToUpdateError):
            InventoryService.set_flags("p1", unknown=True)


# =============================================================================
# Variant Groups
# =============================================================================

BASE_ROW = {
    "id": "base",
    "name": "Cotton Tee",
    "slug": "cotton-tee",
    "sku": "TEE01",
    "color_group_id": "base",
    "color_name": None,
    "description": "Soft cotton",
    "size_chart": [{"size": "M", "chest": "40"}],
    "price": None,
    "retail_price": 650,
    "stock_quantity": 4,
    "images": ["https://cdn.test/base.jpg"],
}


class TestLoadVariantGroup:
    """Tests for loading a colour group into the editor."""

    def _load(self, product_id, product, group, specs=None):
        client = make_client({
            "products": make_query(group),
            "product_specs": make_query(specs or []),
        })
        with patch("core.services.inventory_service.SupabaseClient.fetch_row", return_value=product), \
             patch("core.services.inventory_service.SupabaseClient.get_client", return_value=client):
            return InventoryService.load_variant_group(product_id), client

    def test_base_first_then_colours(self):
        blue = {**BASE_ROW, "id": "blue", "color_name": "Blue", "description": "", "price": 700}
        amber = {**BASE_ROW, "id": "amber", "color_name": "amber", "description": ""}
        group, client = self._load("blue", blue, [blue, amber, BASE_ROW], [{"label": "Fabric", "value": "Cotton"}])

        assert [d.id for d in group.drafts] == ["base", "amber", "blue"]
        assert group.base_id == "base"
        assert group.selected_id == "blue"
        assert group.description == "Soft cotton"
        assert all(d.description == "Soft cotton" for d in group.drafts)
        assert group.specs == [SpecRow(label="Fabric", value="Cotton")]
        assert group.size_chart == [{"size": "M", "measurements": []}]
        client.queries["products"].eq.assert_called_once_with("color_group_id", "base")

    def test_price_falls_back_to_retail(self):
        group, _ = self._load("base", BASE_ROW, [BASE_ROW])

        assert group.drafts[0].price == 650
        assert group.drafts[0].retail_price == 650

    def test_ungrouped_product_stands_alone(self):
        single = {**BASE_ROW, "id": "solo", "color_group_id": None}
        group, _ = self._load("solo", single, [])

        assert group.group_id == "solo"
        assert [d.id for d in group.drafts] == ["solo"]

    def test_missing_product(self):
        with patch("core.services.inventory_service.SupabaseClient.fetch_row", return_value=None):
            with pytest.raises(ProductNotFoundError):
                InventoryService.load_variant_group("gone")


class TestSaveVariantGroup:
    """Tests for reconciling the grouped editor with the products table."""

    def _save(self, request, inserted_id="fresh"):
        client = make_client({
            "products": make_query([{"id": inserted_id}]),
            "product_specs": make_query([]),
        })
        with patch("core.services.inventory_service.SupabaseClient.fetch_row", return_value=BASE_ROW), \
             patch("core.services.inventory_service.SupabaseClient.get_client", return_value=client), \
             patch("core.services.inventory_service.publish_inventory_change") as publish:
            result = InventoryService.save_variant_group(request)
        return result, client, publish

    def test_updates_inserts_and_deletes(self):
        request = VariantGroupSave(
            base_id="base",
            description="New copy",
            drafts=[
                _draft(id="base", color_name=""),
                _draft(id="blue", color_name="Blue"),
                _draft(id="new-1", color_name="Sky Blue"),
                _draft(id="tmp", is_new=True, color_name="Olive"),
                _draft(id="red", color_name="Red", is_deleted=True),
            ],
        )
        result, client, publish = self._save(request)
        products = client.queries["products"]

        assert result["updated"] == ["base", "blue"]
        assert result["inserted"] == ["fresh", "fresh"]
        assert result["deleted"] == ["red"]
        products.delete.assert_called_once()
        products.in_.assert_called_once_with("id", ["red"])

        first_insert = products.insert.call_args_list[0].args[0]
        assert first_insert["slug"] == "cotton-tee-sky-blue"
        assert first_insert["sku"] == "TEE01-SKYBLUE"
        assert first_insert["color_group_id"] == "base"
        assert first_insert["description"] == "New copy"

        base_update = products.update.call_args_list[0].args[0]
        assert base_update["color_name"] is None
        assert base_update["color_hex"] is None
        publish.assert_called_once_with(["base", "blue", "fresh", "fresh", "red"], "save_group")

    def test_base_product_is_never_deleted(self):
        request = VariantGroupSave(
            base_id="base",
            drafts=[
                _draft(id="base", color_name="", is_deleted=True),
                _draft(id="blue", color_name="Blue"),
            ],
        )
        result, client, _ = self._save(request)

        assert result["deleted"] == []
        client.queries["products"].delete.assert_not_called()

    def test_deleted_unsaved_drafts_are_dropped(self):
        request = VariantGroupSave(
            base_id="base",
            drafts=[
                _draft(id="base", color_name=""),
                _draft(id="new-2", color_name="Green", is_deleted=True),
            ],
        )
        result, client, _ = self._save(request)

        assert result["inserted"] == []
        assert result["deleted"] == []
        client.queries["products"].insert.assert_not_called()

    def test_specs_replaced_on_base(self):
        request = VariantGroupSave(
            base_id="base",
            drafts=[_draft(id="base", color_name="")],
            specs=[
                SpecRow(label=" Fabric ", value="Cotton"),
                SpecRow(label="Blank", value=" "),
                SpecRow(label="Fit", value="Regular"),
            ],
        )
        _, client, _ = self._save(request)
        specs = client.queries["product_specs"]

        specs.eq.assert_called_once_with("product_id", "base")
        specs.insert.assert_called_once_with([
            {"product_id": "base", "label": "Fabric", "value": "Cotton", "sort_order": 0},
            {"product_id": "base", "label": "Fit", "value": "Regular", "sort_order": 1},
        ])

    def test_first_invalid_draft_stops_before_writes(self):
        request = VariantGroupSave(
            base_id="base",
            drafts=[
                _draft(id="base", color_name=""),
                _draft(id="blue", color_name="Blue", price=0),
                _draft(id="new-1", color_name="", images=[]),
            ],
        )
        client = make_client()
        with patch("core.services.inventory_service.SupabaseClient.fetch_row", return_value=BASE_ROW), \
             patch("core.services.inventory_service.SupabaseClient.get_client", return_value=client), \
             patch("core.services.inventory_service.publish_inventory_change") as publish:
            with pytest.raises(ValidationFailedError, match="Blue: Price must be greater than 0"):
                InventoryService.save_variant_group(request)

        client.table.assert_not_called()
        publish.assert_not_called()

    def test_write_failure_raises_database_error(self):
        products = make_query([])
        products.execute.side_effect = Exception("connection reset")
        client = make_client({"products": products})
        request = VariantGroupSave(base_id="base", drafts=[_draft(id="base", color_name="")])

        with patch("core.services.inventory_service.SupabaseClient.fetch_row", return_value=BASE_ROW), \
             patch("core.services.inventory_service.SupabaseClient.get_client", return_value=client), \
             patch("core.services.inventory_service.publish_inventory_change") as publish:
            with pytest.raises(DatabaseError):
                InventoryService.save_variant_group(request)

        publish.assert_not_called()


# =============================================================================
# Image Uploads
# =============================================================================

class TestUploadImages:
    """Tests for product photo uploads."""

    def test_same_name_files_get_distinct_paths(self):
        files = [
            ("photo.jpg", "image/jpeg", b"one"),
            ("photo.jpg", "image/jpeg", b"two"),
        ]
        with patch("core.services.inventory_service.StorageService.validate_image"), \
             patch("core.services.inventory_service.StorageService.upload") as upload, \
             patch("core.services.inventory_service.StorageService.get_public_url",
                   side_effect=lambda bucket, path: f"https://cdn.test/{path}"):
            images = InventoryService.upload_images(
                "u1", {"id": "p1", "slug": "cotton-tee"}, files, ["https://cdn.test/old.jpg"]
            )

        paths = [c.args[1] for c in upload.call_args_list]
        assert len(set(paths)) == 2
        assert paths[0].endswith("/0-photo.jpg")
        assert paths[1].endswith("/1-photo.jpg")
        assert paths[0].startswith("u1/p1/cotton-tee/")
        assert images[0] == "https://cdn.test/old.jpg"
        assert len(images) == 3

    def test_rejects_more_than_remaining_slots(self):
        existing = [f"https://cdn.test/{i}.jpg" for i in range(5)]
        with patch("core.services.inventory_service.StorageService.upload") as upload:
            with pytest.raises(TooManyImagesError):
                InventoryService.upload_images(
                    "u1", {"id": "p1"}, [("a.jpg", "image/jpeg", b"x")], existing
                )
        upload.assert_not_called()
