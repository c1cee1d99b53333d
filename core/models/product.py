# =============================================================================
# core/models/product.py - Product and Inventory Schemas
# =============================================================================
# These models define the API contract for inventory operations:
# - InventoryFilters: list/search/sort/paginate products (admin + seller)
# - BulkEditRequest: tri-state bulk edit where "keep"/blank means untouched
# - VariantDraft / VariantGroupSave: edit every colour of a product at once
# - SellerProductUpdate: the subset of fields a seller may change
#
# A "variant group" is every products row sharing one color_group_id. The
# base row has color_name NULL; each colour is its own row.
# =============================================================================

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from lib.size_chart import SizeOption

PAGE_SIZE = 20
LOW_STOCK_THRESHOLD = 5
MAX_IMAGES = 5


class ApprovalStatus(str, Enum):
    """products.approval_status values."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProductSort(str, Enum):
    """Inventory list orderings."""
    UPDATED_DESC = "updated_desc"
    STOCK_ASC = "stock_asc"
    STOCK_DESC = "stock_desc"
    PRICE_DESC = "price_desc"
    PRICE_ASC = "price_asc"


class StockFilter(str, Enum):
    """out: stock <= 0, low: 1..LOW_STOCK_THRESHOLD."""
    ALL = "all"
    OUT = "out"
    LOW = "low"


class InventoryFilters(BaseModel):
    """
    Filters for the inventory list.

    Example:
        {"q": "shirt", "stock": "low", "sort": "stock_asc", "page": 2}
    """
    q: str = Field(default="", description="Search name, SKU or slug")
    active: Literal["all", "active", "inactive"] = "all"
    approval: Literal["all", "pending", "approved", "rejected"] = "all"
    stock: StockFilter = StockFilter.ALL
    show_variants: bool = Field(default=False, description="Include colour variant rows")
    sort: ProductSort = ProductSort.UPDATED_DESC
    page: int = Field(default=1, ge=1)


class BulkEditRequest(BaseModel):
    """
    Bulk edit for selected products.

    Tri-state fields use "keep" to leave the column untouched; numeric
    fields are strings where blank means untouched.
    """
    ids: list[str] = Field(..., min_length=1)
    is_active: Literal["keep", "true", "false"] = "keep"
    is_featured: Literal["keep", "true", "false"] = "keep"
    approval_status: Literal["keep", "pending", "approved", "rejected"] = "keep"
    stock_quantity: str = ""
    price: str = ""
    retail_price: str = ""
    base_price: str = ""

    model_config = {
        "json_schema_extra": {
            "example": {
                "ids": ["550e8400-e29b-41d4-a716-446655440000"],
                "is_active": "true",
                "stock_quantity": "25",
            }
        }
    }


class SpecRow(BaseModel):
    """Manual specification row (shared by every variant via the base)."""
    label: str = ""
    value: str = ""


class VariantDraft(BaseModel):
    """
    Editable state of one colour variant.

    New variants have an id starting with "new-" (or is_new=True) and are
    inserted on save.
    """
    id: str
    is_new: bool = False
    is_deleted: bool = False
    stock_quantity: float = 0
    price: float = 0
    retail_price: float = 0
    base_price: float = 0
    min_order_quantity: float = 1
    unit: str = "pieces"
    is_active: bool = True
    is_featured: bool = False
    approval_status: str = ApprovalStatus.APPROVED.value
    color_group_id: str = ""
    color_name: str = ""
    color_hex: str = ""
    images: list[str] = Field(default_factory=list)
    description: str = ""

    @property
    def is_unsaved(self) -> bool:
        return self.is_new or self.id.startswith("new-")


class VariantGroup(BaseModel):
    """Loaded variant group returned to the editor."""
    group_id: str
    base_id: str
    selected_id: str
    description: str = ""
    drafts: list[VariantDraft]
    size_chart: list[dict[str, Any]] = Field(default_factory=list)
    specs: list[SpecRow] = Field(default_factory=list)


class VariantGroupSave(BaseModel):
    """Save request for a variant group."""
    base_id: str
    drafts: list[VariantDraft]
    description: str = ""
    size_chart: list[dict[str, Any]] = Field(default_factory=list)
    specs: list[SpecRow] = Field(default_factory=list)

    def size_chart_options(self) -> list[SizeOption]:
        return [SizeOption.from_dict(entry) for entry in self.size_chart]


class HotlinkRequest(BaseModel):
    """Add external image URLs to an image list."""
    images: list[str] = Field(default_factory=list, description="Current image list")
    urls: list[str] = Field(..., min_length=1)


class SellerProductUpdate(BaseModel):
    """Fields a seller may edit on their own product."""
    stock_quantity: float = 0
    base_price: float = 0
    price: float = 0
    retail_price: float = 0
    unit: str = "pieces"
    is_active: bool = True
    images: list[str] = Field(default_factory=list)
