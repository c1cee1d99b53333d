# =============================================================================
# core/models/order.py - Checkout and Order Schemas
# =============================================================================
# These models define the API contract for orders:
# - PlaceOrderRequest: cart checkout (signed-in customer or guest)
# - TrackOrderRequest: public order lookup by number + phone/email
# - OrderStatusUpdate: admin status change
#
# Prices are never taken from the client: items carry product ids and
# quantities only, and prices are re-read from the products table.
# =============================================================================

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

SHIPPING_INSIDE_DHAKA = 60
SHIPPING_OUTSIDE_DHAKA = 120
EXPRESS_SURCHARGE_INSIDE_DHAKA = 60
EXPRESS_SURCHARGE_OUTSIDE_DHAKA = 80


class OrderStatus(str, Enum):
    """orders.status values."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class CartItem(BaseModel):
    product_id: str = ""
    quantity: float = 0


class GuestDetails(BaseModel):
    """Contact and address for checkout without an account."""
    full_name: str = ""
    phone: str = ""
    division: str = ""
    district: str = ""
    city: str = ""
    road: str = ""
    zip_code: str = ""
    address: str = Field(default="", description="Full formatted address")


class PlaceOrderRequest(BaseModel):
    """
    Checkout request.

    Example:
        {
            "items": [{"product_id": "...", "quantity": 2}],
            "delivery_location": "inside",
            "shipping_speed": "express",
            "discount_code": "EID10",
            "payment_method": "bkash",
            "trx_id": "9XK2LM"
        }
    """
    items: list[CartItem] = Field(default_factory=list)
    delivery_location: Literal["inside", "outside"] = "inside"
    shipping_speed: Literal["standard", "express"] = "standard"
    discount_code: str | None = None
    payment_method: Literal["cod", "bkash"] = "cod"
    trx_id: str | None = None
    guest: GuestDetails | None = None


class TrackOrderRequest(BaseModel):
    order_number: str = ""
    contact: str = Field(default="", description="Phone number or email used on the order")


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class InvoiceEmailRequest(BaseModel):
    """Send the invoice email for an order to this address."""
    email: str = ""
