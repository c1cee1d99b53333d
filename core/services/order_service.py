# =============================================================================
# core/services/order_service.py - Checkout and Order Business Logic
# =============================================================================
# Handles:
# - Checkout: validate contact/address, re-price items from the products
#   table, apply voucher, compute shipping, insert order + items
# - Public order tracking (order number + phone or email)
# - Customer order history and the admin orders list
# - Admin status changes and invoice data (invoice row created once per order)
#
# Checkout is the only place money is computed; prices sent by clients are
# never trusted.
# =============================================================================

import logging
import random
import re
from datetime import timedelta
from typing import Any

from lib.supabase_client import SupabaseClient
from lib.formatting import format_bdt, is_valid_bd_phone, normalize_bd_phone, phone_matches
from lib.utils import parse_timestamp, safe_int, to_number, utc_now, utc_now_iso
from core.models.order import (
    EXPRESS_SURCHARGE_INSIDE_DHAKA,
    EXPRESS_SURCHARGE_OUTSIDE_DHAKA,
    SHIPPING_INSIDE_DHAKA,
    SHIPPING_OUTSIDE_DHAKA,
    OrderStatus,
    PlaceOrderRequest,
)
from app.exceptions import (
    DatabaseError,
    InsufficientStockError,
    OrderNotFoundError,
    ProductUnavailableError,
    ValidationFailedError,
    VoucherError,
)

logger = logging.getLogger(__name__)

INVOICE_DUE_DAYS = 7
INVOICE_NOTES = "Thank you for shopping with Spraxe!"

TRACK_COLUMNS = (
    "id,user_id,order_number,status,created_at,updated_at,payment_method,payment_status,"
    "tracking_number,shipped_at,delivered_at,total,total_amount,shipping_cost,notes,"
    "delivery_location,contact_number,profiles(email,phone,full_name),"
    "order_items(product_name,quantity)"
)
ADMIN_ORDER_COLUMNS = (
    "id,order_number,user_id,status,customer_name,total,total_amount,created_at,"
    "contact_number,payment_method,payment_status,payment_trx_id,"
    "profiles(full_name,email,phone),order_items(id,product_name,quantity,size,color_name)"
)
VOUCHER_COLUMNS = (
    "code,discount_type,discount_value,min_purchase,max_uses,current_uses,"
    "valid_from,valid_until,is_active"
)

_ZIP_RE = re.compile(r"^\d{4}$")


# =============================================================================
# Pure helpers
# =============================================================================

def make_reference(prefix: str) -> str:
    """
    Human-readable order/invoice number.

    Example:
        make_reference("ORD")  # "ORD-20250114-4821"
    """
    return f"{prefix}-{utc_now().strftime('%Y%m%d')}-{random.randint(1000, 9999)}"


def shipping_cost(delivery_location: str, shipping_speed: str) -> int:
    """
    Shipping fee in BDT.

    Inside Dhaka 60 / outside 120, plus an express surcharge of 60 / 80.
    """
    inside = delivery_location != "outside"
    cost = SHIPPING_INSIDE_DHAKA if inside else SHIPPING_OUTSIDE_DHAKA
    if shipping_speed == "express":
        cost += EXPRESS_SURCHARGE_INSIDE_DHAKA if inside else EXPRESS_SURCHARGE_OUTSIDE_DHAKA
    return cost


def voucher_discount(voucher: dict[str, Any] | None, code: str, subtotal: float) -> int:
    """
    Validate a discount_codes row and compute its discount on the subtotal.

    Percentage or fixed; clamped to [0, subtotal] and rounded to whole taka.
    Shipping is never discounted.

    Raises:
        VoucherError: With a customer-facing reason when the code can't be used
    """
    if not voucher:
        raise VoucherError("Invalid voucher code.", code)

    now = utc_now()
    if not voucher.get("is_active"):
        raise VoucherError("Voucher is inactive.", code)

    valid_from = parse_timestamp(voucher.get("valid_from"))
    if valid_from and now < valid_from:
        raise VoucherError("Voucher is not active yet.", code)

    valid_until = parse_timestamp(voucher.get("valid_until"))
    if valid_until and now > valid_until:
        raise VoucherError("Voucher has expired.", code)

    minimum = to_number(voucher.get("min_purchase"))
    if minimum > 0 and subtotal < minimum:
        raise VoucherError(f"Minimum purchase {format_bdt(minimum)} required for this voucher.", code)

    max_uses = safe_int(voucher.get("max_uses"))
    if max_uses > 0 and safe_int(voucher.get("current_uses")) >= max_uses:
        raise VoucherError("Voucher usage limit reached.", code)

    value = to_number(voucher.get("discount_value"))
    if value <= 0:
        raise VoucherError("Voucher is invalid.", code)

    kind = str(voucher.get("discount_type") or "").lower()
    amount = subtotal * value / 100 if kind in ("percentage", "percent") else value
    amount = max(0.0, min(subtotal, amount))
    return int(amount + 0.5)


def payment_method_label(method: Any) -> str:
    """
    Display label for orders.payment_method on invoices.

    bkash -> "bKash"; cod/cash or blank -> "Cash on Delivery"; anything
    else is shown as stored.
    """
    text = str(method or "").strip()
    if not text:
        return "Cash on Delivery"
    low = text.lower()
    if "bkash" in low:
        return "bKash"
    if "cod" in low or "cash" in low:
        return "Cash on Delivery"
    return text


def invoice_item(item: dict[str, Any]) -> dict[str, Any]:
    """Invoice line from an order_items row; colour/size appended to the name."""
    quantity = to_number(item.get("quantity"))
    unit = to_number(item.get("unit_price") if item.get("unit_price") is not None else item.get("price"))
    raw_total = item.get("total_price") if item.get("total_price") is not None else item.get("total")
    line = to_number(raw_total) if raw_total is not None else quantity * unit

    meta = " • ".join(
        part for part in (
            f"Color: {item['color_name']}" if item.get("color_name") else None,
            f"Size: {item['size']}" if item.get("size") else None,
        ) if part
    )
    name = str(item.get("product_name") or item.get("name") or item.get("title") or "Product")

    return {
        "name": f"{name} ({meta})" if meta else name,
        "quantity": quantity,
        "price": unit,
        "total": line,
    }


def _order_total(order: dict[str, Any]) -> float:
    return to_number(order.get("total") or order.get("total_amount"))


def search_orders(orders: list[dict[str, Any]], q: str, sort: str = "newest") -> list[dict[str, Any]]:
    """
    Admin orders search and sort.

    Matches order number (or id), customer name, email, phone, payment
    method and bKash TRX id.
    """
    term = q.strip().lower()

    def matches(o: dict[str, Any]) -> bool:
        if not term:
            return True
        profile = o.get("profiles") or {}
        haystack = (
            o.get("order_number") or o.get("id"),
            profile.get("full_name") or o.get("customer_name"),
            profile.get("email"),
            o.get("contact_number") or profile.get("phone"),
            o.get("payment_method"),
            o.get("payment_trx_id"),
        )
        return any(term in str(value or "").lower() for value in haystack)

    result = [o for o in orders if matches(o)]

    if sort == "highest":
        result.sort(key=_order_total, reverse=True)
    elif sort == "lowest":
        result.sort(key=_order_total)
    else:
        result.sort(key=lambda o: str(o.get("created_at") or ""), reverse=(sort != "oldest"))

    return result


class OrderService:
    """
    Service for order operations.

    Provides a clean interface between API routes and database.
    """

    # -------------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------------

    @staticmethod
    def _resolve_contact(payload: PlaceOrderRequest, user_id: str | None) -> tuple[str, str, str]:
        """
        Name, phone and shipping address for the order.

        Signed-in customers must have all three on their profile; guests
        supply them in the request.
        """
        if user_id:
            profile = SupabaseClient.fetch_profile(user_id) or {}
            name = str(profile.get("full_name") or "").strip()
            phone = str(profile.get("phone") or "").strip()
            address = str(profile.get("address") or "").strip()
            if not name or not phone or not address:
                raise ValidationFailedError(
                    "Please add your full name, phone number, and address in your Profile."
                )
            return name, phone, address

        guest = payload.guest
        if guest is None:
            raise ValidationFailedError("Guest details are required.")

        name = guest.full_name.strip()
        if not name:
            raise ValidationFailedError("Full name is required.", field="full_name")
        if not is_valid_bd_phone(guest.phone):
            raise ValidationFailedError("Invalid phone number.", field="phone")
        if not all(v.strip() for v in (guest.division, guest.district, guest.city, guest.road)):
            raise ValidationFailedError("Please fill all required address fields.")
        zip_code = guest.zip_code.strip()
        if zip_code and not _ZIP_RE.match(zip_code):
            raise ValidationFailedError("Zip code must be 4 digits.", field="zip_code")

        address = guest.address.strip()
        if not address:
            raise ValidationFailedError("Address is required.", field="address")

        return name, normalize_bd_phone(guest.phone), address

    @staticmethod
    def _price_items(payload: PlaceOrderRequest) -> tuple[list[dict[str, Any]], float]:
        """
        Re-read products and build order_items rows.

        Raises:
            ValidationFailedError: Empty or invalid cart
            ProductUnavailableError: A product no longer exists
            InsufficientStockError: Quantity above a tracked stock level
        """
        product_ids = list(dict.fromkeys(i.product_id for i in payload.items if i.product_id))
        if not product_ids:
            raise ValidationFailedError("Invalid cart items.")

        client = SupabaseClient.get_client()
        try:
            products = (
                client.table("products")
                .select("id,name,sku,price,stock_quantity")
                .in_("id", product_ids)
                .execute()
            ).data or []
        except Exception as e:
            logger.error(f"Checkout product lookup failed: {e}")
            raise DatabaseError("load products for checkout", str(e))

        if not products:
            raise DatabaseError("load products for checkout", "No products returned")

        by_id = {str(p["id"]): p for p in products}
        rows = []
        subtotal = 0.0

        for item in payload.items:
            quantity = safe_int(item.quantity)
            if not item.product_id or quantity <= 0:
                continue

            product = by_id.get(item.product_id)
            if product is None:
                raise ProductUnavailableError()

            # Zero stock means stock isn't tracked for this product
            stock = safe_int(product.get("stock_quantity"))
            if 0 < stock < quantity:
                raise InsufficientStockError(str(product.get("name") or "a product"), stock)

            unit = to_number(product.get("price"))
            line = unit * quantity
            subtotal += line
            rows.append({
                "product_id": item.product_id,
                "product_name": str(product.get("name") or "Product"),
                "product_sku": str(product.get("sku") or item.product_id),
                "quantity": quantity,
                "unit_price": unit,
                "total_price": line,
            })

        if not rows:
            raise ValidationFailedError("No valid items to order.")

        return rows, subtotal

    @staticmethod
    def _load_voucher(code: str) -> dict[str, Any] | None:
        client = SupabaseClient.get_client()
        try:
            rows = (
                client.table("discount_codes")
                .select(VOUCHER_COLUMNS)
                .eq("code", code)
                .limit(1)
                .execute()
            ).data or []
        except Exception as e:
            logger.error(f"Discount code lookup error: {e}")
            raise DatabaseError("validate voucher", str(e))
        return rows[0] if rows else None

    @staticmethod
    def place_order(payload: PlaceOrderRequest, user_id: str | None = None) -> dict[str, Any]:
        """
        Create an order from a cart.

        Args:
            payload: Checkout request
            user_id: Signed-in customer, or None for guest checkout

        Returns:
            {"order_id", "order_number", "contact", "total"}

        Raises:
            ValidationFailedError: Empty cart, missing bKash TRX id, bad contact
            ProductUnavailableError / InsufficientStockError: Cart problems
            VoucherError: Voucher can't be applied
            DatabaseError: Order could not be saved
        """
        if not payload.items:
            raise ValidationFailedError("Cart is empty.")

        trx_id = (payload.trx_id or "").strip()
        if payload.payment_method == "bkash" and not trx_id:
            raise ValidationFailedError("TRX ID is required for bKash.", field="trx_id")

        name, phone, address = OrderService._resolve_contact(payload, user_id)
        items, subtotal = OrderService._price_items(payload)

        code = (payload.discount_code or "").strip().upper() or None
        discount = 0
        voucher = None
        if code:
            voucher = OrderService._load_voucher(code)
            discount = voucher_discount(voucher, code, subtotal)

        shipping = shipping_cost(payload.delivery_location, payload.shipping_speed)
        total = max(0.0, subtotal - discount) + shipping
        order_number = make_reference("ORD")

        speed_label = "Express" if payload.shipping_speed == "express" else "Standard"
        area_label = "Inside Dhaka" if payload.delivery_location == "inside" else "Outside Dhaka"

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("orders")
                .insert({
                    "user_id": user_id,
                    "order_number": order_number,
                    "status": OrderStatus.PENDING.value,
                    "subtotal": subtotal,
                    "discount": discount,
                    "shipping_cost": shipping,
                    "total": total,
                    "tax_amount": 0,
                    "discount_code": code,
                    "discount_amount": discount,
                    "total_amount": total,
                    "delivery_location": payload.delivery_location,
                    "contact_number": phone,
                    "shipping_address": address,
                    "customer_name": name,
                    "notes": f"Shipping: {speed_label} • Area: {area_label}",
                    "payment_method": "bKash" if payload.payment_method == "bkash" else "Cash on Delivery",
                    "payment_status": "pending",
                    "payment_trx_id": trx_id if payload.payment_method == "bkash" else None,
                })
                .execute()
            )
        except Exception as e:
            logger.error(f"Order insert error: {e}")
            raise DatabaseError("create order", str(e))

        if not response.data:
            raise DatabaseError("create order", "No data returned from insert")

        order_id = response.data[0]["id"]

        try:
            client.table("order_items").insert([{**row, "order_id": order_id} for row in items]).execute()
        except Exception as e:
            logger.error(f"Order items insert error, rolling back {order_id}: {e}")
            client.table("orders").delete().eq("id", order_id).execute()
            raise DatabaseError("create order items", str(e))

        if voucher:
            try:
                (
                    client.table("discount_codes")
                    .update({"current_uses": safe_int(voucher.get("current_uses")) + 1})
                    .eq("code", voucher["code"])
                    .execute()
                )
            except Exception as e:
                logger.warning(f"Voucher use update failed: {e}")

        logger.info(f"Placed order {order_number} ({len(items)} items, total {total})")
        return {
            "order_id": order_id,
            "order_number": order_number,
            "contact": phone,
            "total": total,
        }

    # -------------------------------------------------------------------------
    # Tracking
    # -------------------------------------------------------------------------

    @staticmethod
    def track_order(order_number: str, contact: str) -> dict[str, Any]:
        """
        Public order lookup.

        The contact must match the order: an email is compared with the
        profile (or auth) email, a phone with the order or profile phone.
        Every mismatch gives the same "Order not found." response.

        Raises:
            ValidationFailedError: If either field is blank
            OrderNotFoundError: If no order matches
        """
        number = (order_number or "").strip()
        contact = (contact or "").strip()
        if not number or not contact:
            raise ValidationFailedError("Order number and contact are required.")

        client = SupabaseClient.get_client()
        try:
            rows = (
                client.table("orders")
                .select(TRACK_COLUMNS)
                .ilike("order_number", number)
                .limit(1)
                .execute()
            ).data or []
        except Exception as e:
            logger.warning(f"Track order lookup failed: {e}")
            raise OrderNotFoundError()

        if not rows:
            raise OrderNotFoundError()
        order = rows[0]
        profile = order.get("profiles") or {}

        if "@" in contact:
            email = contact.lower()
            matched = str(profile.get("email") or "").lower() == email
            if not matched and order.get("user_id"):
                auth_email = SupabaseClient.fetch_auth_email(order["user_id"])
                matched = bool(auth_email) and auth_email.lower() == email
        else:
            matched = phone_matches(contact, order.get("contact_number")) or phone_matches(
                contact, profile.get("phone")
            )

        if not matched:
            raise OrderNotFoundError()

        return {
            "order_id": order["id"],
            "order_number": order.get("order_number"),
            "status": order.get("status"),
            "created_at": order.get("created_at"),
            "updated_at": order.get("updated_at"),
            "payment_method": order.get("payment_method"),
            "payment_status": order.get("payment_status"),
            "tracking_number": order.get("tracking_number"),
            "shipped_at": order.get("shipped_at"),
            "delivered_at": order.get("delivered_at"),
            "delivery_location": order.get("delivery_location"),
            "total": order.get("total"),
            "total_amount": order.get("total_amount"),
            "shipping_cost": order.get("shipping_cost"),
            "notes": order.get("notes"),
            "items": order.get("order_items") or [],
        }

    # -------------------------------------------------------------------------
    # Lists
    # -------------------------------------------------------------------------

    @staticmethod
    def list_customer_orders(user_id: str, status: str = "all", search: str = "") -> list[dict[str, Any]]:
        """The signed-in customer's orders, newest first."""
        client = SupabaseClient.get_client()
        query = client.table("orders").select("*, order_items(product_name,quantity)").eq("user_id", user_id)
        if status != "all":
            query = query.eq("status", status)

        try:
            orders = query.order("created_at", desc=True).execute().data or []
        except Exception as e:
            raise DatabaseError("load orders", str(e))

        term = search.strip().lower()
        if term:
            orders = [
                o for o in orders
                if term in str(o.get("order_number") or "").lower()
                or any(term in str(i.get("product_name") or "").lower() for i in o.get("order_items") or [])
            ]
        for order in orders:
            order["payment_label"] = payment_method_label(order.get("payment_method"))
        return orders

    @staticmethod
    def list_admin_orders(status: str = "all", search: str = "", sort: str = "newest") -> dict[str, Any]:
        """
        All orders for the admin orders page.

        Returns:
            {"orders", "kpis": {total_orders, revenue, pending, processing}}
        """
        client = SupabaseClient.get_client()
        query = client.table("orders").select(ADMIN_ORDER_COLUMNS).order("created_at", desc=True)
        if status != "all":
            query = query.eq("status", status)

        try:
            orders = query.execute().data or []
        except Exception as e:
            logger.error(f"Failed to fetch orders: {e}")
            raise DatabaseError("fetch orders", str(e))

        kpis = {
            "total_orders": len(orders),
            "revenue": sum(_order_total(o) for o in orders),
            "pending": sum(1 for o in orders if o.get("status") == OrderStatus.PENDING.value),
            "processing": sum(1 for o in orders if o.get("status") == OrderStatus.PROCESSING.value),
        }
        return {"orders": search_orders(orders, search, sort), "kpis": kpis}

    @staticmethod
    def update_order_status(order_id: str, status: OrderStatus) -> dict[str, Any]:
        """
        Change an order's status.

        Returns:
            {"order_id", "status", "customer_email"}; the caller queues the
            invoice email when the new status is "processing"
        """
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("orders")
                .update({"status": status.value, "updated_at": utc_now_iso()})
                .eq("id", order_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update status of {order_id}: {e}")
            raise DatabaseError("update status", str(e))

        if not response.data:
            raise OrderNotFoundError(order_id)

        order = response.data[0]
        email = None
        if order.get("user_id"):
            profile = SupabaseClient.fetch_profile(order["user_id"]) or {}
            email = profile.get("email") or SupabaseClient.fetch_auth_email(order["user_id"])

        logger.info(f"Order {order_id} -> {status.value}")
        return {"order_id": order_id, "status": status.value, "customer_email": email}

    # -------------------------------------------------------------------------
    # Invoice
    # -------------------------------------------------------------------------

    @staticmethod
    def get_order_owner(order_id: str) -> str | None:
        """
        Owner user id of an order (None for guest orders).

        Raises:
            OrderNotFoundError: If the order doesn't exist
        """
        order = SupabaseClient.fetch_row("orders", order_id, "id,user_id")
        if not order:
            raise OrderNotFoundError(order_id)
        return str(order["user_id"]) if order.get("user_id") else None

    @staticmethod
    def _find_invoice(client: Any, order_id: str) -> dict[str, Any] | None:
        try:
            rows = client.table("invoices").select("*").eq("order_id", order_id).limit(1).execute().data or []
        except Exception as e:
            logger.warning(f"Invoice lookup failed: {e}")
            return None
        return rows[0] if rows else None

    @staticmethod
    def get_invoice_data(order_id: str) -> dict[str, Any]:
        """
        Build the invoice for an order.

        The first call creates the invoices row (INV-YYYYMMDD-NNNN); later
        calls read it back, so the number and issue date stay fixed.
        Totals fall back to values computed from the items when the order
        columns are empty.

        Raises:
            OrderNotFoundError: If the order doesn't exist
        """
        order = SupabaseClient.fetch_row(
            "orders",
            order_id,
            "*, profiles(full_name,email,phone,address,division,district,city,road,zip_code)",
        )
        if not order:
            raise OrderNotFoundError(order_id)

        profile = order.get("profiles") or {}
        if isinstance(profile, list):
            profile = profile[0] if profile else {}

        client = SupabaseClient.get_client()
        try:
            raw_items = client.table("order_items").select("*").eq("order_id", order_id).execute().data or []
        except Exception as e:
            logger.error(f"Invoice items fetch error: {e}")
            raw_items = []

        items = [invoice_item(i) for i in raw_items]
        computed_subtotal = max(0.0, sum(i["total"] for i in items))
        subtotal = to_number(order.get("subtotal")) or computed_subtotal

        raw_discount = order.get("discount_amount") if order.get("discount_amount") is not None else order.get("discount")
        discount = max(0.0, to_number(raw_discount))
        shipping = max(0.0, to_number(order.get("shipping_cost")))
        raw_total = order.get("total_amount") if order.get("total_amount") is not None else order.get("total")
        total = to_number(raw_total) or max(0.0, subtotal - discount + shipping)

        now = utc_now()
        new_invoice = {
            "order_id": order_id,
            "invoice_number": make_reference("INV"),
            "issue_date": now.isoformat(),
            "due_date": (now + timedelta(days=INVOICE_DUE_DAYS)).isoformat(),
            "subtotal": subtotal,
            "total_amount": total,
            "notes": INVOICE_NOTES,
        }

        invoice = OrderService._find_invoice(client, order_id)
        if invoice is None:
            try:
                # A concurrent first call may have created it; keep that row.
                client.table("invoices").upsert(
                    new_invoice, on_conflict="order_id", ignore_duplicates=True
                ).execute()
            except Exception as e:
                logger.error(f"Invoice create error: {e}")
            invoice = OrderService._find_invoice(client, order_id)
        invoice = invoice or new_invoice

        method = payment_method_label(order.get("payment_method"))
        trx_id = str(order.get("payment_trx_id") or "").strip()
        payment: dict[str, Any] = {"method": method}
        if "bkash" in method.lower() and trx_id:
            payment["trx_id"] = trx_id

        issue = parse_timestamp(invoice.get("issue_date")) or now
        due = parse_timestamp(invoice.get("due_date")) or now + timedelta(days=INVOICE_DUE_DAYS)

        return {
            "invoice_number": str(invoice.get("invoice_number") or new_invoice["invoice_number"]),
            "issue_date": issue.strftime("%d %b %Y"),
            "due_date": due.strftime("%d %b %Y"),
            "payment": payment,
            "customer": {
                "name": str(profile.get("full_name") or order.get("customer_name") or "Valued Customer"),
                "phone": str(order.get("contact_number") or order.get("phone") or profile.get("phone") or "N/A"),
                "address": str(
                    order.get("shipping_address")
                    or profile.get("address")
                    or order.get("address")
                    or order.get("delivery_location")
                    or "Address not provided"
                ),
            },
            "items": items,
            "subtotal": subtotal,
            "discount_code": order.get("discount_code") or None,
            "discount_amount": discount,
            "shipping_cost": shipping,
            "total_amount": total,
            "notes": str(invoice.get("notes") or ""),
        }
