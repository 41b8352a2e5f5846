"""
Checkout types — order state machine and the records checkout produces.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from storefront._types import Money, to_cents, to_minor_units
from storefront.cart import CartView
from storefront.db import OrderRow
from storefront.discounts import Discount
from storefront.pricing import PriceBreakdown, ShippingTier


# ═══════════════════════════════════════════════════════════════════════════════
# State Machine
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(StrEnum):
    """
    Fulfillment status.

    Lifecycle:
        Pending → Processing → Shipped → Delivered
        Pending | Processing → Cancelled
    """

    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class PaymentStatus(StrEnum):
    """pending → success | failed, exactly once."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


# ═══════════════════════════════════════════════════════════════════════════════
# Order
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ShippingAddress:
    full_name: str
    line1: str
    city: str
    country: str
    line2: str | None = None
    region: str | None = None
    postal_code: str | None = None
    phone: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShippingAddress:
        return cls(
            full_name=data["full_name"],
            line1=data["line1"],
            city=data["city"],
            country=data["country"],
            line2=data.get("line2"),
            region=data.get("region"),
            postal_code=data.get("postal_code"),
            phone=data.get("phone"),
        )


@dataclass(frozen=True, slots=True)
class OrderLine:
    """Snapshot of a product at order time. Never re-read from the catalog."""

    product_id: int
    name: str
    price: Money
    quantity: int
    line_total: Money
    cart_line_id: int | None = None


@dataclass(frozen=True, slots=True)
class Order:
    id: str
    user_id: int
    status: OrderStatus
    payment_status: PaymentStatus
    lines: tuple[OrderLine, ...]
    shipping_address: ShippingAddress
    shipping_tier: ShippingTier
    subtotal: Money
    discount_id: int | None
    discount_code: str | None
    discount_amount: Money
    shipping_cost: Money
    tax: Money
    total: Money
    payment_reference: str | None
    created_at: datetime

    @property
    def total_minor_units(self) -> int:
        return to_minor_units(self.total)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def cart_line_quantities(self) -> dict[int, int]:
        """Cart line id -> quantity ordered from it."""
        return {
            line.cart_line_id: line.quantity
            for line in self.lines
            if line.cart_line_id is not None
        }

    @classmethod
    def from_row(cls, row: OrderRow) -> Order:
        return cls(
            id=row.id,
            user_id=row.user_id,
            status=OrderStatus(row.status),
            payment_status=PaymentStatus(row.payment_status),
            lines=tuple(
                OrderLine(
                    product_id=line.product_id,
                    name=line.name,
                    price=to_cents(line.price),
                    quantity=line.quantity,
                    line_total=to_cents(line.line_total),
                    cart_line_id=line.cart_line_id,
                )
                for line in row.lines
            ),
            shipping_address=ShippingAddress.from_dict(row.shipping_address),
            shipping_tier=ShippingTier(row.shipping_tier),
            subtotal=to_cents(row.subtotal),
            discount_id=row.discount_id,
            discount_code=row.discount_code,
            discount_amount=to_cents(row.discount_amount),
            shipping_cost=to_cents(row.shipping_cost),
            tax=to_cents(row.tax),
            total=to_cents(row.total),
            payment_reference=row.payment_reference,
            created_at=row.created_at,
        )


@dataclass(frozen=True, slots=True)
class OrderSummary:
    """One row of an order history listing."""

    id: str
    user_id: int
    created_at: datetime
    status: OrderStatus
    payment_status: PaymentStatus
    total: Money
    item_count: int

    @classmethod
    def from_order(cls, order: Order) -> OrderSummary:
        return cls(
            id=order.id,
            user_id=order.user_id,
            created_at=order.created_at,
            status=order.status,
            payment_status=order.payment_status,
            total=order.total,
            item_count=order.item_count,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Operation Results
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Quote:
    """Server-side totals for the current cart. discount is set only if applied."""

    cart: CartView
    breakdown: PriceBreakdown
    discount: Discount | None = None


@dataclass(frozen=True, slots=True)
class PlacedOrder:
    """What the client needs to redirect to the payment gateway."""

    order_id: str
    grand_total: Money
    grand_total_minor_units: int
    payment_reference: str


__all__ = (
    "OrderStatus",
    "PaymentStatus",
    "ShippingAddress",
    "OrderLine",
    "Order",
    "OrderSummary",
    "Quote",
    "PlacedOrder",
)
