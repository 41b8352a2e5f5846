"""
SQLAlchemy models — catalog, cart, discounts, orders.

Ids are generated by the database (integer primary keys) or randomly
(order ids); nothing here depends on an in-process counter.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from storefront._types import utc_now


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


def _money() -> Numeric[Decimal]:
    return Numeric(12, 2, asdecimal=True)


class TimestampMixin:
    """
    Adds created_at / updated_at columns.

    updated_at is refreshed by the ORM on every flush of the row and by
    explicit UPDATE statements that set it.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════════════════════


class ProductRow(Base, TimestampMixin):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("available_stock >= 0", name="ck_products_stock_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    available_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Cart — one container per user, many lines
# ═══════════════════════════════════════════════════════════════════════════════


class CartRow(Base, TimestampMixin):
    __tablename__ = "carts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True, index=True)


class CartLineRow(Base, TimestampMixin):
    __tablename__ = "cart_lines"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_lines_cart_product"),
        CheckConstraint("quantity > 0", name="ck_cart_lines_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cart_id: Mapped[int] = mapped_column(
        ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Discounts
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountRow(Base, TimestampMixin):
    """
    Coupon record.

    status is a cache of derive_status(start_date, end_date, now) for
    listing/indexing; checkout always recomputes it.
    """

    __tablename__ = "discounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    min_purchase: Mapped[Decimal | None] = mapped_column(_money(), nullable=True)
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class OrderRow(Base, TimestampMixin):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    shipping_address: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    shipping_tier: Mapped[str] = mapped_column(String(20), nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    discount_id: Mapped[int | None] = mapped_column(
        ForeignKey("discounts.id", ondelete="SET NULL"), nullable=True
    )
    discount_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    discount_amount: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    shipping_cost: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    tax: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    total: Mapped[Decimal] = mapped_column(_money(), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_reference: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True
    )

    lines: Mapped[list[OrderLineRow]] = relationship(
        back_populates="order",
        lazy="selectin",
        order_by="OrderLineRow.id",
        cascade="all, delete-orphan",
    )


class OrderLineRow(Base):
    """Frozen copy of a cart line at order time."""

    __tablename__ = "order_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    line_total: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    # Cart line this was taken from; confirmation deletes exactly these
    cart_line_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    order: Mapped[OrderRow] = relationship(back_populates="lines")


__all__ = (
    "Base",
    "TimestampMixin",
    "ProductRow",
    "CartRow",
    "CartLineRow",
    "DiscountRow",
    "OrderRow",
    "OrderLineRow",
)
