"""
Persistence — SQLAlchemy 2.0 async models and engine setup.

    from storefront import db

    session_factory, engine = await db.create_database("sqlite+aiosqlite:///shop.db")
"""

from __future__ import annotations

from storefront.db._models import (
    Base,
    TimestampMixin,
    ProductRow,
    CartRow,
    CartLineRow,
    DiscountRow,
    OrderRow,
    OrderLineRow,
)
from storefront.db._engine import SessionFactory, create_database

__all__ = (
    "Base",
    "TimestampMixin",
    "ProductRow",
    "CartRow",
    "CartLineRow",
    "DiscountRow",
    "OrderRow",
    "OrderLineRow",
    "SessionFactory",
    "create_database",
)
