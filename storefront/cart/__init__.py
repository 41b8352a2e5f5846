"""
Cart — a user's saved lines priced against the live catalog.

    from storefront import cart as C

    carts = C.CartAggregator(session_factory)
    view = await carts.load(user_id)
"""

from __future__ import annotations

from storefront.cart._types import CartLine, CartView
from storefront.cart._aggregator import (
    fetch_cart,
    settle_cart_lines,
    CartAggregator,
)

__all__ = (
    "CartLine",
    "CartView",
    "fetch_cart",
    "settle_cart_lines",
    "CartAggregator",
)
