"""
Cart types — live view of a user's saved lines.
"""

from __future__ import annotations

from dataclasses import dataclass

from storefront._types import Money, ZERO
from storefront.catalog import Product
from storefront.pricing import PricedLine


@dataclass(frozen=True, slots=True)
class CartLine:
    line_id: int
    product_id: int
    quantity: int
    product: Product
    line_subtotal: Money

    def priced(self) -> PricedLine:
        return PricedLine(unit_price=self.product.price, quantity=self.quantity)


@dataclass(frozen=True, slots=True)
class CartView:
    """
    Best-effort current state of a cart.

    Prices come from the live product rows; lines whose product is gone
    are already dropped.
    """

    user_id: int
    lines: tuple[CartLine, ...] = ()
    subtotal: Money = ZERO

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def priced_lines(self) -> list[PricedLine]:
        return [line.priced() for line in self.lines]


__all__ = ("CartLine", "CartView")
