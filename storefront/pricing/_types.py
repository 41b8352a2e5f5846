"""
Pricing types — inputs and the breakdown they produce.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

from storefront._types import Money, ZERO, to_minor_units


class ShippingTier(StrEnum):
    STANDARD = "standard"
    EXPRESS = "express"


class DiscountType(StrEnum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


# ═══════════════════════════════════════════════════════════════════════════════
# Inputs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PricedLine:
    unit_price: Money
    quantity: int


@dataclass(frozen=True, slots=True)
class DiscountTerms:
    """The part of a coupon the pricing engine needs."""

    code: str
    kind: DiscountType
    value: Decimal
    min_purchase: Money | None = None


@dataclass(frozen=True, slots=True)
class PricingRates:
    standard_shipping: Money = Decimal("15.00")
    express_shipping: Money = Decimal("25.00")
    free_shipping_threshold: Money = Decimal("100.00")
    tax_rate: Decimal = Decimal("0.08")


# ═══════════════════════════════════════════════════════════════════════════════
# Output
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    """
    Final totals.

    subtotal is the pre-discount figure kept for display;
    discounted_subtotal is what shipping and tax were computed from.
    """

    subtotal: Money
    discount_amount: Money
    discounted_subtotal: Money
    shipping_cost: Money
    tax: Money
    grand_total: Money
    discount_code: str | None = None

    @property
    def discount_applied(self) -> bool:
        return self.discount_code is not None

    @property
    def grand_total_minor_units(self) -> int:
        return to_minor_units(self.grand_total)

    @classmethod
    def empty(cls) -> PriceBreakdown:
        return cls(ZERO, ZERO, ZERO, ZERO, ZERO, ZERO)


__all__ = (
    "ShippingTier",
    "DiscountType",
    "PricedLine",
    "DiscountTerms",
    "PricingRates",
    "PriceBreakdown",
)
