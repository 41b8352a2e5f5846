"""
Pricing — pure order-total computation.

    from storefront import pricing as P

    totals = P.compute_totals(lines, P.ShippingTier.STANDARD, discount, rates)
"""

from __future__ import annotations

from storefront.pricing._types import (
    ShippingTier,
    DiscountType,
    PricedLine,
    DiscountTerms,
    PricingRates,
    PriceBreakdown,
)
from storefront.pricing._engine import (
    DEFAULT_RATES,
    line_subtotal,
    meets_minimum_purchase,
    discount_amount,
    shipping_cost,
    compute_totals,
)

__all__ = (
    "ShippingTier",
    "DiscountType",
    "PricedLine",
    "DiscountTerms",
    "PricingRates",
    "PriceBreakdown",
    "DEFAULT_RATES",
    "line_subtotal",
    "meets_minimum_purchase",
    "discount_amount",
    "shipping_cost",
    "compute_totals",
)
