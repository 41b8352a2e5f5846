"""
Pricing engine — subtotal, discount, shipping, tax, grand total.

Pure: no I/O, no clock. Every intermediate is rounded to cents before it
feeds the next step.
"""

from __future__ import annotations

from collections.abc import Iterable

from storefront._types import Money, ZERO, to_cents
from storefront.pricing._types import (
    DiscountTerms,
    DiscountType,
    PriceBreakdown,
    PricedLine,
    PricingRates,
    ShippingTier,
)

DEFAULT_RATES = PricingRates()


def line_subtotal(line: PricedLine) -> Money:
    return to_cents(line.unit_price * line.quantity)


def meets_minimum_purchase(discount: DiscountTerms, subtotal: Money) -> bool:
    """A missing threshold is always met."""
    if discount.min_purchase is None:
        return True
    return subtotal >= discount.min_purchase


def discount_amount(discount: DiscountTerms, subtotal: Money) -> Money:
    """Reduction for subtotal, clamped to [0, subtotal]."""
    match discount.kind:
        case DiscountType.PERCENTAGE:
            raw = subtotal * discount.value / 100
        case DiscountType.FIXED:
            raw = discount.value
    return to_cents(min(max(raw, ZERO), subtotal))


def shipping_cost(tier: ShippingTier, subtotal: Money, rates: PricingRates) -> Money:
    """Free standard shipping is judged on the post-discount subtotal."""
    if tier is ShippingTier.EXPRESS:
        return to_cents(rates.express_shipping)
    if subtotal >= rates.free_shipping_threshold:
        return ZERO
    return to_cents(rates.standard_shipping)


def compute_totals(
    lines: Iterable[PricedLine],
    tier: ShippingTier,
    discount: DiscountTerms | None = None,
    rates: PricingRates = DEFAULT_RATES,
) -> PriceBreakdown:
    """
    Turn priced lines into a PriceBreakdown.

    A discount whose minimum purchase is not met is treated as absent.

    Example:
        compute_totals([PricedLine(Decimal("50.00"), 2)], ShippingTier.STANDARD)
        # subtotal=100.00, shipping=0.00, tax=8.00, grand_total=108.00
    """
    subtotal = to_cents(sum((line_subtotal(line) for line in lines), ZERO))

    reduction = ZERO
    applied_code: str | None = None
    if discount is not None and meets_minimum_purchase(discount, subtotal):
        reduction = discount_amount(discount, subtotal)
        applied_code = discount.code

    discounted = max(ZERO, to_cents(subtotal - reduction))
    shipping = shipping_cost(tier, discounted, rates)
    tax = to_cents((discounted + shipping) * rates.tax_rate)
    grand_total = to_cents(discounted + shipping + tax)

    return PriceBreakdown(
        subtotal=subtotal,
        discount_amount=reduction,
        discounted_subtotal=discounted,
        shipping_cost=shipping,
        tax=tax,
        grand_total=grand_total,
        discount_code=applied_code,
    )


__all__ = (
    "DEFAULT_RATES",
    "line_subtotal",
    "meets_minimum_purchase",
    "discount_amount",
    "shipping_cost",
    "compute_totals",
)
