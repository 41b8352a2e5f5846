"""Tests for the pricing engine."""

from decimal import Decimal

import pytest

from storefront.pricing import (
    DiscountTerms,
    DiscountType,
    PriceBreakdown,
    PricedLine,
    PricingRates,
    ShippingTier,
    compute_totals,
    discount_amount,
    line_subtotal,
    meets_minimum_purchase,
    shipping_cost,
)
from storefront._types import to_cents, to_minor_units

D = Decimal
TWO_FIFTIES = [PricedLine(unit_price=D("50.00"), quantity=2)]
TEN_PERCENT = DiscountTerms(code="SAVE10", kind=DiscountType.PERCENTAGE, value=D("10"), min_purchase=D("50.00"))


class TestComputeTotals:
    def test_standard_shipping_free_at_threshold(self):
        totals = compute_totals(TWO_FIFTIES, ShippingTier.STANDARD)

        assert totals.subtotal == D("100.00")
        assert totals.shipping_cost == D("0.00")
        assert totals.tax == D("8.00")
        assert totals.grand_total == D("108.00")
        assert totals.grand_total_minor_units == 10800
        assert not totals.discount_applied

    def test_express_shipping_is_flat_and_taxed(self):
        totals = compute_totals(TWO_FIFTIES, ShippingTier.EXPRESS)

        assert totals.shipping_cost == D("25.00")
        assert totals.tax == D("10.00")
        assert totals.grand_total == D("135.00")

    def test_discount_pushes_subtotal_below_free_shipping(self):
        totals = compute_totals(TWO_FIFTIES, ShippingTier.STANDARD, TEN_PERCENT)

        assert totals.subtotal == D("100.00")
        assert totals.discount_amount == D("10.00")
        assert totals.discounted_subtotal == D("90.00")
        assert totals.shipping_cost == D("15.00")
        assert totals.tax == D("8.40")
        assert totals.grand_total == D("113.40")
        assert totals.discount_code == "SAVE10"

    def test_unmet_minimum_means_no_discount(self):
        lines = [PricedLine(unit_price=D("20.00"), quantity=2)]
        totals = compute_totals(lines, ShippingTier.STANDARD, TEN_PERCENT)

        assert totals.discount_amount == D("0.00")
        assert totals.discount_code is None
        assert totals.grand_total == D("59.40")

    def test_empty_lines(self):
        totals = compute_totals([], ShippingTier.STANDARD)
        assert totals.subtotal == D("0.00")
        # Standard shipping still applies below the threshold
        assert totals.shipping_cost == D("15.00")

    def test_custom_rates(self):
        rates = PricingRates(
            standard_shipping=D("5.00"),
            express_shipping=D("9.00"),
            free_shipping_threshold=D("1000.00"),
            tax_rate=D("0.20"),
        )
        totals = compute_totals(TWO_FIFTIES, ShippingTier.STANDARD, rates=rates)
        assert totals.shipping_cost == D("5.00")
        assert totals.tax == D("21.00")
        assert totals.grand_total == D("126.00")

    def test_rounding_half_up_on_tax(self):
        # 10.06 * 0.08 = 0.8048 -> 0.80; 10.07 * 0.08 = 0.8056 -> 0.81
        rates = PricingRates(standard_shipping=D("0.00"))
        low = compute_totals([PricedLine(D("10.06"), 1)], ShippingTier.STANDARD, rates=rates)
        high = compute_totals([PricedLine(D("10.07"), 1)], ShippingTier.STANDARD, rates=rates)
        assert low.tax == D("0.80")
        assert high.tax == D("0.81")

    def test_empty_breakdown_is_all_zero(self):
        empty = PriceBreakdown.empty()
        assert empty.grand_total == D("0.00")
        assert empty.grand_total_minor_units == 0


class TestDiscountAmount:
    def test_fixed_clamped_to_subtotal(self):
        terms = DiscountTerms(code="BIG", kind=DiscountType.FIXED, value=D("500.00"))
        assert discount_amount(terms, D("120.00")) == D("120.00")

        totals = compute_totals([PricedLine(D("120.00"), 1)], ShippingTier.STANDARD, terms)
        assert totals.discounted_subtotal == D("0.00")
        assert totals.shipping_cost == D("15.00")

    def test_percentage_over_hundred_clamped(self):
        terms = DiscountTerms(code="ALL", kind=DiscountType.PERCENTAGE, value=D("150"))
        assert discount_amount(terms, D("40.00")) == D("40.00")

    def test_negative_value_clamped_to_zero(self):
        terms = DiscountTerms(code="NEG", kind=DiscountType.FIXED, value=D("-5.00"))
        assert discount_amount(terms, D("40.00")) == D("0.00")

    def test_percentage_rounds_to_cents(self):
        terms = DiscountTerms(code="THIRD", kind=DiscountType.PERCENTAGE, value=D("33.333"))
        assert discount_amount(terms, D("10.00")) == D("3.33")


class TestHelpers:
    def test_missing_minimum_is_always_met(self):
        terms = DiscountTerms(code="ANY", kind=DiscountType.FIXED, value=D("1.00"))
        assert meets_minimum_purchase(terms, D("0.00"))

    def test_minimum_is_inclusive(self):
        assert meets_minimum_purchase(TEN_PERCENT, D("50.00"))
        assert not meets_minimum_purchase(TEN_PERCENT, D("49.99"))

    def test_line_subtotal(self):
        assert line_subtotal(PricedLine(D("19.99"), 3)) == D("59.97")

    @pytest.mark.parametrize(
        ("subtotal", "expected"),
        [("99.99", "15.00"), ("100.00", "0.00"), ("250.00", "0.00")],
    )
    def test_standard_shipping_threshold(self, subtotal, expected):
        assert shipping_cost(ShippingTier.STANDARD, D(subtotal), PricingRates()) == D(expected)

    def test_minor_units(self):
        assert to_minor_units(D("113.40")) == 11340
        assert to_minor_units(to_cents("0.005")) == 1
