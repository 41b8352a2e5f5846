"""Tests for coupon validation, usage counting and administration."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from kungfu import Error, Ok

from storefront._errors import CheckoutErrorKind
from storefront.discounts import DiscountStatus, DiscountValidator, derive_status
from storefront.pricing import DiscountType

T0 = datetime(2026, 3, 1, 12, 0, 0)


def unwrap_ok(result):
    match result:
        case Ok(value):
            return value
        case Error(e):
            pytest.fail(f"unexpected error: {e}")


def unwrap_error(result):
    match result:
        case Error(e):
            return e
        case Ok(value):
            pytest.fail(f"unexpected success: {value}")


def coupon_params(code="WELCOME10", **overrides):
    params = dict(
        code=code,
        kind=DiscountType.PERCENTAGE,
        value="10",
        start_date=T0 - timedelta(days=1),
        end_date=T0 + timedelta(days=30),
        min_purchase="50.00",
    )
    params.update(overrides)
    return params


async def make_coupon(validator, code="WELCOME10", **overrides):
    return unwrap_ok(await validator.create(**coupon_params(code, **overrides)))


class TestDeriveStatus:
    def test_window_is_half_open(self):
        start, end = T0, T0 + timedelta(days=1)
        assert derive_status(start, end, start) is DiscountStatus.ACTIVE
        assert derive_status(start, end, end) is DiscountStatus.EXPIRED
        assert derive_status(start, end, start - timedelta(seconds=1)) is DiscountStatus.SCHEDULED


class TestCreate:
    async def test_code_is_normalized(self, validator):
        discount = await make_coupon(validator, code="  welcome10 ")
        assert discount.code == "WELCOME10"
        assert discount.status is DiscountStatus.ACTIVE
        assert discount.current_uses == 0

    async def test_future_coupon_is_scheduled(self, validator):
        discount = await make_coupon(
            validator,
            start_date=T0 + timedelta(days=10),
            end_date=T0 + timedelta(days=20),
        )
        assert discount.status is DiscountStatus.SCHEDULED

    async def test_end_must_follow_start(self, validator):
        error = unwrap_error(await validator.create(**coupon_params(start_date=T0, end_date=T0)))
        assert error.kind is CheckoutErrorKind.INVALID_INPUT

    async def test_duplicate_code_conflicts(self, validator):
        await make_coupon(validator)

        error = unwrap_error(await validator.create(**coupon_params(code="welcome10")))

        assert error.kind is CheckoutErrorKind.CONFLICT
        assert error.http_status == 409
        assert len(await validator.list_discounts()) == 1


class TestValidate:
    async def test_lookup_is_case_insensitive(self, validator):
        await make_coupon(validator)
        discount = await validator.validate("welcome10")
        assert discount is not None
        assert discount.kind is DiscountType.PERCENTAGE
        assert discount.value == Decimal("10.00")

    async def test_unknown_and_blank_codes(self, validator):
        assert await validator.validate("NOPE") is None
        assert await validator.validate("   ") is None

    async def test_scheduled_coupon_not_applicable(self, validator):
        await make_coupon(
            validator,
            start_date=T0 + timedelta(days=10),
            end_date=T0 + timedelta(days=20),
        )
        assert await validator.validate("WELCOME10") is None

    async def test_expiry_is_recomputed_and_written_back(self, database, validator):
        created = await make_coupon(validator)
        later = DiscountValidator(database, clock=lambda: T0 + timedelta(days=60))

        assert await later.validate("WELCOME10") is None

        stored = await later.get(created.id)
        assert stored is not None
        assert stored.status is DiscountStatus.EXPIRED

    async def test_fully_redeemed_coupon_rejected(self, validator):
        created = await make_coupon(validator, max_uses=1)
        assert await validator.validate("WELCOME10") is not None

        assert await validator.increment_use(created.id)

        assert await validator.validate("WELCOME10") is None
        assert not await validator.increment_use(created.id)
        assert (await validator.get(created.id)).current_uses == 1

    async def test_no_max_uses_means_unlimited(self, validator):
        created = await make_coupon(validator)
        for _ in range(5):
            await validator.increment_use(created.id)

        discount = await validator.validate("WELCOME10")
        assert discount is not None
        assert discount.current_uses == 5


class TestCheckCoupon:
    async def test_invalid_code(self, validator):
        result = await validator.check_coupon("MISSING", Decimal("100.00"))
        match result:
            case Error(e):
                assert e.kind is CheckoutErrorKind.INVALID_DISCOUNT
                assert e.http_status == 404
            case Ok(_):
                pytest.fail("expected an error")

    async def test_minimum_not_met_reports_threshold(self, validator):
        await make_coupon(validator)
        result = await validator.check_coupon("WELCOME10", Decimal("49.99"))
        match result:
            case Error(e):
                assert e.kind is CheckoutErrorKind.MINIMUM_NOT_MET
                assert e.detail == {"minPurchaseRequired": "50.00"}
            case Ok(_):
                pytest.fail("expected an error")

    async def test_applicable(self, validator):
        await make_coupon(validator)
        result = await validator.check_coupon("WELCOME10", Decimal("50.00"))
        assert isinstance(result, Ok)
        assert result.value.code == "WELCOME10"


class TestListDiscounts:
    async def test_latest_end_date_first(self, validator):
        await make_coupon(validator, "SPRING", end_date=T0 + timedelta(days=10))
        await make_coupon(validator, "SUMMER", end_date=T0 + timedelta(days=90))
        await make_coupon(validator, "WINTER", end_date=T0 + timedelta(days=40))

        codes = [d.code for d in await validator.list_discounts()]

        assert codes == ["SUMMER", "WINTER", "SPRING"]

    async def test_search_matches_code_or_description(self, validator):
        await make_coupon(validator, "SPRING", description="Seasonal sale")
        await make_coupon(validator, "VIP20", description="Loyal customers")

        assert [d.code for d in await validator.list_discounts("vip")] == ["VIP20"]
        assert [d.code for d in await validator.list_discounts("seasonal")] == ["SPRING"]

    async def test_status_filter_uses_current_window(self, database, validator):
        await make_coupon(validator, "SHORT", end_date=T0 + timedelta(days=2))
        await make_coupon(validator, "LONG")
        later = DiscountValidator(database, clock=lambda: T0 + timedelta(days=5))

        expired = await later.list_discounts(status=DiscountStatus.EXPIRED)

        assert [d.code for d in expired] == ["SHORT"]
        assert [d.code for d in await later.list_discounts(status=DiscountStatus.ACTIVE)] == ["LONG"]


class TestUpdateDiscount:
    async def test_partial_change(self, validator):
        created = await make_coupon(validator, max_uses=5)

        updated = unwrap_ok(
            await validator.update(created.id, value="15", min_purchase=None, description="Bigger")
        )

        assert updated.value == Decimal("15.00")
        assert updated.min_purchase is None
        assert updated.description == "Bigger"
        assert updated.max_uses == 5
        assert updated.code == "WELCOME10"

    async def test_moving_window_rederives_status(self, validator):
        created = await make_coupon(validator)

        scheduled = unwrap_ok(
            await validator.update(
                created.id,
                start_date=T0 + timedelta(days=3),
                end_date=T0 + timedelta(days=9),
            )
        )
        assert scheduled.status is DiscountStatus.SCHEDULED
        assert await validator.validate("WELCOME10") is None

        active = unwrap_ok(await validator.update(created.id, start_date=T0 - timedelta(days=3)))
        assert active.status is DiscountStatus.ACTIVE

    async def test_inverted_window_rejected(self, validator):
        created = await make_coupon(validator)

        error = unwrap_error(await validator.update(created.id, end_date=T0 - timedelta(days=2)))

        assert error.kind is CheckoutErrorKind.INVALID_INPUT
        assert (await validator.get(created.id)).end_date == T0 + timedelta(days=30)

    async def test_renaming_to_taken_code_conflicts(self, validator):
        await make_coupon(validator, "SPRING")
        created = await make_coupon(validator, "SUMMER")

        error = unwrap_error(await validator.update(created.id, code="spring"))

        assert error.kind is CheckoutErrorKind.CONFLICT
        assert (await validator.get(created.id)).code == "SUMMER"

    async def test_unknown_discount(self, validator):
        error = unwrap_error(await validator.update(404, value="5"))
        assert error.kind is CheckoutErrorKind.NOT_FOUND

    async def test_usage_is_not_editable(self, validator):
        created = await make_coupon(validator)
        with pytest.raises(TypeError):
            await validator.update(created.id, current_uses=0)


class TestDeleteDiscount:
    async def test_delete(self, validator):
        created = await make_coupon(validator)

        deleted = unwrap_ok(await validator.delete(created.id))

        assert deleted.code == "WELCOME10"
        assert await validator.get(created.id) is None
        assert await validator.validate("WELCOME10") is None
        error = unwrap_error(await validator.delete(created.id))
        assert error.kind is CheckoutErrorKind.NOT_FOUND
