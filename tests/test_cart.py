"""Tests for the cart aggregator."""

from decimal import Decimal

from kungfu import Error, Ok

from storefront._errors import CheckoutErrorKind
from storefront.cart import settle_cart_lines


async def add_products(catalog):
    headphones = await catalog.add_product(name="Headphones", price="50.00", available_stock=5)
    cable = await catalog.add_product(name="Cable", price="19.99", available_stock=100)
    return headphones, cable


class TestLoad:
    async def test_unknown_user_has_empty_cart(self, carts):
        view = await carts.load(42)
        assert view.is_empty
        assert view.subtotal == Decimal("0.00")

    async def test_lines_priced_from_live_products(self, catalog, carts, set_price):
        headphones, cable = await add_products(catalog)
        await carts.upsert_line(1, headphones.id, 2)
        await carts.upsert_line(1, cable.id, 1)

        await set_price(headphones.id, "45.00")

        view = await carts.load(1)
        assert [line.product_id for line in view.lines] == [headphones.id, cable.id]
        assert view.lines[0].line_subtotal == Decimal("90.00")
        assert view.subtotal == Decimal("109.99")
        assert view.item_count == 3

    async def test_missing_product_lines_are_dropped(self, catalog, carts):
        headphones, cable = await add_products(catalog)
        await carts.upsert_line(1, headphones.id, 1)
        await carts.upsert_line(1, cable.id, 1)

        assert await catalog.delete_product(headphones.id)

        view = await carts.load(1)
        assert [line.product_id for line in view.lines] == [cable.id]
        assert view.subtotal == Decimal("19.99")


class TestUpsert:
    async def test_sets_quantity_rather_than_adding(self, catalog, carts):
        headphones, _ = await add_products(catalog)
        await carts.upsert_line(1, headphones.id, 1)
        result = await carts.upsert_line(1, headphones.id, 3)

        assert isinstance(result, Ok)
        assert len(result.value.lines) == 1
        assert result.value.lines[0].quantity == 3

    async def test_zero_quantity_removes_line(self, catalog, carts):
        headphones, cable = await add_products(catalog)
        await carts.upsert_line(1, headphones.id, 1)
        await carts.upsert_line(1, cable.id, 1)

        result = await carts.upsert_line(1, headphones.id, 0)

        assert isinstance(result, Ok)
        assert [line.product_id for line in result.value.lines] == [cable.id]

    async def test_unknown_product(self, carts):
        match await carts.upsert_line(1, 999, 1):
            case Error(e):
                assert e.kind is CheckoutErrorKind.PRODUCT_NOT_FOUND
            case Ok(_):
                raise AssertionError("expected PRODUCT_NOT_FOUND")

    async def test_quantity_above_stock(self, catalog, carts):
        headphones, _ = await add_products(catalog)
        match await carts.upsert_line(1, headphones.id, 6):
            case Error(e):
                assert e.kind is CheckoutErrorKind.INSUFFICIENT_STOCK
                assert "Headphones" in e.message
            case Ok(_):
                raise AssertionError("expected INSUFFICIENT_STOCK")
        assert (await carts.load(1)).is_empty

    async def test_carts_are_per_user(self, catalog, carts):
        headphones, cable = await add_products(catalog)
        await carts.upsert_line(1, headphones.id, 1)
        await carts.upsert_line(2, cable.id, 4)

        assert [line.product_id for line in (await carts.load(1)).lines] == [headphones.id]
        assert [line.quantity for line in (await carts.load(2)).lines] == [4]


class TestRemoveAndClear:
    async def test_remove_line(self, catalog, carts):
        headphones, cable = await add_products(catalog)
        await carts.upsert_line(1, headphones.id, 1)
        await carts.upsert_line(1, cable.id, 1)

        view = await carts.remove_line(1, cable.id)
        assert [line.product_id for line in view.lines] == [headphones.id]

    async def test_clear_keeps_cart_usable(self, catalog, carts):
        headphones, cable = await add_products(catalog)
        await carts.upsert_line(1, headphones.id, 1)
        await carts.upsert_line(1, cable.id, 1)

        await carts.clear(1)
        assert (await carts.load(1)).is_empty

        result = await carts.upsert_line(1, cable.id, 2)
        assert isinstance(result, Ok)
        assert result.value.item_count == 2

    async def test_clear_only_touches_own_cart(self, catalog, carts):
        headphones, _ = await add_products(catalog)
        await carts.upsert_line(1, headphones.id, 1)
        await carts.upsert_line(2, headphones.id, 1)

        await carts.clear(1)

        assert not (await carts.load(2)).is_empty


class TestSettleCartLines:
    async def test_takes_ordered_quantities_out(self, database, catalog, carts):
        headphones, cable = await add_products(catalog)
        await carts.upsert_line(1, headphones.id, 3)
        view = (await carts.upsert_line(1, cable.id, 2)).value
        ordered = {view.lines[0].line_id: 2, view.lines[1].line_id: 2}

        async with database() as session, session.begin():
            touched = await settle_cart_lines(session, 1, ordered)

        assert touched == 2
        remaining = await carts.load(1)
        assert [(line.product_id, line.quantity) for line in remaining.lines] == [(headphones.id, 1)]

    async def test_ignores_other_users_lines(self, database, catalog, carts):
        headphones, _ = await add_products(catalog)
        theirs = (await carts.upsert_line(2, headphones.id, 1)).value

        async with database() as session, session.begin():
            touched = await settle_cart_lines(session, 1, {theirs.lines[0].line_id: 1})

        assert touched == 0
        assert not (await carts.load(2)).is_empty
