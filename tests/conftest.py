"""Pytest fixtures for storefront tests."""

from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update

from storefront.cart import CartAggregator
from storefront.catalog import Catalog
from storefront.checkout import (
    CheckoutOrchestrator,
    GatewayResponseError,
    GatewayTransaction,
    ShippingAddress,
)
from storefront.db import ProductRow, create_database
from storefront.discounts import DiscountValidator

T0 = datetime(2026, 3, 1, 12, 0, 0)


class Ticker:
    """Clock that advances one second per call."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class FakeGateway:
    """In-memory payment gateway. settle() records what the gateway will report."""

    def __init__(self) -> None:
        self.transactions: dict[str, GatewayTransaction] = {}
        self.calls: list[str] = []
        self.error: Exception | None = None

    def settle(self, reference: str, amount_minor_units: int, status: str = "success") -> None:
        self.transactions[reference] = GatewayTransaction(
            reference=reference,
            status=status,
            amount_minor_units=amount_minor_units,
        )

    async def verify_transaction(self, reference: str) -> GatewayTransaction:
        self.calls.append(reference)
        if self.error is not None:
            raise self.error
        transaction = self.transactions.get(reference)
        if transaction is None:
            raise GatewayResponseError("Transaction reference not found")
        return transaction


@pytest.fixture
async def database(tmp_path):
    """File-backed SQLite so every session sees the same data."""
    session_factory, engine = await create_database(f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}")
    yield session_factory
    await engine.dispose()


@pytest.fixture
def catalog(database):
    return Catalog(database)


@pytest.fixture
def carts(database):
    return CartAggregator(database)


@pytest.fixture
def clock():
    return Ticker()


@pytest.fixture
def validator(database, clock):
    return DiscountValidator(database, clock=clock)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def orchestrator(database, gateway, clock):
    return CheckoutOrchestrator(database, gateway, clock=clock)


@pytest.fixture
def address():
    return ShippingAddress(
        full_name="Ada Lovelace",
        line1="12 Analytical Way",
        city="London",
        country="GB",
        postal_code="N1 9GU",
    )


@pytest.fixture
def set_price(database) -> Callable:
    """Change a product's price behind the application's back."""

    async def _set_price(product_id: int, price: str) -> None:
        async with database() as session:
            await session.execute(
                update(ProductRow).where(ProductRow.id == product_id).values(price=Decimal(price))
            )
            await session.commit()

    return _set_price


@pytest.fixture
def stock_of(catalog) -> Callable:
    async def _stock_of(product_id: int) -> int:
        product = await catalog.get_product(product_id)
        assert product is not None
        return product.available_stock

    return _stock_of
