"""
Catalog lookup — the product boundary the cart and checkout depend on.

Querying/filtering the catalog lives elsewhere; this module only answers
"what does product N cost and how many are left".
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from storefront._types import Money, to_cents
from storefront.db import ProductRow, SessionFactory


@dataclass(frozen=True, slots=True)
class Product:
    id: int
    name: str
    price: Money
    available_stock: int
    category: str | None = None
    brand: str | None = None

    @classmethod
    def from_row(cls, row: ProductRow) -> Product:
        return cls(
            id=row.id,
            name=row.name,
            price=to_cents(row.price),
            available_stock=row.available_stock,
            category=row.category,
            brand=row.brand,
        )


async def fetch_product(session: AsyncSession, product_id: int) -> Product | None:
    row = await session.get(ProductRow, product_id, populate_existing=True)
    return Product.from_row(row) if row is not None else None


class Catalog:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session = session_factory

    async def get_product(self, product_id: int) -> Product | None:
        async with self._session() as session:
            return await fetch_product(session, product_id)

    async def add_product(
        self,
        *,
        name: str,
        price: Decimal | str,
        available_stock: int,
        category: str | None = None,
        brand: str | None = None,
    ) -> Product:
        if available_stock < 0:
            raise ValueError("available_stock must be non-negative")

        async with self._session() as session:
            row = ProductRow(
                name=name,
                price=to_cents(Decimal(price)),
                available_stock=available_stock,
                category=category,
                brand=brand,
            )
            session.add(row)
            await session.commit()
            return Product.from_row(row)

    async def delete_product(self, product_id: int) -> bool:
        async with self._session() as session:
            row = await session.get(ProductRow, product_id)
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True


__all__ = ("Product", "fetch_product", "Catalog")
