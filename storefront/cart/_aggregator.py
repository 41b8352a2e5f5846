"""
Cart aggregator — saved lines joined with live products.

Stock checks here are a soft pre-check for the shopper; the authoritative
check runs again inside the checkout transaction.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from sqlalchemy import delete, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from kungfu import Result, Ok, Error

from storefront._errors import CheckoutError, CheckoutErrors
from storefront._types import ZERO, to_cents
from storefront.cart._types import CartLine, CartView
from storefront.catalog import Product, fetch_product
from storefront.db import CartLineRow, CartRow, ProductRow, SessionFactory
from storefront.pricing import PricedLine, line_subtotal


# ═══════════════════════════════════════════════════════════════════════════════
# Session-level helpers — usable inside a caller's transaction
# ═══════════════════════════════════════════════════════════════════════════════


def _user_cart_ids(user_id: int):
    return select(CartRow.id).where(CartRow.user_id == user_id).scalar_subquery()


async def fetch_cart(session: AsyncSession, user_id: int) -> CartView:
    """Load the user's cart. Lines whose product no longer exists are skipped."""
    stmt = (
        select(CartLineRow, ProductRow)
        .join(CartRow, CartRow.id == CartLineRow.cart_id)
        .outerjoin(ProductRow, ProductRow.id == CartLineRow.product_id)
        .where(CartRow.user_id == user_id)
        .order_by(CartLineRow.id)
        .execution_options(populate_existing=True)
    )
    rows = (await session.execute(stmt)).all()

    lines: list[CartLine] = []
    for line_row, product_row in rows:
        if product_row is None:
            continue
        product = Product.from_row(product_row)
        lines.append(
            CartLine(
                line_id=line_row.id,
                product_id=product.id,
                quantity=line_row.quantity,
                product=product,
                line_subtotal=line_subtotal(
                    PricedLine(unit_price=product.price, quantity=line_row.quantity)
                ),
            )
        )

    subtotal = to_cents(sum((line.line_subtotal for line in lines), ZERO))
    return CartView(user_id=user_id, lines=tuple(lines), subtotal=subtotal)


async def settle_cart_lines(
    session: AsyncSession,
    user_id: int,
    ordered: Mapping[int, int],
) -> int:
    """
    Take ordered quantities (line id -> quantity) out of this user's cart.

    A line keeps only what was added to it after checkout; lines with
    nothing extra are deleted. Returns how many lines were touched.
    """
    touched = 0
    for line_id, quantity in ordered.items():
        owned = (CartLineRow.id == line_id, CartLineRow.cart_id == _user_cart_ids(user_id))
        removed = await session.execute(
            delete(CartLineRow)
            .where(*owned, CartLineRow.quantity <= quantity)
            .execution_options(synchronize_session=False)
        )
        reduced = await session.execute(
            update(CartLineRow)
            .where(*owned, CartLineRow.quantity > quantity)
            .values(quantity=CartLineRow.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        touched += cast(CursorResult[Any], removed).rowcount
        touched += cast(CursorResult[Any], reduced).rowcount
    return touched


# ═══════════════════════════════════════════════════════════════════════════════
# Cart Aggregator
# ═══════════════════════════════════════════════════════════════════════════════


class CartAggregator:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session = session_factory

    async def load(self, user_id: int) -> CartView:
        async with self._session() as session:
            return await fetch_cart(session, user_id)

    async def upsert_line(
        self,
        user_id: int,
        product_id: int,
        quantity: int,
    ) -> Result[CartView, CheckoutError]:
        """
        Set the quantity of a product in the cart.

        quantity <= 0 removes the line. Concurrent updates: last write wins.
        """
        async with self._session() as session:
            if quantity <= 0:
                await self._delete_product_line(session, user_id, product_id)
                await session.commit()
                return Ok(await fetch_cart(session, user_id))

            product = await fetch_product(session, product_id)
            if product is None:
                return Error(CheckoutErrors.product_not_found(product_id))
            if quantity > product.available_stock:
                return Error(CheckoutErrors.insufficient_stock(product.name))

            cart_id = await self._ensure_cart(session, user_id)
            line = (
                await session.execute(
                    select(CartLineRow).where(
                        CartLineRow.cart_id == cart_id,
                        CartLineRow.product_id == product_id,
                    )
                )
            ).scalar_one_or_none()

            if line is None:
                session.add(
                    CartLineRow(cart_id=cart_id, product_id=product_id, quantity=quantity)
                )
            else:
                line.quantity = quantity

            await session.commit()
            return Ok(await fetch_cart(session, user_id))

    async def remove_line(self, user_id: int, product_id: int) -> CartView:
        async with self._session() as session:
            await self._delete_product_line(session, user_id, product_id)
            await session.commit()
            return await fetch_cart(session, user_id)

    async def clear(self, user_id: int) -> None:
        """Delete every line; the cart container itself stays."""
        async with self._session() as session:
            await session.execute(
                delete(CartLineRow)
                .where(CartLineRow.cart_id == _user_cart_ids(user_id))
                .execution_options(synchronize_session=False)
            )
            await session.commit()

    async def _ensure_cart(self, session: AsyncSession, user_id: int) -> int:
        cart_id = (
            await session.execute(select(CartRow.id).where(CartRow.user_id == user_id))
        ).scalar_one_or_none()
        if cart_id is not None:
            return cart_id

        cart = CartRow(user_id=user_id)
        session.add(cart)
        await session.flush()
        return cart.id

    async def _delete_product_line(
        self,
        session: AsyncSession,
        user_id: int,
        product_id: int,
    ) -> None:
        await session.execute(
            delete(CartLineRow)
            .where(
                CartLineRow.cart_id == _user_cart_ids(user_id),
                CartLineRow.product_id == product_id,
            )
            .execution_options(synchronize_session=False)
        )


__all__ = ("fetch_cart", "settle_cart_lines", "CartAggregator")
