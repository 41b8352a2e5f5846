"""
Checkout orchestrator — order placement and payment confirmation.

    orchestrator = CheckoutOrchestrator(session_factory, gateway)

    placed = await orchestrator.place_order(user_id, address, ShippingTier.STANDARD, "SAVE10")
    # ... client pays at the gateway using placed.payment_reference ...
    order = await orchestrator.verify_payment(placed.order_id, user_id, reference)

Placement is a two-step saga: reserve (stock deduction + order rows, one
transaction) then assign the payment reference. Confirmation is a
compare-and-set on payment_status, so replays and concurrent verifies
apply side effects once.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, cast

import httpx
from sqlalchemy import select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from combinators import lift as L
from kungfu import Result, Ok, Error

from storefront._errors import CheckoutError, CheckoutErrors
from storefront._types import Clock, utc_now
from storefront.cart import CartAggregator, CartLine, settle_cart_lines
from storefront.catalog import Product, fetch_product
from storefront.checkout import _saga as S
from storefront.checkout._gateway import PaymentGateway
from storefront.checkout._types import (
    Order,
    OrderStatus,
    OrderSummary,
    PaymentStatus,
    PlacedOrder,
    Quote,
    ShippingAddress,
)
from storefront.db import OrderLineRow, OrderRow, ProductRow, SessionFactory
from storefront.discounts import DiscountValidator, increment_discount_use
from storefront.pricing import (
    DEFAULT_RATES,
    PriceBreakdown,
    PricedLine,
    PricingRates,
    ShippingTier,
    compute_totals,
    line_subtotal,
)

logger = logging.getLogger(__name__)
fraud_logger = logging.getLogger("storefront.fraud")
coupon_logger = logging.getLogger("storefront.coupons")


# Admin-driven fulfillment moves. Pending → Cancelled goes through the
# payment failure path so payment_status follows.
_FULFILLMENT_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
}


def new_order_id() -> str:
    return f"ord_{uuid.uuid4().hex}"


def mint_payment_reference(order_id: str, at: datetime) -> str:
    """Order id + timestamp; unique because the order id is."""
    return f"pay_{order_id.removeprefix('ord_')}_{at.strftime('%Y%m%d%H%M%S%f')}"


class _StockShortage(Exception):
    def __init__(self, product: str) -> None:
        super().__init__(product)
        self.product = product


@dataclass(frozen=True, slots=True)
class _Reservation:
    order_id: str
    breakdown: PriceBreakdown


def _reserve_error(exc: Exception) -> CheckoutError:
    if isinstance(exc, _StockShortage):
        return CheckoutErrors.insufficient_stock(exc.product)
    logger.error("order reservation failed", exc_info=exc)
    return CheckoutErrors.infrastructure("Order could not be created.")


def _assign_error(exc: Exception) -> CheckoutError:
    logger.error("payment reference assignment failed", exc_info=exc)
    return CheckoutErrors.infrastructure("Payment could not be initialised.")


def _gateway_error(exc: Exception) -> CheckoutError:
    if isinstance(exc, httpx.TimeoutException):
        return CheckoutErrors.gateway_unavailable("request timed out")
    return CheckoutErrors.gateway_unavailable(str(exc) or type(exc).__name__)


class CheckoutOrchestrator:
    def __init__(
        self,
        session_factory: SessionFactory,
        gateway: PaymentGateway,
        *,
        rates: PricingRates = DEFAULT_RATES,
        restock_on_failure: bool = True,
        clock: Clock = utc_now,
    ) -> None:
        self._session = session_factory
        self._gateway = gateway
        self._rates = rates
        self._restock_on_failure = restock_on_failure
        self._clock = clock
        self.carts = CartAggregator(session_factory)
        self.discounts = DiscountValidator(session_factory, clock=clock)

    # ═══════════════════════════════════════════════════════════════════════
    # Quote
    # ═══════════════════════════════════════════════════════════════════════

    async def quote(
        self,
        user_id: int,
        tier: ShippingTier,
        discount_code: str | None = None,
    ) -> Quote:
        """Totals for the live cart. Unknown or unmet coupons are simply not applied."""
        cart = await self.carts.load(user_id)
        if cart.is_empty:
            return Quote(cart=cart, breakdown=PriceBreakdown.empty())

        discount = await self.discounts.validate(discount_code) if discount_code else None
        breakdown = compute_totals(
            cart.priced_lines(),
            tier,
            discount.terms() if discount is not None else None,
            self._rates,
        )
        return Quote(
            cart=cart,
            breakdown=breakdown,
            discount=discount if breakdown.discount_applied else None,
        )

    # ═══════════════════════════════════════════════════════════════════════
    # Place Order
    # ═══════════════════════════════════════════════════════════════════════

    async def place_order(
        self,
        user_id: int,
        shipping_address: ShippingAddress,
        tier: ShippingTier,
        discount_code: str | None = None,
    ) -> Result[PlacedOrder, CheckoutError]:
        quote = await self.quote(user_id, tier, discount_code)
        if quote.cart.is_empty:
            return Error(CheckoutErrors.empty_cart())

        saga = S.step(
            "reserve",
            L.catching_async(
                lambda: self._reserve(user_id, quote, shipping_address, tier),
                on_error=_reserve_error,
            ),
            compensate=self._release,
        ).then(
            lambda reservation: S.step(
                "assign_reference",
                L.catching_async(
                    lambda: self._assign_reference(reservation),
                    on_error=_assign_error,
                ),
            )
        )

        match await S.run(saga):
            case Ok(outcome):
                placed = cast(PlacedOrder, outcome.value)
                logger.info(
                    "order %s placed for user %d: total=%s",
                    placed.order_id,
                    user_id,
                    placed.grand_total,
                )
                return Ok(placed)
            case Error(failure):
                if not failure.rollback_complete:
                    logger.error(
                        "order placement for user %d failed at %s and was not fully rolled back",
                        user_id,
                        failure.failed_step,
                    )
                return Error(failure.error)

    async def _reserve(
        self,
        user_id: int,
        quote: Quote,
        address: ShippingAddress,
        tier: ShippingTier,
    ) -> _Reservation:
        """Deduct stock and write the order in one transaction. All or nothing."""
        order_id = new_order_id()
        now = self._clock()

        async with self._session() as session, session.begin():
            taken: list[tuple[CartLine, Product]] = []
            for line in quote.cart.lines:
                taken.append((line, await self._take_stock(session, line)))

            discount = quote.discount
            breakdown = compute_totals(
                [PricedLine(unit_price=p.price, quantity=line.quantity) for line, p in taken],
                tier,
                discount.terms() if discount is not None else None,
                self._rates,
            )

            order = OrderRow(
                id=order_id,
                user_id=user_id,
                shipping_address=address.to_dict(),
                shipping_tier=tier.value,
                subtotal=breakdown.subtotal,
                discount_id=discount.id if discount is not None and breakdown.discount_applied else None,
                discount_code=breakdown.discount_code,
                discount_amount=breakdown.discount_amount,
                shipping_cost=breakdown.shipping_cost,
                tax=breakdown.tax,
                total=breakdown.grand_total,
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                created_at=now,
                updated_at=now,
            )
            order.lines = [
                OrderLineRow(
                    product_id=product.id,
                    name=product.name,
                    price=product.price,
                    quantity=line.quantity,
                    line_total=line_subtotal(
                        PricedLine(unit_price=product.price, quantity=line.quantity)
                    ),
                    cart_line_id=line.line_id,
                )
                for line, product in taken
            ]
            session.add(order)

        return _Reservation(order_id=order_id, breakdown=breakdown)

    async def _take_stock(self, session: AsyncSession, line: CartLine) -> Product:
        """Conditionally decrement stock, then re-read the product for the snapshot."""
        stmt = (
            update(ProductRow)
            .where(
                ProductRow.id == line.product_id,
                ProductRow.available_stock >= line.quantity,
            )
            .values(available_stock=ProductRow.available_stock - line.quantity)
            .execution_options(synchronize_session=False)
        )
        cursor = cast(CursorResult[Any], await session.execute(stmt))
        if cursor.rowcount != 1:
            raise _StockShortage(line.product.name)

        product = await fetch_product(session, line.product_id)
        if product is None:
            raise _StockShortage(line.product.name)
        return product

    async def _release(self, reservation: _Reservation) -> None:
        """Undo a reservation whose order never reached the customer."""
        async with self._session() as session, session.begin():
            won = await self._set_payment_state(
                session,
                reservation.order_id,
                expected=PaymentStatus.PENDING,
                payment=PaymentStatus.FAILED,
                status=OrderStatus.CANCELLED,
            )
            if won:
                await self._restock(session, reservation.order_id)
        logger.warning("order %s released after failed placement", reservation.order_id)

    async def _assign_reference(self, reservation: _Reservation) -> PlacedOrder:
        now = self._clock()
        reference = mint_payment_reference(reservation.order_id, now)
        async with self._session() as session, session.begin():
            await session.execute(
                update(OrderRow)
                .where(OrderRow.id == reservation.order_id)
                .values(payment_reference=reference, updated_at=now)
                .execution_options(synchronize_session=False)
            )
        return PlacedOrder(
            order_id=reservation.order_id,
            grand_total=reservation.breakdown.grand_total,
            grand_total_minor_units=reservation.breakdown.grand_total_minor_units,
            payment_reference=reference,
        )

    # ═══════════════════════════════════════════════════════════════════════
    # Verify Payment
    # ═══════════════════════════════════════════════════════════════════════

    async def verify_payment(
        self,
        order_id: str,
        user_id: int,
        reference: str,
    ) -> Result[Order, CheckoutError]:
        """
        Confirm payment with the gateway and settle the order.

        Replaying a verify for an already-paid order returns it without
        calling the gateway. Gateway outages leave the order pending so the
        client can retry.
        """
        order = await self._fetch_order(order_id)
        if order is None or order.user_id != user_id:
            return Error(CheckoutErrors.order_not_found())
        if order.payment_reference != reference:
            return Error(CheckoutErrors.reference_mismatch())

        match order.payment_status:
            case PaymentStatus.SUCCESS:
                return Ok(order)
            case PaymentStatus.FAILED:
                return Error(CheckoutErrors.payment_closed())
            case PaymentStatus.PENDING:
                pass

        verified = await L.catching_async(
            lambda: self._gateway.verify_transaction(reference),
            on_error=_gateway_error,
        )
        match verified:
            case Error(e):
                logger.warning("verification of order %s deferred: %s", order.id, e.message)
                return Error(e)
            case Ok(transaction):
                pass

        if not transaction.succeeded:
            await self._fail_after_verification(order.id)
            return Error(CheckoutErrors.payment_declined(transaction.status))

        if transaction.amount_minor_units != order.total_minor_units:
            fraud_logger.error(
                "amount mismatch on order %s (reference %s): gateway reported %d, expected %d",
                order.id,
                reference,
                transaction.amount_minor_units,
                order.total_minor_units,
            )
            await self._fail_after_verification(order.id)
            return Error(CheckoutErrors.amount_mismatch())

        return await self._confirm(order)

    async def _confirm(self, order: Order) -> Result[Order, CheckoutError]:
        settled = 0
        async with self._session() as session, session.begin():
            won = await self._set_payment_state(
                session,
                order.id,
                expected=PaymentStatus.PENDING,
                payment=PaymentStatus.SUCCESS,
                status=OrderStatus.PROCESSING,
            )
            if won:
                if order.discount_id is not None and not await increment_discount_use(
                    session, order.discount_id
                ):
                    coupon_logger.warning(
                        "coupon %s was fully redeemed or removed before order %s was paid; "
                        "use not counted",
                        order.discount_code,
                        order.id,
                    )
                settled = await settle_cart_lines(
                    session, order.user_id, order.cart_line_quantities
                )

        current = await self._fetch_order(order.id)
        if current is None:
            return Error(CheckoutErrors.order_not_found())
        if current.payment_status is not PaymentStatus.SUCCESS:
            return Error(CheckoutErrors.payment_closed())

        if won:
            logger.info("order %s paid; %d cart lines settled", order.id, settled)
        return Ok(current)

    async def _fail_after_verification(self, order_id: str) -> None:
        match await self.mark_order_failed(order_id):
            case Error(e):
                logger.warning("could not mark order %s failed: %s", order_id, e.message)
            case Ok(_):
                pass

    # ═══════════════════════════════════════════════════════════════════════
    # Failure / Fulfillment
    # ═══════════════════════════════════════════════════════════════════════

    async def mark_order_failed(self, order_id: str) -> Result[Order, CheckoutError]:
        """pending → failed/Cancelled. Already failed is a no-op; paid orders are left alone."""
        async with self._session() as session, session.begin():
            won = await self._set_payment_state(
                session,
                order_id,
                expected=PaymentStatus.PENDING,
                payment=PaymentStatus.FAILED,
                status=OrderStatus.CANCELLED,
            )
            if won and self._restock_on_failure:
                await self._restock(session, order_id)

        order = await self._fetch_order(order_id)
        if order is None:
            return Error(CheckoutErrors.order_not_found())
        if order.payment_status is not PaymentStatus.FAILED:
            return Error(
                CheckoutErrors.invalid_transition(order.payment_status, PaymentStatus.FAILED)
            )
        if won:
            logger.info("order %s marked failed", order_id)
        return Ok(order)

    async def update_fulfillment_status(
        self,
        order_id: str,
        target: OrderStatus,
    ) -> Result[Order, CheckoutError]:
        order = await self._fetch_order(order_id)
        if order is None:
            return Error(CheckoutErrors.order_not_found())
        if target not in _FULFILLMENT_TRANSITIONS.get(order.status, frozenset()):
            return Error(CheckoutErrors.invalid_transition(order.status, target))

        if order.status is OrderStatus.PENDING:
            return await self.mark_order_failed(order_id)

        async with self._session() as session, session.begin():
            cursor = cast(
                CursorResult[Any],
                await session.execute(
                    update(OrderRow)
                    .where(OrderRow.id == order_id, OrderRow.status == order.status.value)
                    .values(status=target.value, updated_at=self._clock())
                    .execution_options(synchronize_session=False)
                ),
            )
            won = cursor.rowcount == 1
            if won and target is OrderStatus.CANCELLED and self._restock_on_failure:
                await self._restock(session, order_id)

        current = await self._fetch_order(order_id)
        if current is None:
            return Error(CheckoutErrors.order_not_found())
        if not won:
            return Error(CheckoutErrors.invalid_transition(current.status, target))

        logger.info("order %s: %s -> %s", order_id, order.status, target)
        return Ok(current)

    # ═══════════════════════════════════════════════════════════════════════
    # Order History
    # ═══════════════════════════════════════════════════════════════════════

    async def get_order(self, order_id: str, user_id: int) -> Result[Order, CheckoutError]:
        order = await self._fetch_order(order_id)
        if order is None or order.user_id != user_id:
            return Error(CheckoutErrors.order_not_found())
        return Ok(order)

    async def list_orders(self, user_id: int) -> list[OrderSummary]:
        """The user's orders, newest first."""
        return await self._list(OrderRow.user_id == user_id)

    async def list_all_orders(self) -> list[OrderSummary]:
        return await self._list()

    async def _list(self, *criteria: Any) -> list[OrderSummary]:
        stmt = (
            select(OrderRow)
            .where(*criteria)
            .order_by(OrderRow.created_at.desc(), OrderRow.id.desc())
            .execution_options(populate_existing=True)
        )
        async with self._session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [OrderSummary.from_order(Order.from_row(row)) for row in rows]

    # ═══════════════════════════════════════════════════════════════════════
    # Persistence helpers
    # ═══════════════════════════════════════════════════════════════════════

    async def _fetch_order(self, order_id: str) -> Order | None:
        async with self._session() as session:
            row = await session.get(OrderRow, order_id, populate_existing=True)
            return Order.from_row(row) if row is not None else None

    async def _set_payment_state(
        self,
        session: AsyncSession,
        order_id: str,
        *,
        expected: PaymentStatus,
        payment: PaymentStatus,
        status: OrderStatus,
    ) -> bool:
        """Compare-and-set on payment_status. True if this call made the change."""
        stmt = (
            update(OrderRow)
            .where(OrderRow.id == order_id, OrderRow.payment_status == expected.value)
            .values(payment_status=payment.value, status=status.value, updated_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        cursor = cast(CursorResult[Any], await session.execute(stmt))
        return cursor.rowcount == 1

    async def _restock(self, session: AsyncSession, order_id: str) -> None:
        lines = (
            await session.execute(
                select(OrderLineRow.product_id, OrderLineRow.quantity).where(
                    OrderLineRow.order_id == order_id
                )
            )
        ).all()
        for product_id, quantity in lines:
            cursor = cast(
                CursorResult[Any],
                await session.execute(
                    update(ProductRow)
                    .where(ProductRow.id == product_id)
                    .values(available_stock=ProductRow.available_stock + quantity)
                    .execution_options(synchronize_session=False)
                ),
            )
            if cursor.rowcount != 1:
                logger.warning(
                    "product %d no longer exists; %d units from order %s not restocked",
                    product_id,
                    quantity,
                    order_id,
                )


__all__ = ("new_order_id", "mint_payment_reference", "CheckoutOrchestrator")
