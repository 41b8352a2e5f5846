"""
Discount validator — coupon lookup, applicability, usage counting.

The stored status column is never trusted for money decisions: every
lookup recomputes it from the validity window and writes it back when it
has gone stale.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any, cast

from sqlalchemy import or_, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from combinators import lift as L
from kungfu import Result, Ok, Error

from storefront._errors import CheckoutError, CheckoutErrors
from storefront._types import Clock, Money, to_cents, utc_now
from storefront.db import DiscountRow, OrderRow, SessionFactory
from storefront.discounts._types import (
    Discount,
    DiscountStatus,
    derive_status,
    normalize_code,
)
from storefront.pricing import DiscountType, meets_minimum_purchase

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "code",
        "description",
        "kind",
        "value",
        "min_purchase",
        "max_uses",
        "start_date",
        "end_date",
    }
)


async def increment_discount_use(session: AsyncSession, discount_id: int) -> bool:
    """
    Atomic `current_uses + 1` inside the caller's transaction.

    Never counts past max_uses. False when the coupon is gone or was
    already fully redeemed.
    """
    stmt = (
        update(DiscountRow)
        .where(
            DiscountRow.id == discount_id,
            or_(
                DiscountRow.max_uses.is_(None),
                DiscountRow.current_uses < DiscountRow.max_uses,
            ),
        )
        .values(current_uses=DiscountRow.current_uses + 1)
        .execution_options(synchronize_session=False)
    )
    cursor = cast(CursorResult[Any], await session.execute(stmt))
    return cursor.rowcount == 1


def _column_values(fields: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name, value in fields.items():
        match name:
            case "code":
                values["code"] = normalize_code(value)
            case "kind":
                values["type"] = DiscountType(value).value
            case "value":
                values["value"] = to_cents(Decimal(value))
            case "min_purchase":
                values["min_purchase"] = to_cents(Decimal(value)) if value is not None else None
            case _:
                values[name] = value
    return values


def _write_error(code: str):
    def on_error(exc: Exception) -> CheckoutError:
        if isinstance(exc, IntegrityError):
            return CheckoutErrors.duplicate_discount(code)
        logger.error("discount %s could not be saved", code, exc_info=exc)
        return CheckoutErrors.infrastructure("Discount could not be saved.")

    return on_error


def _refresh_status(row: DiscountRow, now: datetime) -> bool:
    """Write the window-derived status onto the row. True if it was stale."""
    current = derive_status(row.start_date, row.end_date, now)
    if row.status == current:
        return False
    logger.debug("discount %s status %s -> %s", row.code, row.status, current)
    row.status = current.value
    return True


class DiscountValidator:
    def __init__(self, session_factory: SessionFactory, clock: Clock = utc_now) -> None:
        self._session = session_factory
        self._clock = clock

    async def validate(self, code: str) -> Discount | None:
        """
        Return the coupon if it can be applied right now, else None.

        Absent, outside its window, and fully redeemed all read as None;
        the minimum purchase is checked separately by the caller.
        """
        normalized = normalize_code(code)
        if not normalized:
            return None

        async with self._session() as session:
            row = (
                await session.execute(
                    select(DiscountRow).where(DiscountRow.code == normalized)
                )
            ).scalar_one_or_none()

            if row is None:
                return None

            now = self._clock()
            if _refresh_status(row, now):
                await session.commit()

            discount = Discount.from_row(row)

        if not discount.is_applicable(now):
            return None
        return discount

    @staticmethod
    def check_minimum_purchase(discount: Discount, subtotal: Money) -> bool:
        return meets_minimum_purchase(discount.terms(), subtotal)

    async def check_coupon(self, code: str, subtotal: Money) -> Result[Discount, CheckoutError]:
        """Validate a coupon against a cart subtotal, explaining why it fails."""
        discount = await self.validate(code)
        if discount is None:
            return Error(CheckoutErrors.invalid_discount())
        if not self.check_minimum_purchase(discount, subtotal):
            return Error(CheckoutErrors.minimum_not_met(discount.min_purchase))
        return Ok(discount)

    async def increment_use(self, discount_id: int) -> bool:
        """Count one redemption. Call once per successfully paid order."""
        async with self._session() as session, session.begin():
            return await increment_discount_use(session, discount_id)

    # ═══════════════════════════════════════════════════════════════════════
    # Administration
    # ═══════════════════════════════════════════════════════════════════════

    async def list_discounts(
        self,
        search: str | None = None,
        status: DiscountStatus | None = None,
    ) -> Sequence[Discount]:
        """
        Coupons matching `search` in code or description, latest end date first.

        Statuses are refreshed before filtering, so a coupon whose window
        closed since the last lookup lists as expired.
        """
        stmt = select(DiscountRow).order_by(DiscountRow.end_date.desc(), DiscountRow.id)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(DiscountRow.code.ilike(pattern), DiscountRow.description.ilike(pattern))
            )

        async with self._session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            now = self._clock()
            stale = [row for row in rows if _refresh_status(row, now)]
            if stale:
                await session.commit()
            discounts = [Discount.from_row(row) for row in rows]

        if status is None:
            return discounts
        return [discount for discount in discounts if discount.status is status]

    async def create(
        self,
        *,
        code: str,
        kind: DiscountType,
        value: Decimal | str,
        start_date: datetime,
        end_date: datetime,
        description: str = "",
        min_purchase: Decimal | str | None = None,
        max_uses: int | None = None,
    ) -> Result[Discount, CheckoutError]:
        normalized = normalize_code(code)
        if not normalized:
            return Error(CheckoutErrors.invalid_input("Discount code is required."))
        if end_date <= start_date:
            return Error(CheckoutErrors.invalid_input("End date must be after start date."))

        async with self._session() as session:
            row = DiscountRow(
                **_column_values(
                    {
                        "code": normalized,
                        "description": description,
                        "kind": kind,
                        "value": value,
                        "min_purchase": min_purchase,
                        "max_uses": max_uses,
                        "start_date": start_date,
                        "end_date": end_date,
                    }
                ),
                current_uses=0,
                status=derive_status(start_date, end_date, self._clock()).value,
            )
            session.add(row)
            match await L.catching_async(session.commit, on_error=_write_error(normalized)):
                case Error(e):
                    return Error(e)
                case Ok(_):
                    pass

        logger.info("discount %s created", row.code)
        return Ok(Discount.from_row(row))

    async def update(self, discount_id: int, **changes: Any) -> Result[Discount, CheckoutError]:
        """
        Apply a partial change. Keys are those of `create`.

        The status is re-derived from the resulting window; usage counts are
        never edited here.
        """
        unknown = changes.keys() - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"not editable: {', '.join(sorted(unknown))}")
        if "code" in changes and not normalize_code(changes["code"]):
            return Error(CheckoutErrors.invalid_input("Discount code is required."))

        async with self._session() as session:
            row = await session.get(DiscountRow, discount_id)
            if row is None:
                return Error(CheckoutErrors.discount_not_found(discount_id))

            start = changes.get("start_date", row.start_date)
            end = changes.get("end_date", row.end_date)
            if end <= start:
                return Error(CheckoutErrors.invalid_input("End date must be after start date."))

            for column, value in _column_values(changes).items():
                setattr(row, column, value)
            _refresh_status(row, self._clock())

            match await L.catching_async(session.commit, on_error=_write_error(row.code)):
                case Error(e):
                    return Error(e)
                case Ok(_):
                    pass

        logger.info("discount %s updated: %s", row.code, ", ".join(sorted(changes)))
        return Ok(Discount.from_row(row))

    async def delete(self, discount_id: int) -> Result[Discount, CheckoutError]:
        """
        Remove a coupon. Orders keep their code and amount; their link to
        the coupon is cleared, so paying them later counts no use.
        """
        async with self._session() as session, session.begin():
            row = await session.get(DiscountRow, discount_id)
            if row is None:
                return Error(CheckoutErrors.discount_not_found(discount_id))
            discount = Discount.from_row(row)

            await session.execute(
                update(OrderRow)
                .where(OrderRow.discount_id == discount_id)
                .values(discount_id=None)
                .execution_options(synchronize_session=False)
            )
            await session.delete(row)

        logger.info("discount %s deleted", discount.code)
        return Ok(discount)

    async def get(self, discount_id: int) -> Discount | None:
        async with self._session() as session:
            row = await session.get(DiscountRow, discount_id, populate_existing=True)
            return Discount.from_row(row) if row is not None else None


__all__ = ("EDITABLE_FIELDS", "increment_discount_use", "DiscountValidator")
