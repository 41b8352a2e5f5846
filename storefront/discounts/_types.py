"""
Discount types — coupon record and its time-derived status.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from storefront._types import Money, to_cents
from storefront.db import DiscountRow
from storefront.pricing import DiscountTerms, DiscountType


class DiscountStatus(StrEnum):
    """
    Lifecycle:
        SCHEDULED → ACTIVE → EXPIRED

    A function of the validity window and the current time.
    """

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    EXPIRED = "expired"


def derive_status(start: datetime, end: datetime, now: datetime) -> DiscountStatus:
    """Status for the window [start, end) at `now`."""
    if now >= end:
        return DiscountStatus.EXPIRED
    if now < start:
        return DiscountStatus.SCHEDULED
    return DiscountStatus.ACTIVE


def normalize_code(code: str) -> str:
    return code.strip().upper()


@dataclass(frozen=True, slots=True)
class Discount:
    id: int
    code: str
    description: str
    kind: DiscountType
    value: Decimal
    min_purchase: Money | None
    max_uses: int | None
    current_uses: int
    start_date: datetime
    end_date: datetime
    status: DiscountStatus

    @property
    def exhausted(self) -> bool:
        return self.max_uses is not None and self.current_uses >= self.max_uses

    def is_applicable(self, now: datetime) -> bool:
        """Active at `now` and not fully redeemed. Ignores the cached status."""
        active = derive_status(self.start_date, self.end_date, now) is DiscountStatus.ACTIVE
        return active and not self.exhausted

    def terms(self) -> DiscountTerms:
        return DiscountTerms(
            code=self.code,
            kind=self.kind,
            value=self.value,
            min_purchase=self.min_purchase,
        )

    @classmethod
    def from_row(cls, row: DiscountRow) -> Discount:
        return cls(
            id=row.id,
            code=row.code,
            description=row.description,
            kind=DiscountType(row.type),
            value=Decimal(row.value),
            min_purchase=to_cents(row.min_purchase) if row.min_purchase is not None else None,
            max_uses=row.max_uses,
            current_uses=row.current_uses,
            start_date=row.start_date,
            end_date=row.end_date,
            status=DiscountStatus(row.status),
        )


__all__ = (
    "DiscountStatus",
    "derive_status",
    "normalize_code",
    "Discount",
)
