"""
Discounts — coupon validation, usage counting and administration.

    from storefront import discounts as D

    validator = D.DiscountValidator(session_factory)
    discount = await validator.validate("SAVE10")   # Discount | None
"""

from __future__ import annotations

from storefront.discounts._types import (
    DiscountStatus,
    derive_status,
    normalize_code,
    Discount,
)
from storefront.discounts._validator import (
    EDITABLE_FIELDS,
    increment_discount_use,
    DiscountValidator,
)

__all__ = (
    "DiscountStatus",
    "derive_status",
    "normalize_code",
    "Discount",
    "EDITABLE_FIELDS",
    "increment_discount_use",
    "DiscountValidator",
)
