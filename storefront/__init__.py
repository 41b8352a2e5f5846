"""
storefront — e-commerce checkout core.

    from storefront import pricing as P     # Pure order totals
    from storefront import discounts as D   # Coupon validation
    from storefront import cart as C        # Cart aggregation
    from storefront import checkout as CO   # Orders and payment verification
"""

from storefront import pricing
from storefront import db
from storefront import discounts
from storefront import cart
from storefront import checkout
from storefront._errors import CheckoutError, CheckoutErrorKind, CheckoutErrors
from storefront._types import (
    Money,
    Clock,
    to_cents,
    to_minor_units,
    utc_now,
)
from storefront.catalog import Catalog, Product
from storefront.config import Settings

__version__ = "0.1.0"

__all__ = (
    "pricing",
    "db",
    "discounts",
    "cart",
    "checkout",
    "CheckoutError",
    "CheckoutErrorKind",
    "CheckoutErrors",
    "Money",
    "Clock",
    "to_cents",
    "to_minor_units",
    "utc_now",
    "Catalog",
    "Product",
    "Settings",
)
