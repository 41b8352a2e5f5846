"""
Checkout errors — typed outcomes shared by every component.

Operations return Result[T, CheckoutError]. The HTTP layer maps
CheckoutErrorKind to a status code; the core stays transport-agnostic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class CheckoutErrorKind(Enum):
    """Kinds of checkout errors."""

    EMPTY_CART = auto()
    INSUFFICIENT_STOCK = auto()
    PRODUCT_NOT_FOUND = auto()
    INVALID_DISCOUNT = auto()
    MINIMUM_NOT_MET = auto()
    NOT_FOUND = auto()  # Absent or owned by someone else
    REFERENCE_MISMATCH = auto()
    PAYMENT_DECLINED = auto()
    AMOUNT_MISMATCH = auto()  # Fraud signal
    PAYMENT_CLOSED = auto()  # Order already failed/cancelled
    INVALID_TRANSITION = auto()
    INVALID_INPUT = auto()
    CONFLICT = auto()  # Unique value already taken
    GATEWAY_UNAVAILABLE = auto()  # Timeout / network; order stays pending
    INFRASTRUCTURE = auto()


_HTTP_STATUS: dict[CheckoutErrorKind, int] = {
    CheckoutErrorKind.EMPTY_CART: 400,
    CheckoutErrorKind.INSUFFICIENT_STOCK: 400,
    CheckoutErrorKind.PRODUCT_NOT_FOUND: 404,
    CheckoutErrorKind.INVALID_DISCOUNT: 404,
    CheckoutErrorKind.MINIMUM_NOT_MET: 400,
    CheckoutErrorKind.NOT_FOUND: 404,
    CheckoutErrorKind.REFERENCE_MISMATCH: 400,
    CheckoutErrorKind.PAYMENT_DECLINED: 400,
    CheckoutErrorKind.AMOUNT_MISMATCH: 400,
    CheckoutErrorKind.PAYMENT_CLOSED: 400,
    CheckoutErrorKind.INVALID_TRANSITION: 400,
    CheckoutErrorKind.INVALID_INPUT: 400,
    CheckoutErrorKind.CONFLICT: 409,
    CheckoutErrorKind.GATEWAY_UNAVAILABLE: 503,
    CheckoutErrorKind.INFRASTRUCTURE: 500,
}


@dataclass(frozen=True, slots=True)
class CheckoutError:
    """
    Checkout operation error.

    detail carries machine-readable extras (e.g. the required minimum
    purchase) for the response body.
    """

    kind: CheckoutErrorKind
    message: str
    detail: dict[str, Any] = field(default_factory=dict[str, Any])

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self.kind]


class CheckoutErrors:
    @staticmethod
    def empty_cart() -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.EMPTY_CART, "Cannot place order, cart is empty."
        )

    @staticmethod
    def insufficient_stock(product: str) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.INSUFFICIENT_STOCK,
            f"Insufficient stock for {product}.",
        )

    @staticmethod
    def product_not_found(product_id: int) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.PRODUCT_NOT_FOUND, f"Product {product_id} not found."
        )

    @staticmethod
    def invalid_discount() -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.INVALID_DISCOUNT,
            "Invalid, expired, or fully redeemed coupon code.",
        )

    @staticmethod
    def minimum_not_met(minimum: Any) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.MINIMUM_NOT_MET,
            f"Minimum purchase of {minimum} required.",
            {"minPurchaseRequired": str(minimum)},
        )

    @staticmethod
    def order_not_found() -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.NOT_FOUND, "Order not found or access denied."
        )

    @staticmethod
    def reference_mismatch() -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.REFERENCE_MISMATCH, "Payment reference mismatch."
        )

    @staticmethod
    def payment_declined(status: str) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.PAYMENT_DECLINED,
            f"Payment was not successful (gateway status: {status}).",
        )

    @staticmethod
    def amount_mismatch() -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.AMOUNT_MISMATCH,
            "Paid amount does not match the order total.",
        )

    @staticmethod
    def payment_closed() -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.PAYMENT_CLOSED,
            "Payment for this order has already failed.",
        )

    @staticmethod
    def invalid_transition(current: str, target: str) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.INVALID_TRANSITION,
            f"Cannot move order from {current} to {target}.",
        )

    @staticmethod
    def discount_not_found(discount_id: int) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.NOT_FOUND, f"Discount {discount_id} not found."
        )

    @staticmethod
    def duplicate_discount(code: str) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.CONFLICT, f"Discount code {code} already exists."
        )

    @staticmethod
    def invalid_input(msg: str) -> CheckoutError:
        return CheckoutError(CheckoutErrorKind.INVALID_INPUT, msg)

    @staticmethod
    def gateway_unavailable(msg: str) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.GATEWAY_UNAVAILABLE,
            f"Payment gateway unavailable: {msg}",
        )

    @staticmethod
    def infrastructure(msg: str) -> CheckoutError:
        return CheckoutError(CheckoutErrorKind.INFRASTRUCTURE, msg)


__all__ = (
    "CheckoutErrorKind",
    "CheckoutError",
    "CheckoutErrors",
)
