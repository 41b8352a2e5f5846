"""
Checkout — order placement, payment verification, fulfillment.

    from storefront import checkout as CO

    orchestrator = CO.CheckoutOrchestrator(session_factory, CO.HttpPaymentGateway(url, secret))
    match await orchestrator.place_order(user_id, address, ShippingTier.EXPRESS):
        case Ok(placed): ...
        case Error(e): ...
"""

from __future__ import annotations

from storefront.checkout._types import (
    OrderStatus,
    PaymentStatus,
    ShippingAddress,
    OrderLine,
    Order,
    OrderSummary,
    Quote,
    PlacedOrder,
)
from storefront.checkout._gateway import (
    GatewayTransaction,
    GatewayResponseError,
    PaymentGateway,
    parse_verification,
    HttpPaymentGateway,
)
from storefront.checkout._orchestrator import (
    new_order_id,
    mint_payment_reference,
    CheckoutOrchestrator,
)

__all__ = (
    # Types
    "OrderStatus",
    "PaymentStatus",
    "ShippingAddress",
    "OrderLine",
    "Order",
    "OrderSummary",
    "Quote",
    "PlacedOrder",
    # Gateway
    "GatewayTransaction",
    "GatewayResponseError",
    "PaymentGateway",
    "parse_verification",
    "HttpPaymentGateway",
    # Orchestrator
    "new_order_id",
    "mint_payment_reference",
    "CheckoutOrchestrator",
)
