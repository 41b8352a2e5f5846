"""
HTTP surface for the storefront core.

Identity is supplied by the upstream auth layer: X-User-Id carries the
caller, X-User-Role: admin unlocks the /admin routes. Domain errors come
back as {"message": ..., "code": ...} with the status their kind maps to.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any

import httpx
from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from kungfu import Result, Ok, Error

from storefront._errors import CheckoutError
from storefront.api._schemas import (
    CalculateRequest,
    CartSchema,
    CartUpsertRequest,
    DiscountAdminSchema,
    DiscountCreateRequest,
    DiscountListResponse,
    DiscountSchema,
    DiscountUpdateRequest,
    DiscountValidateRequest,
    OrderDetailSchema,
    OrderListResponse,
    PlacedOrderSchema,
    PlaceOrderRequest,
    QuoteSchema,
    StatusUpdateRequest,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from storefront.checkout import CheckoutOrchestrator, HttpPaymentGateway, PaymentGateway
from storefront.config import Settings
from storefront.db import create_database
from storefront.discounts import DiscountStatus, DiscountValidator

logger = logging.getLogger(__name__)


# --- Errors ---


class ApiError(Exception):
    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.extra = extra or {}

    @classmethod
    def from_checkout(cls, error: CheckoutError) -> ApiError:
        return cls(error.http_status, error.kind.name, error.message, error.detail)


def unwrap[T](result: Result[T, CheckoutError]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            raise ApiError.from_checkout(e)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "code": exc.code, **exc.extra},
    )


async def database_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error.", "code": "INFRASTRUCTURE"},
    )


# --- Dependencies ---


def get_orchestrator(request: Request) -> CheckoutOrchestrator:
    return request.app.state.orchestrator


def current_user(x_user_id: Annotated[int | None, Header()] = None) -> int:
    if x_user_id is None:
        raise ApiError(401, "UNAUTHORIZED", "Authentication required.")
    return x_user_id


def require_admin(
    user_id: Annotated[int, Depends(current_user)],
    x_user_role: Annotated[str | None, Header()] = None,
) -> int:
    if x_user_role != "admin":
        raise ApiError(403, "FORBIDDEN", "Admin access required.")
    return user_id


Orchestrator = Annotated[CheckoutOrchestrator, Depends(get_orchestrator)]


def get_discounts(orchestrator: Orchestrator) -> DiscountValidator:
    return orchestrator.discounts


Discounts = Annotated[DiscountValidator, Depends(get_discounts)]
UserId = Annotated[int, Depends(current_user)]
AdminId = Annotated[int, Depends(require_admin)]


# --- Cart ---

router = APIRouter()


@router.get("/cart", response_model=CartSchema)
async def get_cart(orchestrator: Orchestrator, user_id: UserId):
    return CartSchema.from_domain(await orchestrator.carts.load(user_id))


@router.post("/cart", response_model=CartSchema)
async def upsert_cart_line(request: CartUpsertRequest, orchestrator: Orchestrator, user_id: UserId):
    """Set a product's quantity; zero or less removes it."""
    cart = unwrap(
        await orchestrator.carts.upsert_line(user_id, request.product_id, request.quantity)
    )
    return CartSchema.from_domain(cart)


@router.delete("/cart/clear", response_model=CartSchema)
async def clear_cart(orchestrator: Orchestrator, user_id: UserId):
    await orchestrator.carts.clear(user_id)
    return CartSchema.from_domain(await orchestrator.carts.load(user_id))


@router.delete("/cart/{product_id}", response_model=CartSchema)
async def remove_cart_line(product_id: int, orchestrator: Orchestrator, user_id: UserId):
    return CartSchema.from_domain(await orchestrator.carts.remove_line(user_id, product_id))


@router.post("/cart/calculate", response_model=QuoteSchema)
async def calculate_cart(request: CalculateRequest, orchestrator: Orchestrator, user_id: UserId):
    quote = await orchestrator.quote(user_id, request.shipping_method, request.discount_code)
    return QuoteSchema.from_domain(quote)


# --- Discounts ---


@router.post("/discounts/validate", response_model=DiscountSchema)
async def validate_discount(
    request: DiscountValidateRequest,
    orchestrator: Orchestrator,
    user_id: UserId,
):
    """Check a coupon against the caller's current cart subtotal."""
    cart = await orchestrator.carts.load(user_id)
    discount = unwrap(await orchestrator.discounts.check_coupon(request.code, cart.subtotal))
    return DiscountSchema.from_domain(discount)


# --- Checkout ---


@router.post("/checkout/order", response_model=PlacedOrderSchema, status_code=201)
async def place_order(request: PlaceOrderRequest, orchestrator: Orchestrator, user_id: UserId):
    placed = unwrap(
        await orchestrator.place_order(
            user_id,
            request.shipping_address.to_domain(),
            request.shipping_method,
            request.discount_code,
        )
    )
    return PlacedOrderSchema.from_domain(placed)


@router.post("/checkout/verify", response_model=VerifyPaymentResponse)
async def verify_payment(request: VerifyPaymentRequest, orchestrator: Orchestrator, user_id: UserId):
    order = unwrap(
        await orchestrator.verify_payment(request.order_id, user_id, request.reference)
    )
    return VerifyPaymentResponse.from_domain(order)


# --- Account ---


@router.get("/account/orders", response_model=OrderListResponse)
async def list_my_orders(orchestrator: Orchestrator, user_id: UserId):
    return OrderListResponse.from_domain(await orchestrator.list_orders(user_id))


@router.get("/account/orders/{order_id}", response_model=OrderDetailSchema)
async def get_my_order(order_id: str, orchestrator: Orchestrator, user_id: UserId):
    return OrderDetailSchema.from_domain(unwrap(await orchestrator.get_order(order_id, user_id)))


# --- Admin ---


@router.get("/admin/orders", response_model=OrderListResponse)
async def list_all_orders(orchestrator: Orchestrator, _admin: AdminId):
    return OrderListResponse.from_domain(await orchestrator.list_all_orders())


@router.patch("/admin/orders/{order_id}/status", response_model=OrderDetailSchema)
async def update_order_status(
    order_id: str,
    request: StatusUpdateRequest,
    orchestrator: Orchestrator,
    _admin: AdminId,
):
    order = unwrap(await orchestrator.update_fulfillment_status(order_id, request.status))
    return OrderDetailSchema.from_domain(order)


@router.post("/admin/orders/{order_id}/fail", response_model=OrderDetailSchema)
async def fail_order(order_id: str, orchestrator: Orchestrator, _admin: AdminId):
    return OrderDetailSchema.from_domain(unwrap(await orchestrator.mark_order_failed(order_id)))


@router.get("/admin/discounts", response_model=DiscountListResponse)
async def list_discounts(
    discounts: Discounts,
    _admin: AdminId,
    search: str | None = None,
    status: DiscountStatus | None = None,
):
    return DiscountListResponse.from_domain(await discounts.list_discounts(search, status))


@router.post("/admin/discounts", response_model=DiscountAdminSchema, status_code=201)
async def create_discount(request: DiscountCreateRequest, discounts: Discounts, _admin: AdminId):
    discount = unwrap(
        await discounts.create(
            code=request.code,
            kind=request.type,
            value=request.value,
            description=request.description,
            min_purchase=request.min_purchase,
            max_uses=request.max_uses,
            start_date=request.start_date,
            end_date=request.end_date,
        )
    )
    return DiscountAdminSchema.from_domain(discount)


@router.put("/admin/discounts/{discount_id}", response_model=DiscountAdminSchema)
async def update_discount(
    discount_id: int,
    request: DiscountUpdateRequest,
    discounts: Discounts,
    _admin: AdminId,
):
    """Change only the fields sent; the status follows the resulting window."""
    discount = unwrap(await discounts.update(discount_id, **request.to_changes()))
    return DiscountAdminSchema.from_domain(discount)


@router.delete("/admin/discounts/{discount_id}", response_model=DiscountAdminSchema)
async def delete_discount(discount_id: int, discounts: Discounts, _admin: AdminId):
    return DiscountAdminSchema.from_domain(unwrap(await discounts.delete(discount_id)))


@router.get("/health")
async def health_check():
    return {"status": "ok"}


# --- Application ---


def create_app(
    settings: Settings | None = None,
    *,
    gateway: PaymentGateway | None = None,
) -> FastAPI:
    """
    Build the app. The database and the gateway client live for the
    lifespan of the app; pass gateway to replace the HTTP client.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        session_factory, engine = await create_database(settings.database_url)
        async with httpx.AsyncClient(timeout=settings.gateway_timeout_seconds) as http:
            app.state.orchestrator = CheckoutOrchestrator(
                session_factory,
                gateway
                or HttpPaymentGateway(
                    settings.gateway_base_url,
                    settings.gateway_secret_key,
                    timeout=settings.gateway_timeout_seconds,
                    client=http,
                ),
                rates=settings.pricing_rates(),
                restock_on_failure=settings.restock_on_failure,
            )
            try:
                yield
            finally:
                await engine.dispose()

    app = FastAPI(title="storefront", lifespan=lifespan)
    app.include_router(router, prefix="/api")
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    return app


__all__ = ("ApiError", "unwrap", "create_app")
