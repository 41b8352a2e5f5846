"""Request/response schemas. Wire names are camelCase; Python names stay snake_case."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from storefront.cart import CartView
from storefront.checkout import (
    Order,
    OrderStatus,
    OrderSummary,
    PaymentStatus,
    PlacedOrder,
    Quote,
    ShippingAddress,
)
from storefront.discounts import Discount, DiscountStatus
from storefront.pricing import DiscountType, PriceBreakdown, ShippingTier

MoneyField = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


# Stored naive, in UTC
UtcDateTime = Annotated[datetime, AfterValidator(_naive_utc)]


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---


class CartUpsertRequest(Schema):
    product_id: int
    quantity: int


class CalculateRequest(Schema):
    shipping_method: ShippingTier = ShippingTier.STANDARD
    discount_code: str | None = None


class DiscountValidateRequest(Schema):
    code: str = Field(..., min_length=1)


class ShippingAddressSchema(Schema):
    full_name: str = Field(..., min_length=1)
    line1: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    line2: str | None = None
    region: str | None = None
    postal_code: str | None = None
    phone: str | None = None

    def to_domain(self) -> ShippingAddress:
        return ShippingAddress(
            full_name=self.full_name,
            line1=self.line1,
            city=self.city,
            country=self.country,
            line2=self.line2,
            region=self.region,
            postal_code=self.postal_code,
            phone=self.phone,
        )

    @classmethod
    def from_domain(cls, address: ShippingAddress) -> ShippingAddressSchema:
        return cls.model_validate(address.to_dict())


class PlaceOrderRequest(Schema):
    shipping_address: ShippingAddressSchema
    shipping_method: ShippingTier = ShippingTier.STANDARD
    discount_code: str | None = None


class VerifyPaymentRequest(Schema):
    order_id: str
    reference: str


class StatusUpdateRequest(Schema):
    status: OrderStatus


# --- Cart ---


class CartLineSchema(Schema):
    line_id: int
    product_id: int
    name: str
    price: MoneyField
    quantity: int
    available_stock: int
    line_subtotal: MoneyField


class CartSchema(Schema):
    lines: list[CartLineSchema]
    subtotal: MoneyField
    item_count: int

    @classmethod
    def from_domain(cls, cart: CartView) -> CartSchema:
        return cls(
            lines=[
                CartLineSchema(
                    line_id=line.line_id,
                    product_id=line.product_id,
                    name=line.product.name,
                    price=line.product.price,
                    quantity=line.quantity,
                    available_stock=line.product.available_stock,
                    line_subtotal=line.line_subtotal,
                )
                for line in cart.lines
            ],
            subtotal=cart.subtotal,
            item_count=cart.item_count,
        )


class BreakdownSchema(Schema):
    subtotal: MoneyField
    discount_amount: MoneyField
    discounted_subtotal: MoneyField
    shipping_cost: MoneyField
    tax: MoneyField
    grand_total: MoneyField
    discount_code: str | None = None

    @classmethod
    def from_domain(cls, breakdown: PriceBreakdown) -> BreakdownSchema:
        return cls(
            subtotal=breakdown.subtotal,
            discount_amount=breakdown.discount_amount,
            discounted_subtotal=breakdown.discounted_subtotal,
            shipping_cost=breakdown.shipping_cost,
            tax=breakdown.tax,
            grand_total=breakdown.grand_total,
            discount_code=breakdown.discount_code,
        )


class DiscountSchema(Schema):
    code: str
    description: str
    type: DiscountType
    value: MoneyField
    min_purchase: MoneyField | None = None

    @classmethod
    def from_domain(cls, discount: Discount) -> DiscountSchema:
        return cls(
            code=discount.code,
            description=discount.description,
            type=discount.kind,
            value=discount.value,
            min_purchase=discount.min_purchase,
        )


# --- Checkout ---


class PlacedOrderSchema(Schema):
    order_id: str
    order_total: MoneyField
    order_total_minor_units: int
    payment_reference: str

    @classmethod
    def from_domain(cls, placed: PlacedOrder) -> PlacedOrderSchema:
        return cls(
            order_id=placed.order_id,
            order_total=placed.grand_total,
            order_total_minor_units=placed.grand_total_minor_units,
            payment_reference=placed.payment_reference,
        )


class VerifiedOrderSchema(Schema):
    id: str
    status: OrderStatus
    payment_status: PaymentStatus
    total: MoneyField


class VerifyPaymentResponse(Schema):
    order: VerifiedOrderSchema

    @classmethod
    def from_domain(cls, order: Order) -> VerifyPaymentResponse:
        return cls(
            order=VerifiedOrderSchema(
                id=order.id,
                status=order.status,
                payment_status=order.payment_status,
                total=order.total,
            )
        )


# --- Orders ---


class OrderSummarySchema(Schema):
    id: str
    user_id: int
    created_at: datetime
    status: OrderStatus
    payment_status: PaymentStatus
    total: MoneyField
    item_count: int

    @classmethod
    def from_domain(cls, summary: OrderSummary) -> OrderSummarySchema:
        return cls(
            id=summary.id,
            user_id=summary.user_id,
            created_at=summary.created_at,
            status=summary.status,
            payment_status=summary.payment_status,
            total=summary.total,
            item_count=summary.item_count,
        )


class OrderListResponse(Schema):
    orders: list[OrderSummarySchema]
    count: int

    @classmethod
    def from_domain(cls, summaries: list[OrderSummary]) -> OrderListResponse:
        return cls(
            orders=[OrderSummarySchema.from_domain(s) for s in summaries],
            count=len(summaries),
        )


class OrderLineSchema(Schema):
    product_id: int
    name: str
    price: MoneyField
    quantity: int
    line_total: MoneyField


class OrderDetailSchema(Schema):
    id: str
    user_id: int
    created_at: datetime
    status: OrderStatus
    payment_status: PaymentStatus
    payment_reference: str | None
    shipping_address: ShippingAddressSchema
    shipping_method: ShippingTier
    lines: list[OrderLineSchema]
    subtotal: MoneyField
    discount_code: str | None
    discount_amount: MoneyField
    shipping_cost: MoneyField
    tax: MoneyField
    total: MoneyField

    @classmethod
    def from_domain(cls, order: Order) -> OrderDetailSchema:
        return cls(
            id=order.id,
            user_id=order.user_id,
            created_at=order.created_at,
            status=order.status,
            payment_status=order.payment_status,
            payment_reference=order.payment_reference,
            shipping_address=ShippingAddressSchema.from_domain(order.shipping_address),
            shipping_method=order.shipping_tier,
            lines=[
                OrderLineSchema(
                    product_id=line.product_id,
                    name=line.name,
                    price=line.price,
                    quantity=line.quantity,
                    line_total=line.line_total,
                )
                for line in order.lines
            ],
            subtotal=order.subtotal,
            discount_code=order.discount_code,
            discount_amount=order.discount_amount,
            shipping_cost=order.shipping_cost,
            tax=order.tax,
            total=order.total,
        )


class QuoteSchema(Schema):
    cart: CartSchema
    totals: BreakdownSchema
    discount: DiscountSchema | None = None

    @classmethod
    def from_domain(cls, quote: Quote) -> QuoteSchema:
        return cls(
            cart=CartSchema.from_domain(quote.cart),
            totals=BreakdownSchema.from_domain(quote.breakdown),
            discount=DiscountSchema.from_domain(quote.discount) if quote.discount else None,
        )


# --- Discount administration ---

# Fields an update may not set to null
_NOT_NULLABLE = frozenset({"code", "description", "kind", "value", "start_date", "end_date"})


class DiscountCreateRequest(Schema):
    code: str = Field(..., min_length=1)
    description: str = ""
    type: DiscountType
    value: Decimal = Field(..., gt=0)
    min_purchase: Decimal | None = Field(None, ge=0)
    max_uses: int | None = Field(None, gt=0)
    start_date: UtcDateTime
    end_date: UtcDateTime


class DiscountUpdateRequest(Schema):
    """Partial update; only the fields present in the body change."""

    code: str | None = None
    description: str | None = None
    type: DiscountType | None = None
    value: Decimal | None = Field(None, gt=0)
    min_purchase: Decimal | None = Field(None, ge=0)
    max_uses: int | None = Field(None, gt=0)
    start_date: UtcDateTime | None = None
    end_date: UtcDateTime | None = None

    def to_changes(self) -> dict[str, Any]:
        changes = self.model_dump(exclude_unset=True)
        if "type" in changes:
            changes["kind"] = changes.pop("type")
        return {
            name: value
            for name, value in changes.items()
            if value is not None or name not in _NOT_NULLABLE
        }


class DiscountAdminSchema(Schema):
    id: int
    code: str
    description: str
    type: DiscountType
    value: MoneyField
    min_purchase: MoneyField | None
    max_uses: int | None
    current_uses: int
    start_date: datetime
    end_date: datetime
    status: DiscountStatus

    @classmethod
    def from_domain(cls, discount: Discount) -> DiscountAdminSchema:
        return cls(
            id=discount.id,
            code=discount.code,
            description=discount.description,
            type=discount.kind,
            value=discount.value,
            min_purchase=discount.min_purchase,
            max_uses=discount.max_uses,
            current_uses=discount.current_uses,
            start_date=discount.start_date,
            end_date=discount.end_date,
            status=discount.status,
        )


class DiscountListResponse(Schema):
    discounts: list[DiscountAdminSchema]
    count: int

    @classmethod
    def from_domain(cls, discounts: Sequence[Discount]) -> DiscountListResponse:
        return cls(
            discounts=[DiscountAdminSchema.from_domain(d) for d in discounts],
            count=len(discounts),
        )
