"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands and aggregates. Quantities and statuses are not
range-checked here; the domain rejects them with its own error codes.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from storefront.cart.cart import Cart, CartItem
from storefront.order.order import Order, OrderItem
from storefront.cart.store import CartValidation
from storefront.order.repository import OrderPage, OrderStats, StatusStats
from storefront.pricing.engine import AppliedDiscount, Totals


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class VariantSchema(BaseModel):
    name: str
    value: str


class DiscountSchema(BaseModel):
    code: str
    magnitude: float
    type: str

    @classmethod
    def of(cls, discount: AppliedDiscount) -> "DiscountSchema":
        return cls(**discount.to_dict())


class TotalsSchema(BaseModel):
    subtotal: float = 0.0
    tax: float = 0.0
    shipping: float = 0.0
    discount: float = 0.0
    total: float = 0.0

    @classmethod
    def of(cls, totals: Totals) -> "TotalsSchema":
        return cls(**totals.as_dict())


class ProductSnapshotSchema(BaseModel):
    name: str
    slug: str | None = None
    sku: str | None = None
    image: str | None = None
    brand: str | None = None
    category: str | None = None


class AddressSchema(BaseModel):
    first_name: str
    last_name: str
    company: str | None = None
    address_line1: str
    address_line2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str
    phone: str | None = None


class BuyerSchema(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: str | None = None


class TrackingSchema(BaseModel):
    carrier: str
    tracking_number: str
    tracking_url: str | None = None
    estimated_delivery: datetime | None = None


def _dump(value_object) -> dict | None:
    return value_object.to_dict() if value_object is not None else None


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddCartItemRequest(BaseModel):
    product_id: str
    quantity: int = 1
    selected_variants: list[VariantSchema] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "quantity": 2,
                    "selected_variants": [{"name": "Size", "value": "M"}],
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int


class CouponRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)


class MergeCartRequest(BaseModel):
    session_id: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Cart Response Schemas
# ---------------------------------------------------------------------------
class CartItemResponse(BaseModel):
    id: str
    product_id: str
    quantity: int
    unit_price: float
    line_total: float
    selected_variants: list[VariantSchema] = Field(default_factory=list)
    product: ProductSnapshotSchema | None = None
    added_at: datetime | None = None

    @classmethod
    def of(cls, item: CartItem) -> "CartItemResponse":
        return cls(
            id=str(item.id),
            product_id=str(item.product_id),
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.line_total,
            selected_variants=item.variants,
            product=_dump(item.product),
            added_at=item.added_at,
        )


class CartResponse(BaseModel):
    id: str
    customer_id: str | None = None
    session_id: str | None = None
    status: str
    items: list[CartItemResponse] = Field(default_factory=list)
    applied_discounts: list[DiscountSchema] = Field(default_factory=list)
    totals: TotalsSchema
    item_count: int = 0
    currency: str = "USD"
    notes: str | None = None
    expires_at: datetime | None = None

    @classmethod
    def of(cls, cart: Cart) -> "CartResponse":
        return cls(
            id=str(cart.id),
            customer_id=str(cart.customer_id) if cart.customer_id else None,
            session_id=cart.session_id,
            status=cart.status,
            items=[CartItemResponse.of(item) for item in cart.items],
            applied_discounts=[DiscountSchema.of(d) for d in cart.discounts],
            totals=TotalsSchema.of(cart.totals),
            item_count=cart.item_count,
            currency=cart.currency,
            notes=cart.notes,
            expires_at=cart.expires_at,
        )


class CartSummaryResponse(BaseModel):
    item_count: int = 0
    line_count: int = 0
    is_empty: bool = True
    totals: TotalsSchema = Field(default_factory=TotalsSchema)
    currency: str = "USD"

    @classmethod
    def of(cls, cart: Cart | None) -> "CartSummaryResponse":
        """Summarize ``cart``; no cart reads as an empty one."""
        if cart is None:
            return cls()
        return cls(
            item_count=cart.item_count,
            line_count=len(cart.items),
            is_empty=cart.is_empty,
            totals=TotalsSchema.of(cart.totals),
            currency=cart.currency,
        )


class CartValidationResponse(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    cart: CartResponse

    @classmethod
    def of(cls, cart: Cart, validation: CartValidation) -> "CartValidationResponse":
        return cls(
            is_valid=validation.is_valid,
            errors=validation.errors,
            warnings=validation.warnings,
            cart=CartResponse.of(cart),
        )


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    shipping_address_id: str
    billing_address_id: str | None = None
    use_shipping_as_billing: bool = True
    payment_method: str = "credit_card"
    special_instructions: str | None = Field(default=None, max_length=500)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address_id": "addr-001",
                    "use_shipping_as_billing": True,
                    "payment_method": "credit_card",
                    "special_instructions": "Leave at the front desk",
                }
            ]
        }
    }


class UpdateOrderStatusRequest(BaseModel):
    status: str
    reason: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class RefundRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class UpdatePaymentRequest(BaseModel):
    status: str
    transaction_id: str | None = None


class AddTrackingRequest(BaseModel):
    carrier: str = Field(min_length=1)
    tracking_number: str = Field(min_length=1)
    estimated_delivery: datetime | None = None


# ---------------------------------------------------------------------------
# Order Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    product: ProductSnapshotSchema | None = None
    quantity: int
    unit_price: float
    total_price: float
    selected_variants: list[VariantSchema] = Field(default_factory=list)
    status: str
    tracking: TrackingSchema | None = None

    @classmethod
    def of(cls, item: OrderItem) -> "OrderItemResponse":
        return cls(
            id=str(item.id),
            product_id=str(item.product_id),
            product=_dump(item.product),
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
            selected_variants=item.variants,
            status=item.status,
            tracking=_dump(item.tracking),
        )


class PaymentResponse(BaseModel):
    method: str
    status: str
    transaction_id: str | None = None
    paid_at: datetime | None = None
    failed_at: datetime | None = None
    refunded_at: datetime | None = None


class OrderResponse(BaseModel):
    id: str
    order_number: str
    customer_id: str
    buyer: BuyerSchema | None = None
    status: str
    items: list[OrderItemResponse] = Field(default_factory=list)
    totals: TotalsSchema
    currency: str = "USD"
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    payment: PaymentResponse
    applied_discounts: list[DiscountSchema] = Field(default_factory=list)
    special_instructions: str | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancel_reason: str | None = None
    cancelled_by: str | None = None
    refund_requested: bool = False
    refund_reason: str | None = None
    needs_review: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def of(cls, order: Order) -> "OrderResponse":
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            customer_id=str(order.customer_id),
            buyer=_dump(order.buyer),
            status=order.status,
            items=[OrderItemResponse.of(item) for item in order.items],
            totals=TotalsSchema.of(order.totals),
            currency=order.currency,
            shipping_address=_dump(order.shipping_address),
            billing_address=_dump(order.billing_address),
            payment=PaymentResponse(
                method=order.payment_method,
                status=order.payment_status,
                transaction_id=order.transaction_id,
                paid_at=order.paid_at,
                failed_at=order.failed_at,
                refunded_at=order.refunded_at,
            ),
            applied_discounts=[DiscountSchema.of(d) for d in order.discounts],
            special_instructions=order.special_instructions,
            delivered_at=order.delivered_at,
            cancelled_at=order.cancelled_at,
            cancel_reason=order.cancel_reason,
            cancelled_by=order.cancelled_by,
            refund_requested=bool(order.refund_requested),
            refund_reason=order.refund_reason,
            needs_review=bool(order.needs_review),
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderSummaryResponse(BaseModel):
    id: str
    order_number: str
    status: str
    payment_status: str
    item_count: int
    total: float
    created_at: datetime | None = None

    @classmethod
    def of(cls, order: Order) -> "OrderSummaryResponse":
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
            item_count=order.item_count,
            total=order.total,
            created_at=order.created_at,
        )


class PaginationSchema(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OrderListResponse(BaseModel):
    orders: list[OrderSummaryResponse] = Field(default_factory=list)
    pagination: PaginationSchema

    @classmethod
    def of(cls, page: OrderPage) -> "OrderListResponse":
        return cls(
            orders=[OrderSummaryResponse.of(order) for order in page.items],
            pagination=PaginationSchema(page=page.page, limit=page.limit, total=page.total, pages=page.pages),
        )


class StatusStatsSchema(BaseModel):
    status: str
    count: int
    total_revenue: float
    avg_order_value: float

    @classmethod
    def of(cls, stats: StatusStats) -> "StatusStatsSchema":
        return cls(
            status=stats.status,
            count=stats.count,
            total_revenue=stats.total_revenue,
            avg_order_value=stats.avg_order_value,
        )


class StatsSummarySchema(BaseModel):
    total_orders: int
    total_revenue: float


class OrderStatsResponse(BaseModel):
    summary: StatsSummarySchema
    by_status: list[StatusStatsSchema] = Field(default_factory=list)

    @classmethod
    def of(cls, stats: OrderStats) -> "OrderStatsResponse":
        return cls(
            summary=StatsSummarySchema(total_orders=stats.total_orders, total_revenue=stats.total_revenue),
            by_status=[StatusStatsSchema.of(s) for s in stats.by_status],
        )
