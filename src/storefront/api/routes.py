"""FastAPI routes for the Storefront — cart and orders."""

import json
from datetime import datetime

from fastapi import APIRouter, Depends
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.api.deps import Caller, get_caller, require_customer, require_privileged
from storefront.api.schemas import (
    AddCartItemRequest,
    AddTrackingRequest,
    CancelOrderRequest,
    CartResponse,
    CartSummaryResponse,
    CartValidationResponse,
    CheckoutRequest,
    CouponRequest,
    MergeCartRequest,
    OrderListResponse,
    OrderResponse,
    OrderStatsResponse,
    RefundRequest,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
    UpdatePaymentRequest,
)
from storefront.cart.cart import Cart
from storefront.cart.coupons import ApplyCoupon, RemoveCoupon
from storefront.cart.items import AddCartItem, ClearCart, RemoveCartItem, UpdateCartItemQuantity
from storefront.cart.merge import MergeGuestCart
from storefront.cart.store import CartStore
from storefront.checkout.orchestrator import CheckoutOrchestrator
from storefront.errors import OrderNotFound
from storefront.order.cancellation import CancelOrder, RequestRefund
from storefront.order.order import CancelledBy, Order
from storefront.order.status import AddTrackingInfo, UpdateOrderStatus, UpdatePaymentStatus


def _cart_response(cart_id) -> CartResponse:
    return CartResponse.of(current_domain.repository_for(Cart).get(cart_id))


def _order_response(order_id) -> OrderResponse:
    return OrderResponse.of(current_domain.repository_for(Order).get(order_id))


def _find_order(order_ref: str, caller: Caller) -> Order:
    """Look an order up by id or order number, as seen by ``caller``.

    Another customer's order is reported as missing, not forbidden.
    """
    repo = current_domain.repository_for(Order)
    try:
        order = repo.get(order_ref)
    except ObjectNotFoundError:
        order = repo.find_by_order_number(order_ref)

    if order is None or (not caller.is_privileged and str(order.customer_id) != str(caller.customer_id)):
        raise OrderNotFound(order_ref=order_ref)
    return order


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(caller: Caller = Depends(get_caller)) -> CartResponse:
    return CartResponse.of(CartStore().get_cart(caller.owner))


@cart_router.get("/summary", response_model=CartSummaryResponse)
async def get_cart_summary(caller: Caller = Depends(get_caller)) -> CartSummaryResponse:
    """Counts and totals of the caller's active cart. Never opens a cart."""
    if not (caller.customer_id or caller.session_id):
        return CartSummaryResponse.of(None)
    return CartSummaryResponse.of(current_domain.repository_for(Cart).find_active(caller.owner))


@cart_router.post("/validate", response_model=CartValidationResponse)
async def validate_cart(caller: Caller = Depends(get_caller)) -> CartValidationResponse:
    store = CartStore()
    cart = store.repository.find_active(caller.owner)
    validation = store.validate(cart)
    return CartValidationResponse.of(cart, validation)


@cart_router.post("/items", response_model=CartResponse)
async def add_cart_item(body: AddCartItemRequest, caller: Caller = Depends(get_caller)) -> CartResponse:
    command = AddCartItem(
        **caller.owner_fields(),
        product_id=body.product_id,
        quantity=body.quantity,
        selected_variants=json.dumps([v.model_dump() for v in body.selected_variants]),
    )
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_response(cart_id)


@cart_router.put("/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: str, body: UpdateCartItemRequest, caller: Caller = Depends(get_caller)
) -> CartResponse:
    command = UpdateCartItemQuantity(**caller.owner_fields(), item_id=item_id, quantity=body.quantity)
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_response(cart_id)


@cart_router.delete("/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(item_id: str, caller: Caller = Depends(get_caller)) -> CartResponse:
    command = RemoveCartItem(**caller.owner_fields(), item_id=item_id)
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_response(cart_id)


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(caller: Caller = Depends(get_caller)) -> CartResponse:
    cart_id = current_domain.process(ClearCart(**caller.owner_fields()), asynchronous=False)
    return _cart_response(cart_id)


@cart_router.post("/coupon", response_model=CartResponse)
async def apply_coupon(body: CouponRequest, caller: Caller = Depends(get_caller)) -> CartResponse:
    cart_id = current_domain.process(ApplyCoupon(**caller.owner_fields(), code=body.code), asynchronous=False)
    return _cart_response(cart_id)


@cart_router.delete("/coupon", response_model=CartResponse)
async def remove_coupon(body: CouponRequest, caller: Caller = Depends(get_caller)) -> CartResponse:
    cart_id = current_domain.process(RemoveCoupon(**caller.owner_fields(), code=body.code), asynchronous=False)
    return _cart_response(cart_id)


@cart_router.post("/merge", response_model=CartResponse)
async def merge_cart(body: MergeCartRequest, caller: Caller = Depends(require_customer)) -> CartResponse:
    command = MergeGuestCart(customer_id=caller.customer_id, session_id=body.session_id)
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_response(cart_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: CheckoutRequest, caller: Caller = Depends(require_customer)) -> OrderResponse:
    order = CheckoutOrchestrator().checkout(
        caller.customer_id,
        body.shipping_address_id,
        billing_address_id=body.billing_address_id,
        payment_method=body.payment_method,
        special_instructions=body.special_instructions,
        use_shipping_as_billing=body.use_shipping_as_billing,
    )
    return OrderResponse.of(order)


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    status: str | None = None,
    customer_id: str | None = None,
    order_number: str | None = None,
    page: int = 1,
    limit: int = 10,
    caller: Caller = Depends(require_customer),
) -> OrderListResponse:
    repo = current_domain.repository_for(Order)
    page, limit = max(page, 1), min(max(limit, 1), 100)
    if caller.is_privileged:
        results = repo.search(
            status=status, customer_id=customer_id, order_number=order_number, page=page, limit=limit
        )
    else:
        results = repo.for_customer(caller.customer_id, status=status, page=page, limit=limit)
    return OrderListResponse.of(results)


@order_router.get("/stats", response_model=OrderStatsResponse)
async def order_stats(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    caller: Caller = Depends(require_privileged),
) -> OrderStatsResponse:
    return OrderStatsResponse.of(current_domain.repository_for(Order).stats(start_date, end_date))


@order_router.get("/{order_ref}", response_model=OrderResponse)
async def get_order(order_ref: str, caller: Caller = Depends(require_customer)) -> OrderResponse:
    return OrderResponse.of(_find_order(order_ref, caller))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, caller: Caller = Depends(require_privileged)
) -> OrderResponse:
    order = _find_order(order_id, caller)
    command = UpdateOrderStatus(order_id=str(order.id), status=body.status, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return _order_response(order.id)


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str, body: CancelOrderRequest | None = None, caller: Caller = Depends(require_customer)
) -> OrderResponse:
    order = _find_order(order_id, caller)
    own_order = str(order.customer_id) == str(caller.customer_id)
    cancelled_by = CancelledBy.CUSTOMER.value if own_order else CancelledBy.ADMIN.value
    command = CancelOrder(
        order_id=str(order.id),
        reason=body.reason if body else None,
        cancelled_by=cancelled_by,
    )
    current_domain.process(command, asynchronous=False)
    return _order_response(order.id)


@order_router.post("/{order_id}/refund", response_model=OrderResponse)
async def request_refund(
    order_id: str, body: RefundRequest, caller: Caller = Depends(require_customer)
) -> OrderResponse:
    order = _find_order(order_id, caller)
    if str(order.customer_id) != str(caller.customer_id):
        raise OrderNotFound(order_ref=order_id)
    current_domain.process(RequestRefund(order_id=str(order.id), reason=body.reason), asynchronous=False)
    return _order_response(order.id)


@order_router.put("/{order_id}/payment", response_model=OrderResponse)
async def update_payment_status(
    order_id: str, body: UpdatePaymentRequest, caller: Caller = Depends(require_privileged)
) -> OrderResponse:
    order = _find_order(order_id, caller)
    command = UpdatePaymentStatus(order_id=str(order.id), status=body.status, transaction_id=body.transaction_id)
    current_domain.process(command, asynchronous=False)
    return _order_response(order.id)


@order_router.put("/{order_id}/items/{item_id}/tracking", response_model=OrderResponse)
async def add_tracking(
    order_id: str, item_id: str, body: AddTrackingRequest, caller: Caller = Depends(require_privileged)
) -> OrderResponse:
    order = _find_order(order_id, caller)
    command = AddTrackingInfo(
        order_id=str(order.id),
        item_id=item_id,
        carrier=body.carrier,
        tracking_number=body.tracking_number,
        estimated_delivery=body.estimated_delivery,
    )
    current_domain.process(command, asynchronous=False)
    return _order_response(order.id)
