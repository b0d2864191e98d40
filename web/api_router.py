"""
Customer-facing JSON API: cart, coupon preview, checkout and orders.

The caller is identified by the X-User-Id and/or X-Session-Token headers
(signed-in user or guest). Service exceptions are turned into structured
error responses by the handlers registered in app.py.
"""

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from enums.order_status import OrderStatus
from models.cart import CartSummaryDTO
from models.checkout import CheckoutRequestDTO, CheckoutResultDTO
from models.order import OrderWithItemsDTO, OrderPageDTO
from services.cart import CartService
from services.checkout import CheckoutService
from services.coupon import CouponService
from services.notification import NotificationDispatcher
from services.order import OrderService
from services.payment_gateway import PaymentGatewayClient
from utils.permission_utils import Owner, require_owner
from web.dependencies import get_owner, get_session, get_payment_gateway, get_dispatcher

api_router = APIRouter(prefix="/api", tags=["api"])

# Admin-only notes and the guest session key never leave through the customer API
HIDDEN_ORDER_FIELDS = {"internal_notes", "session_token"}


class AddCartItemRequest(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=36)
    quantity: int = Field(1, ge=1, le=999)


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(..., ge=0, le=999)  # 0 removes the item


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    subtotal: int | None = Field(None, ge=0)  # Defaults to the current cart subtotal


class CouponPreviewResponse(BaseModel):
    code: str
    subtotal: int
    discount: int


# Cart

@api_router.get("/cart", response_model=CartSummaryDTO)
async def get_cart(owner: Owner = Depends(get_owner), session: AsyncSession = Depends(get_session)):
    return await CartService.get_cart_summary(owner, session)


@api_router.post("/cart/items", response_model=CartSummaryDTO, status_code=status.HTTP_201_CREATED)
async def add_cart_item(payload: AddCartItemRequest,
                        owner: Owner = Depends(get_owner),
                        session: AsyncSession = Depends(get_session)):
    return await CartService.add_item(owner, payload.product_id, payload.quantity, session)


@api_router.patch("/cart/items/{cart_item_id}", response_model=CartSummaryDTO)
async def update_cart_item(cart_item_id: int,
                           payload: UpdateCartItemRequest,
                           owner: Owner = Depends(get_owner),
                           session: AsyncSession = Depends(get_session)):
    return await CartService.update_quantity(owner, cart_item_id, payload.quantity, session)


@api_router.delete("/cart/items/{cart_item_id}", response_model=CartSummaryDTO)
async def remove_cart_item(cart_item_id: int,
                           owner: Owner = Depends(get_owner),
                           session: AsyncSession = Depends(get_session)):
    return await CartService.remove_item(owner, cart_item_id, session)


@api_router.delete("/cart", response_model=CartSummaryDTO)
async def clear_cart(owner: Owner = Depends(get_owner), session: AsyncSession = Depends(get_session)):
    return await CartService.clear(owner, session)


# Coupons

@api_router.post("/coupons/validate", response_model=CouponPreviewResponse)
async def validate_coupon(payload: CouponValidateRequest,
                          owner: Owner = Depends(get_owner),
                          session: AsyncSession = Depends(get_session)):
    """Preview a coupon's discount. Nothing is consumed."""
    if payload.subtotal is not None:
        applied_coupon = await CouponService.validate(payload.code, payload.subtotal, session)
        subtotal = payload.subtotal
    else:
        applied_coupon, subtotal = await CartService.preview_coupon(owner, payload.code, session)
    return CouponPreviewResponse(code=applied_coupon.code, subtotal=subtotal, discount=applied_coupon.discount)


# Checkout

@api_router.post("/checkout", response_model=CheckoutResultDTO, status_code=status.HTTP_201_CREATED)
async def checkout(payload: CheckoutRequestDTO,
                   owner: Owner = Depends(get_owner),
                   gateway: PaymentGatewayClient = Depends(get_payment_gateway),
                   dispatcher: NotificationDispatcher | None = Depends(get_dispatcher)):
    """
    Turn the cart into an order and create its payment intent.

    Returns:
        201: order id, order number, total, preference id and redirect URL
        400/409: cart, stock or coupon problems (nothing was written)
        502: order created but the payment intent failed; retry with
             POST /api/checkout/{order_id}/payment
    """
    require_owner(owner)
    return await CheckoutService.submit(payload, owner, gateway, dispatcher)


@api_router.post("/checkout/{order_id}/payment", response_model=CheckoutResultDTO)
async def retry_checkout_payment(order_id: str,
                                 owner: Owner = Depends(get_owner),
                                 gateway: PaymentGatewayClient = Depends(get_payment_gateway)):
    require_owner(owner)
    return await CheckoutService.retry_payment(order_id, owner, gateway)


# Orders

@api_router.get("/orders", response_model=OrderPageDTO,
                response_model_exclude={"orders": {"__all__": HIDDEN_ORDER_FIELDS}})
async def list_orders(page: int = Query(1, ge=1),
                      limit: int = Query(20, ge=1, le=100),
                      order_status: OrderStatus | None = Query(None, alias="status"),
                      owner: Owner = Depends(get_owner)):
    return await OrderService.list_orders(owner, page, limit, order_status)


@api_router.get("/orders/number/{order_number}", response_model=OrderWithItemsDTO,
                response_model_exclude=HIDDEN_ORDER_FIELDS)
async def get_order_by_number(order_number: str, owner: Owner = Depends(get_owner)):
    require_owner(owner)
    return await OrderService.get_by_number(order_number, owner)


@api_router.get("/orders/{order_id}", response_model=OrderWithItemsDTO,
                response_model_exclude=HIDDEN_ORDER_FIELDS)
async def get_order(order_id: str, owner: Owner = Depends(get_owner)):
    require_owner(owner)
    return await OrderService.get_order(order_id, owner)


@api_router.post("/orders/{order_id}/cancel", response_model=OrderWithItemsDTO,
                 response_model_exclude=HIDDEN_ORDER_FIELDS)
async def cancel_order(order_id: str, owner: Owner = Depends(get_owner)):
    return await OrderService.cancel_order(order_id, owner)
