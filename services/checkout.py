"""
Checkout: turns a cart into a durable order and hands the customer to the
payment gateway.

Flow:
1. Quote (read only): load cart + live products, check stock, compute
   subtotal, weight, shipping, coupon discount and total
2. Materialize (one transaction): clear the checked-out cart items, allocate
   the order number, take stock, consume the coupon, insert order + items
3. After commit: enqueue the confirmation email
4. Create the payment intent; a gateway failure leaves the order pending and
   payable later through retry_payment
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from db import get_db_session
from enums.order_status import OrderStatus
from enums.payment_status import PaymentStatus
from enums.shipping_zone import ShippingZone
from exceptions.cart import CartNotFoundException, EmptyCartException, CartOwnershipException, CartChangedException
from exceptions.coupon import CouponExhaustedException
from exceptions.order import (
    InsufficientStockException,
    OrderNotFoundException,
    OrderNotPayableException,
    OrderVersionConflictException,
)
from exceptions.payment import PaymentGatewayException, PaymentIntentException
from models.base import new_uuid, utcnow
from models.checkout import CheckoutRequestDTO, OrderQuoteDTO, CheckoutResultDTO
from models.order import OrderDTO, OrderWithItemsDTO
from models.orderItem import OrderItemDTO
from repositories.cart import CartRepository
from repositories.cartItem import CartItemRepository
from repositories.coupon import CouponRepository
from repositories.order import OrderRepository
from repositories.orderItem import OrderItemRepository
from repositories.order_number import OrderNumberRepository
from repositories.product import ProductRepository
from services.cart import CartService
from services.coupon import CouponService
from services.notification import NotificationDispatcher
from services.order import OrderService
from services.payment_gateway import PaymentGatewayClient
from services.shipping import ShippingService
from utils.permission_utils import Owner
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)


def format_order_number(year: int, sequence_value: int) -> str:
    return f"ORD-{year}-{sequence_value:04d}"


class CheckoutService:

    @staticmethod
    async def quote(request: CheckoutRequestDTO, owner: Owner, session: AsyncSession) -> OrderQuoteDTO:
        """
        Validate the cart and compute all amounts. Writes nothing.

        Raises:
            CartNotFoundException, CartOwnershipException, EmptyCartException,
            InsufficientStockException, coupon exceptions
        """
        cart = await CartRepository.get_by_id(request.cart_id, session)
        if cart is None:
            raise CartNotFoundException(request.cart_id)
        if not owner.is_anonymous and not owner.owns(cart.user_id, cart.session_token):
            raise CartOwnershipException(cart.id)

        lines = await CartItemRepository.get_lines(cart.id, session)
        if not lines:
            raise EmptyCartException(cart.id)

        for line in lines:
            product = line.product
            if not product.is_active:
                raise InsufficientStockException(product.id, product.name, line.item.quantity, 0)
            if product.track_inventory and not product.allow_backorder and product.stock < line.item.quantity:
                raise InsufficientStockException(product.id, product.name, line.item.quantity, product.stock)

        subtotal = CartService.calculate_subtotal(lines)
        weight = ShippingService.calculate_weight(lines)
        shipping_cost = ShippingService.calculate_cost(request.shipping_zone, weight)
        shipping_zone = ShippingService.resolve_zone(request.shipping_zone) or ShippingZone.FAR

        applied_coupon = None
        discount = 0
        if request.coupon_code:
            applied_coupon = await CouponService.validate(request.coupon_code, subtotal, session)
            # Capped at the order amount, the total never goes below zero
            discount = min(applied_coupon.discount, subtotal + shipping_cost)

        return OrderQuoteDTO(
            cart_id=cart.id,
            lines=lines,
            shipping_zone=shipping_zone,
            weight=weight,
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            discount=discount,
            total=subtotal + shipping_cost - discount,
            applied_coupon=applied_coupon,
        )

    @staticmethod
    def _build_order(order_id: str, order_number: str, request: CheckoutRequestDTO, quote: OrderQuoteDTO,
                     owner: Owner) -> tuple[OrderDTO, list[OrderItemDTO]]:
        address = request.shipping_address
        order = OrderDTO(
            id=order_id,
            order_number=order_number,
            user_id=owner.user_id,
            session_token=owner.session_token,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            subtotal=quote.subtotal,
            shipping_cost=quote.shipping_cost,
            discount=quote.discount,
            total=quote.total,
            coupon_code=quote.applied_coupon.code if quote.applied_coupon else None,
            shipping_zone=quote.shipping_zone,
            shipping_full_name=address.full_name,
            shipping_phone=address.phone,
            shipping_email=address.email,
            shipping_street=address.address1,
            shipping_number=address.address2 or "",
            shipping_city=address.city,
            shipping_province=address.province,
            shipping_postal_code=address.postal_code,
            shipping_country=address.country.upper(),
            customer_notes=request.notes,
        )
        order_items = [
            OrderItemDTO(
                order_id=order_id,
                product_id=line.product.id,
                quantity=line.item.quantity,
                unit_price=line.product.price,
                total=line.product.price * line.item.quantity,
                product_name=line.product.name,
                product_sku=line.product.sku,
            )
            for line in quote.lines
        ]
        return order, order_items

    @staticmethod
    async def _take_stock(quote: OrderQuoteDTO, session: AsyncSession) -> None:
        # Fixed product order keeps concurrent checkouts from locking rows in opposite orders
        for line in sorted(quote.lines, key=lambda cart_line: cart_line.product.id):
            product = line.product
            if not product.track_inventory:
                continue
            taken = await ProductRepository.decrement_stock(
                product.id, line.item.quantity, product.allow_backorder, session
            )
            if not taken:
                current = await ProductRepository.get_by_id(product.id, session)
                available = current.stock if current is not None else 0
                raise InsufficientStockException(
                    product.id, product.name, line.item.quantity, available, retryable=True
                )

    @staticmethod
    @TransactionManager.with_retry()
    async def materialize(request: CheckoutRequestDTO,
                          owner: Owner,
                          dispatcher: NotificationDispatcher | None = None) -> OrderWithItemsDTO:
        """
        Convert the cart into an order, atomically.

        Nothing is written unless every step succeeds: order, items, stock,
        coupon usage and cart clearing commit together or not at all.

        Raises:
            CartNotFoundException, CartOwnershipException, EmptyCartException:
                cart problems, raised before any write
            InsufficientStockException: stock check failed (retryable=True
                when a concurrent order took the stock after the check)
            Coupon exceptions: invalid code, or the last use was consumed
                concurrently (CouponExhaustedException)
        """
        async with get_db_session() as session:
            quote = await CheckoutService.quote(request, owner, session)

        order_id = new_uuid()
        async with TransactionManager.atomic_transaction() as session:
            # First write: also detects carts modified or checked out concurrently
            cart_items = [line.item for line in quote.lines]
            cleared = await CartItemRepository.delete_checked_out(cart_items, session)
            if cleared != len(cart_items):
                raise CartChangedException(quote.cart_id)

            year = utcnow().year
            sequence_value = await OrderNumberRepository.next_value(year, session)
            order_number = format_order_number(year, sequence_value)

            await CheckoutService._take_stock(quote, session)

            if quote.applied_coupon is not None:
                if not await CouponRepository.increment_usage(quote.applied_coupon.coupon_id, session):
                    raise CouponExhaustedException(quote.applied_coupon.code, None)

            order_dto, order_items = CheckoutService._build_order(order_id, order_number, request, quote, owner)
            await OrderRepository.create(order_dto, session)
            await OrderItemRepository.create_many(order_items, session)
            await CartRepository.touch(quote.cart_id, session)

        async with get_db_session() as session:
            order = await OrderRepository.get_with_items(order_id, session)

        logger.info(f"Order {order.order_number} ({order.id}) created: subtotal={order.subtotal} "
                    f"shipping={order.shipping_cost} discount={order.discount} total={order.total}")

        if dispatcher is not None:
            try:
                dispatcher.enqueue_order_confirmation(order)
            except Exception as e:
                logger.error(f"Could not enqueue confirmation for order {order.order_number}: {e}")
        return order

    @staticmethod
    async def create_payment_intent(order: OrderWithItemsDTO, gateway: PaymentGatewayClient) -> CheckoutResultDTO:
        try:
            intent = await gateway.create_payment_intent(order)
        except PaymentGatewayException as e:
            logger.error(f"Payment intent for order {order.order_number} failed, order stays pending: {e}")
            raise PaymentIntentException(order.id, e.reason, e.status_code) from e

        await CheckoutService._store_preference(order.id, intent.preference_id)
        return CheckoutResultDTO(
            order_id=order.id,
            order_number=order.order_number,
            total=order.total,
            preference_id=intent.preference_id,
            redirect_url=intent.redirect_url,
        )

    @staticmethod
    @TransactionManager.with_retry()
    async def _store_preference(order_id: str, preference_id: str) -> None:
        async with get_db_session() as session:
            order = await OrderRepository.get_by_id(order_id, session)
        if order is None:
            raise OrderNotFoundException(order_id)
        async with TransactionManager.atomic_transaction() as session:
            updated = await OrderRepository.update_versioned(
                order.id, order.version, {"payment_preference_id": preference_id}, session
            )
            if not updated:
                raise OrderVersionConflictException(order.id, order.version)

    @staticmethod
    async def submit(request: CheckoutRequestDTO,
                     owner: Owner,
                     gateway: PaymentGatewayClient,
                     dispatcher: NotificationDispatcher | None = None) -> CheckoutResultDTO:
        """
        Checkout endpoint flow: materialize the order, then create its payment intent.

        Raises:
            PaymentIntentException: the order exists (pending) but the gateway
                call failed; details carry the order id for a later retry
        """
        order = await CheckoutService.materialize(request, owner, dispatcher)
        return await CheckoutService.create_payment_intent(order, gateway)

    @staticmethod
    async def retry_payment(order_id: str, owner: Owner, gateway: PaymentGatewayClient) -> CheckoutResultDTO:
        """
        Create a new payment intent for an order whose first attempt failed.

        Raises:
            OrderNotFoundException / OrderOwnershipException: unknown or foreign order
            OrderNotPayableException: order is no longer pending
        """
        order = await OrderService.get_order(order_id, owner)
        if order.status != OrderStatus.PENDING:
            raise OrderNotPayableException(order.id, order.status.value)
        return await CheckoutService.create_payment_intent(order, gateway)
