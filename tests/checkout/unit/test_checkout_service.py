"""
Unit Tests: CheckoutService

Tests for services/checkout.py covering:
- quote() amounts (subtotal, shipping, coupon discount, total)
- materialize() atomicity: order, items, stock, coupon usage and cart clearing
- submit() / retry_payment() payment intent handling
"""

import pytest
from sqlalchemy import select, func

import db
from conftest import create_product, create_cart, create_coupon, get_row, make_checkout_request
from enums.discount_type import DiscountType
from enums.order_status import OrderStatus
from enums.payment_status import PaymentStatus
from enums.shipping_zone import ShippingZone
from exceptions.cart import CartNotFoundException, CartOwnershipException, EmptyCartException
from exceptions.coupon import CouponExhaustedException, CouponMinimumNotMetException
from exceptions.order import InsufficientStockException, OrderNotPayableException
from exceptions.payment import PaymentIntentException, PaymentGatewayUnavailableException
from models.cartItem import CartItem
from models.coupon import Coupon
from models.order import Order
from models.product import Product
from services.checkout import CheckoutService, format_order_number
from services.notification import NotificationDispatcher
from services.order import OrderService
from utils.permission_utils import Owner


async def count_rows(model) -> int:
    async with db.get_db_session() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


class TestFormatOrderNumber:

    def test_pads_to_four_digits(self):
        assert format_order_number(2026, 7) == "ORD-2026-0007"

    def test_grows_beyond_four_digits(self):
        assert format_order_number(2026, 12345) == "ORD-2026-12345"


@pytest.mark.asyncio
class TestQuote:

    async def test_near_zone_without_coupon(self, database, owner):
        product_id = await create_product(price=5000, weight=300)
        cart_id = await create_cart(owner, [(product_id, 2)])

        async with db.get_db_session() as session:
            quote = await CheckoutService.quote(make_checkout_request(cart_id), owner, session)

        assert quote.subtotal == 10000
        assert quote.shipping_cost == 50000
        assert quote.discount == 0
        assert quote.total == 60000
        assert quote.shipping_zone == ShippingZone.NEAR

    async def test_percentage_coupon_applied(self, database, owner):
        product_id = await create_product(price=5000, weight=300)
        cart_id = await create_cart(owner, [(product_id, 2)])
        await create_coupon(code="SAVE10", discount_value=10, max_discount=5000, minimum_order=5000)

        async with db.get_db_session() as session:
            quote = await CheckoutService.quote(make_checkout_request(cart_id, coupon_code="save10"), owner, session)

        assert quote.discount == 1000
        assert quote.total == 59000
        assert quote.applied_coupon.code == "SAVE10"

    async def test_quote_uses_live_price_not_snapshot(self, database, owner):
        product_id = await create_product(price=7000)
        cart_id = await create_cart(owner, [(product_id, 1)], price_at_add=5000)

        async with db.get_db_session() as session:
            quote = await CheckoutService.quote(make_checkout_request(cart_id), owner, session)

        assert quote.subtotal == 7000

    async def test_unknown_zone_charged_as_far(self, database, owner):
        product_id = await create_product(price=5000, weight=300)
        cart_id = await create_cart(owner, [(product_id, 1)])

        async with db.get_db_session() as session:
            quote = await CheckoutService.quote(make_checkout_request(cart_id, shipping_zone="moon"), owner, session)

        assert quote.shipping_cost == 100000
        assert quote.shipping_zone == ShippingZone.FAR

    async def test_missing_cart(self, database, owner):
        async with db.get_db_session() as session:
            with pytest.raises(CartNotFoundException):
                await CheckoutService.quote(make_checkout_request("no-such-cart"), owner, session)

    async def test_foreign_cart(self, database, owner):
        product_id = await create_product()
        cart_id = await create_cart(owner, [(product_id, 1)])

        async with db.get_db_session() as session:
            with pytest.raises(CartOwnershipException):
                await CheckoutService.quote(make_checkout_request(cart_id), Owner(user_id="someone-else"), session)

    async def test_empty_cart(self, database, owner):
        cart_id = await create_cart(owner, [])

        async with db.get_db_session() as session:
            with pytest.raises(EmptyCartException):
                await CheckoutService.quote(make_checkout_request(cart_id), owner, session)

    async def test_inactive_product_counts_as_unavailable(self, database, owner):
        product_id = await create_product(is_active=False)
        cart_id = await create_cart(owner, [(product_id, 1)])

        async with db.get_db_session() as session:
            with pytest.raises(InsufficientStockException) as exc_info:
                await CheckoutService.quote(make_checkout_request(cart_id), owner, session)
        assert exc_info.value.available == 0


@pytest.mark.asyncio
class TestMaterialize:

    async def test_creates_order_and_consumes_cart(self, database, owner):
        product_id = await create_product(price=5000, stock=10)
        cart_id = await create_cart(owner, [(product_id, 2)])

        order = await CheckoutService.materialize(make_checkout_request(cart_id), owner)

        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        assert order.order_number.startswith("ORD-")
        assert (order.subtotal, order.shipping_cost, order.discount, order.total) == (10000, 50000, 0, 60000)
        assert order.user_id == "user-1"
        assert order.shipping_full_name == "Ana Perez"
        assert order.shipping_country == "AR"
        assert len(order.items) == 1
        assert order.items[0].product_name == "Mate cup"
        assert order.items[0].unit_price == 5000
        assert order.items[0].total == 10000

        product = await get_row(Product, product_id)
        assert product.stock == 8
        assert await count_rows(CartItem) == 0

    async def test_oversized_fixed_coupon_capped_at_order_amount(self, database, owner):
        product_id = await create_product(price=5000)
        cart_id = await create_cart(owner, [(product_id, 2)])
        await create_coupon(code="BIGFIXED", discount_type=DiscountType.FIXED, discount_value=100000,
                            minimum_order=0, max_discount=None)

        order = await CheckoutService.materialize(make_checkout_request(cart_id, coupon_code="BIGFIXED"), owner)

        assert (order.subtotal, order.shipping_cost, order.discount, order.total) == (10000, 50000, 60000, 0)
        assert order.total == order.subtotal + order.shipping_cost - order.discount

    async def test_order_numbers_are_sequential(self, database, owner):
        product_id = await create_product(stock=10)
        first_cart = await create_cart(owner, [(product_id, 1)])
        first = await CheckoutService.materialize(make_checkout_request(first_cart), owner)
        second_cart = await create_cart(Owner(user_id="user-2"), [(product_id, 1)])
        second = await CheckoutService.materialize(make_checkout_request(second_cart), Owner(user_id="user-2"))

        first_seq = int(first.order_number.rsplit("-", 1)[1])
        second_seq = int(second.order_number.rsplit("-", 1)[1])
        assert second_seq == first_seq + 1

    async def test_insufficient_stock_changes_nothing(self, database, owner):
        product_id = await create_product(stock=1, allow_backorder=False)
        cart_id = await create_cart(owner, [(product_id, 2)])

        with pytest.raises(InsufficientStockException) as exc_info:
            await CheckoutService.materialize(make_checkout_request(cart_id), owner)

        assert exc_info.value.requested == 2
        assert exc_info.value.available == 1
        product = await get_row(Product, product_id)
        assert product.stock == 1
        assert await count_rows(Order) == 0
        assert await count_rows(CartItem) == 1

    async def test_backorder_floors_stock_at_zero(self, database, owner):
        product_id = await create_product(stock=1, allow_backorder=True)
        cart_id = await create_cart(owner, [(product_id, 3)])

        order = await CheckoutService.materialize(make_checkout_request(cart_id), owner)

        assert order.items[0].quantity == 3
        product = await get_row(Product, product_id)
        assert product.stock == 0

    async def test_untracked_product_keeps_stock(self, database, owner):
        product_id = await create_product(stock=0, track_inventory=False)
        cart_id = await create_cart(owner, [(product_id, 4)])

        await CheckoutService.materialize(make_checkout_request(cart_id), owner)

        product = await get_row(Product, product_id)
        assert product.stock == 0

    async def test_coupon_usage_incremented_once(self, database, owner):
        product_id = await create_product(price=5000)
        cart_id = await create_cart(owner, [(product_id, 2)])
        coupon_id = await create_coupon(code="SAVE10", usage_limit=5, used_count=2)

        order = await CheckoutService.materialize(make_checkout_request(cart_id, coupon_code="SAVE10"), owner)

        assert order.discount == 1000
        assert order.total == 59000
        assert order.coupon_code == "SAVE10"
        coupon = await get_row(Coupon, coupon_id)
        assert coupon.used_count == 3

    async def test_coupon_minimum_not_met_writes_nothing(self, database, owner):
        product_id = await create_product(price=1000)
        cart_id = await create_cart(owner, [(product_id, 1)])
        coupon_id = await create_coupon(code="SAVE10", minimum_order=5000)

        with pytest.raises(CouponMinimumNotMetException):
            await CheckoutService.materialize(make_checkout_request(cart_id, coupon_code="SAVE10"), owner)

        coupon = await get_row(Coupon, coupon_id)
        assert coupon.used_count == 0
        assert await count_rows(Order) == 0

    async def test_exhausted_coupon_rejected(self, database, owner):
        product_id = await create_product(price=5000)
        cart_id = await create_cart(owner, [(product_id, 2)])
        await create_coupon(code="ONCE", usage_limit=1, used_count=1)

        with pytest.raises(CouponExhaustedException):
            await CheckoutService.materialize(make_checkout_request(cart_id, coupon_code="ONCE"), owner)

    async def test_guest_order_records_session_token(self, database, guest):
        product_id = await create_product()
        cart_id = await create_cart(guest, [(product_id, 1)])

        order = await CheckoutService.materialize(make_checkout_request(cart_id), guest)

        assert order.user_id is None
        assert order.session_token == "guest-session-token"

    async def test_confirmation_enqueued(self, database, owner, email_sender):
        product_id = await create_product()
        cart_id = await create_cart(owner, [(product_id, 1)])
        dispatcher = NotificationDispatcher(sender=email_sender)

        order = await CheckoutService.materialize(make_checkout_request(cart_id), owner, dispatcher)

        assert dispatcher.queue.qsize() == 1
        queued_order, recipient = dispatcher.queue.get_nowait()
        assert queued_order.id == order.id
        assert recipient == "ana@example.com"


@pytest.mark.asyncio
class TestSubmit:

    async def test_stores_preference_and_returns_redirect(self, database, owner, gateway):
        product_id = await create_product()
        cart_id = await create_cart(owner, [(product_id, 2)])

        result = await CheckoutService.submit(make_checkout_request(cart_id), owner, gateway)

        assert result.total == 60000
        assert result.preference_id == "pref-1"
        assert result.redirect_url == "https://gateway.test/checkout/pref-1"
        order = await OrderService.get_order(result.order_id)
        assert order.payment_preference_id == "pref-1"

        method, path, payload = gateway.requests[0]
        assert (method, path) == ("POST", "/checkout/preferences")
        assert payload["external_reference"] == result.order_id

    async def test_gateway_failure_keeps_pending_order(self, database, owner, gateway):
        product_id = await create_product()
        cart_id = await create_cart(owner, [(product_id, 1)])
        gateway.fail_with = PaymentGatewayUnavailableException("create_payment_intent", "timeout")

        with pytest.raises(PaymentIntentException) as exc_info:
            await CheckoutService.submit(make_checkout_request(cart_id), owner, gateway)

        order = await OrderService.get_order(exc_info.value.order_id)
        assert order.status == OrderStatus.PENDING
        assert order.payment_preference_id is None

    async def test_retry_payment_after_failure(self, database, owner, gateway):
        product_id = await create_product()
        cart_id = await create_cart(owner, [(product_id, 1)])
        gateway.fail_with = PaymentGatewayUnavailableException("create_payment_intent", "timeout")
        with pytest.raises(PaymentIntentException) as exc_info:
            await CheckoutService.submit(make_checkout_request(cart_id), owner, gateway)

        gateway.fail_with = None
        result = await CheckoutService.retry_payment(exc_info.value.order_id, owner, gateway)

        assert result.order_id == exc_info.value.order_id
        assert result.preference_id == "pref-1"

    async def test_retry_payment_requires_pending(self, database, owner, gateway):
        product_id = await create_product()
        cart_id = await create_cart(owner, [(product_id, 1)])
        result = await CheckoutService.submit(make_checkout_request(cart_id), owner, gateway)
        await OrderService.cancel_order(result.order_id, owner)

        with pytest.raises(OrderNotPayableException):
            await CheckoutService.retry_payment(result.order_id, owner, gateway)
