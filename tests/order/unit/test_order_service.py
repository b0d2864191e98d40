"""
Unit Tests: OrderService

Status transitions (customer cancellation, admin updates), stock
restoration, ownership scoping, lookup by number and pagination.
"""

import pytest

from conftest import create_product, create_cart, get_row, make_checkout_request
from enums.order_status import OrderStatus
from exceptions.auth import AdminPrivilegesRequiredException, MissingOwnerIdentityException
from exceptions.order import (
    OrderNotFoundException,
    OrderOwnershipException,
    OrderNotCancellableException,
    InvalidOrderTransitionException,
    InvalidOrderNumberException,
)
from models.product import Product
from services.checkout import CheckoutService
from services.order import OrderService
from utils.permission_utils import Owner

ADMIN_ID = "admin-1"


async def place_order(owner: Owner, quantity: int = 2, stock: int = 10):
    product_id = await create_product(stock=stock)
    cart_id = await create_cart(owner, [(product_id, quantity)])
    order = await CheckoutService.materialize(make_checkout_request(cart_id), owner)
    return order, product_id


async def advance(order_id: str, *statuses: OrderStatus):
    for status in statuses:
        await OrderService.admin_update_status(order_id, ADMIN_ID, status)


@pytest.mark.asyncio
class TestCancelOrder:

    async def test_pending_cancel_restores_stock(self, database, owner):
        order, product_id = await place_order(owner, quantity=2, stock=10)
        assert (await get_row(Product, product_id)).stock == 8

        cancelled = await OrderService.cancel_order(order.id, owner)

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert cancelled.version == order.version + 1
        assert (await get_row(Product, product_id)).stock == 10

    async def test_paid_cancel_restores_stock(self, database, owner):
        order, product_id = await place_order(owner, quantity=3, stock=5)
        await advance(order.id, OrderStatus.PAID)

        await OrderService.cancel_order(order.id, owner)

        assert (await get_row(Product, product_id)).stock == 5

    async def test_cancel_twice_restores_stock_once(self, database, owner):
        order, product_id = await place_order(owner, quantity=2, stock=10)

        await OrderService.cancel_order(order.id, owner)
        await OrderService.cancel_order(order.id, owner)

        assert (await get_row(Product, product_id)).stock == 10

    async def test_delivered_order_not_cancellable(self, database, owner):
        order, product_id = await place_order(owner)
        await advance(order.id, OrderStatus.PAID, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED)

        with pytest.raises(OrderNotCancellableException):
            await OrderService.cancel_order(order.id, owner)

        assert (await get_row(Product, product_id)).stock == 8

    async def test_foreign_order_looks_missing(self, database, owner):
        order, _ = await place_order(owner)

        with pytest.raises(OrderOwnershipException):
            await OrderService.cancel_order(order.id, Owner(user_id="intruder"))

    async def test_anonymous_caller_rejected(self, database, owner):
        order, _ = await place_order(owner)

        with pytest.raises(MissingOwnerIdentityException):
            await OrderService.cancel_order(order.id, Owner())


@pytest.mark.asyncio
class TestAdminUpdateStatus:

    async def test_full_lifecycle_stamps_timestamps(self, database, owner):
        order, _ = await place_order(owner)

        await advance(order.id, OrderStatus.PAID, OrderStatus.PROCESSING, OrderStatus.SHIPPED)
        delivered = await OrderService.admin_update_status(order.id, ADMIN_ID, OrderStatus.DELIVERED)

        assert delivered.status == OrderStatus.DELIVERED
        assert delivered.paid_at is not None
        assert delivered.shipped_at is not None
        assert delivered.delivered_at is not None
        assert delivered.cancelled_at is None

    async def test_skipping_states_rejected(self, database, owner):
        order, _ = await place_order(owner)

        with pytest.raises(InvalidOrderTransitionException):
            await OrderService.admin_update_status(order.id, ADMIN_ID, OrderStatus.SHIPPED)

    async def test_metadata_only_update(self, database, owner):
        order, _ = await place_order(owner)
        await advance(order.id, OrderStatus.PAID, OrderStatus.PROCESSING, OrderStatus.SHIPPED)

        updated = await OrderService.admin_update_status(
            order.id, ADMIN_ID, OrderStatus.SHIPPED,
            tracking_number="TRK123", tracking_url="https://carrier.test/TRK123", internal_notes="fragile"
        )

        assert updated.status == OrderStatus.SHIPPED
        assert updated.tracking_number == "TRK123"
        assert updated.tracking_url == "https://carrier.test/TRK123"
        assert updated.internal_notes == "fragile"

    async def test_same_status_without_changes_writes_nothing(self, database, owner):
        order, _ = await place_order(owner)

        unchanged = await OrderService.admin_update_status(order.id, ADMIN_ID, OrderStatus.PENDING)

        assert unchanged.version == order.version

    async def test_requires_admin(self, database, owner):
        order, _ = await place_order(owner)

        with pytest.raises(AdminPrivilegesRequiredException):
            await OrderService.admin_update_status(order.id, "user-1", OrderStatus.PAID)

    async def test_unknown_order(self, database):
        with pytest.raises(OrderNotFoundException):
            await OrderService.admin_update_status("missing", ADMIN_ID, OrderStatus.PAID)


@pytest.mark.asyncio
class TestQueries:

    async def test_get_by_number_owner_scoped(self, database, owner):
        order, _ = await place_order(owner)

        found = await OrderService.get_by_number(order.order_number.lower(), owner)

        assert found.id == order.id
        with pytest.raises(OrderOwnershipException):
            await OrderService.get_by_number(order.order_number, Owner(user_id="intruder"))

    async def test_get_by_number_validates_format(self, database, owner):
        with pytest.raises(InvalidOrderNumberException):
            await OrderService.get_by_number("12345", owner)

    async def test_get_by_number_unknown(self, database, owner):
        with pytest.raises(OrderNotFoundException):
            await OrderService.get_by_number("ORD-2026-9999", owner)

    async def test_list_orders_paginates_newest_first(self, database, owner):
        placed = [(await place_order(owner, quantity=1))[0] for _ in range(3)]
        await place_order(Owner(user_id="user-2"), quantity=1)

        first_page = await OrderService.list_orders(owner, page=1, limit=2)
        second_page = await OrderService.list_orders(owner, page=2, limit=2)

        assert first_page.pagination.total == 3
        assert first_page.pagination.total_pages == 2
        assert [o.id for o in first_page.orders] == [placed[2].id, placed[1].id]
        assert [o.id for o in second_page.orders] == [placed[0].id]

    async def test_list_orders_status_filter(self, database, owner):
        first, _ = await place_order(owner, quantity=1)
        await place_order(owner, quantity=1)
        await OrderService.cancel_order(first.id, owner)

        page = await OrderService.list_orders(owner, status=OrderStatus.CANCELLED)

        assert [o.id for o in page.orders] == [first.id]

    async def test_limit_clamped(self, database, owner):
        page = await OrderService.list_orders(owner, page=1, limit=1000)
        assert page.pagination.limit == 100

    async def test_admin_list_filters_by_user(self, database, owner):
        await place_order(owner, quantity=1)
        other, _ = await place_order(Owner(user_id="user-2"), quantity=1)

        page = await OrderService.admin_list_orders(ADMIN_ID, user_id="user-2")

        assert [o.id for o in page.orders] == [other.id]

    async def test_admin_list_requires_admin(self, database, owner):
        with pytest.raises(AdminPrivilegesRequiredException):
            await OrderService.admin_list_orders("user-1")
