import logging
import math
import re
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import get_db_session
from enums.order_actor import OrderActor
from enums.order_status import OrderStatus
from exceptions.order import (
    OrderNotFoundException,
    OrderOwnershipException,
    InvalidOrderNumberException,
    OrderVersionConflictException,
)
from models.base import utcnow
from models.order import OrderWithItemsDTO, OrderPageDTO, PaginationDTO
from repositories.order import OrderRepository
from repositories.product import ProductRepository
from utils.order_state_machine import OrderStateMachine
from utils.permission_utils import Owner, require_admin, require_owner
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)

ORDER_NUMBER_PATTERN = re.compile(r"^ORD-\d{4}-\d{4,}$")


class OrderService:

    @staticmethod
    async def write_transition(order: OrderWithItemsDTO,
                               target: OrderStatus,
                               actor: OrderActor,
                               session: AsyncSession,
                               actor_id: str | None = None,
                               extra_values: dict | None = None,
                               timestamps: dict[OrderStatus, datetime] | None = None) -> bool:
        """
        Apply a status change (and optional extra columns) to an order inside
        the caller's transaction.

        The write is conditional on the version the order was read with.
        Entering CANCELLED from pending/paid puts every item back into stock
        in the same transaction.

        Args:
            order: Order as read before the write (status, version, items)
            target: New status (may equal the current one for metadata-only updates)
            actor: Who triggers the change, for the audit log
            session: Session of the surrounding atomic transaction
            actor_id: User id / payment id of the actor
            extra_values: Additional columns to set (payment fields, tracking, notes)
            timestamps: Explicit timestamps per status, e.g. the gateway's approval time

        Returns:
            True if something was written, False for a no-op

        Raises:
            OrderNotCancellableException / InvalidOrderTransitionException: illegal move
            OrderVersionConflictException: a concurrent writer changed the order
        """
        OrderStateMachine.require_transition(order.id, order.status, target)

        values = dict(extra_values or {})
        status_changes = target != order.status
        if status_changes:
            values["status"] = target
            timestamp_field = OrderStateMachine.TIMESTAMP_FIELDS.get(target)
            if timestamp_field is not None and getattr(order, timestamp_field) is None:
                values[timestamp_field] = (timestamps or {}).get(target) or utcnow()

        if not values:
            return False

        updated = await OrderRepository.update_versioned(order.id, order.version, values, session)
        if not updated:
            raise OrderVersionConflictException(order.id, order.version)

        if status_changes and target == OrderStatus.CANCELLED:
            for item in order.items:
                # Deleted products keep their order lines (product_id SET NULL)
                if item.product_id is None:
                    continue
                await ProductRepository.restore_stock(item.product_id, item.quantity, session)
            logger.info(f"Order {order.order_number}: stock restored for {len(order.items)} items")

        if status_changes:
            OrderStateMachine.validate_and_log_transition(order.id, order.status, target, actor, actor_id)
        else:
            performer = f"{actor.value} {actor_id}" if actor_id else actor.value
            logger.info(f"Order {order.order_number} updated by {performer}: {', '.join(sorted(values))}")
        return True

    @staticmethod
    @TransactionManager.with_retry()
    async def transition(order_id: str,
                         target: OrderStatus,
                         actor: OrderActor,
                         actor_id: str | None = None,
                         extra_values: dict | None = None,
                         owner: Owner | None = None) -> OrderWithItemsDTO:
        """Read, validate and write a status change; a lost race re-reads and re-validates."""
        order = await OrderService.get_order(order_id, owner)
        OrderStateMachine.require_transition(order.id, order.status, target)

        async with TransactionManager.atomic_transaction() as session:
            written = await OrderService.write_transition(
                order, target, actor, session, actor_id=actor_id, extra_values=extra_values
            )
        if not written:
            return order
        return await OrderService.get_order(order_id)

    @staticmethod
    async def cancel_order(order_id: str, owner: Owner) -> OrderWithItemsDTO:
        """
        Customer cancellation of an own order.

        Raises:
            OrderNotFoundException / OrderOwnershipException: unknown or foreign order
            OrderNotCancellableException: order is past paid
        """
        require_owner(owner)
        return await OrderService.transition(
            order_id, OrderStatus.CANCELLED, OrderActor.CUSTOMER,
            actor_id=owner.user_id or "guest", owner=owner
        )

    @staticmethod
    async def admin_update_status(order_id: str,
                                  admin_user_id: str | None,
                                  status: OrderStatus,
                                  tracking_number: str | None = None,
                                  tracking_url: str | None = None,
                                  internal_notes: str | None = None) -> OrderWithItemsDTO:
        """
        Admin status change. Keeping the current status with new tracking
        data or notes is a metadata-only update.
        """
        require_admin(admin_user_id, "update order status")
        extra_values = {}
        if tracking_number is not None:
            extra_values["tracking_number"] = tracking_number
        if tracking_url is not None:
            extra_values["tracking_url"] = tracking_url
        if internal_notes is not None:
            extra_values["internal_notes"] = internal_notes
        return await OrderService.transition(
            order_id, status, OrderActor.ADMIN, actor_id=admin_user_id, extra_values=extra_values
        )

    @staticmethod
    def _check_owner(order: OrderWithItemsDTO, owner: Owner | None) -> None:
        if owner is None:
            return
        require_owner(owner)
        # Foreign orders look exactly like missing ones
        if not owner.owns(order.user_id, order.session_token):
            raise OrderOwnershipException(order.id)

    @staticmethod
    async def get_order(order_id: str, owner: Owner | None = None) -> OrderWithItemsDTO:
        async with get_db_session() as session:
            order = await OrderRepository.get_with_items(order_id, session)
        if order is None:
            raise OrderNotFoundException(order_id)
        OrderService._check_owner(order, owner)
        return order

    @staticmethod
    async def get_by_number(order_number: str, owner: Owner | None = None) -> OrderWithItemsDTO:
        order_number = order_number.strip().upper()
        if not ORDER_NUMBER_PATTERN.match(order_number):
            raise InvalidOrderNumberException(order_number)
        async with get_db_session() as session:
            order = await OrderRepository.get_by_number(order_number, session)
        if order is None:
            raise OrderNotFoundException(order_number)
        OrderService._check_owner(order, owner)
        return order

    @staticmethod
    def _page_bounds(page: int, limit: int | None) -> tuple[int, int]:
        page = max(1, page)
        limit = limit or config.ORDER_PAGE_SIZE_DEFAULT
        return page, min(max(1, limit), config.ORDER_PAGE_SIZE_MAX)

    @staticmethod
    def _to_page(orders: list[OrderWithItemsDTO], total: int, page: int, limit: int) -> OrderPageDTO:
        return OrderPageDTO(
            orders=orders,
            pagination=PaginationDTO(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit)),
        )

    @staticmethod
    async def list_orders(owner: Owner,
                          page: int = 1,
                          limit: int | None = None,
                          status: OrderStatus | None = None) -> OrderPageDTO:
        """Orders of the current owner, newest first."""
        require_owner(owner)
        page, limit = OrderService._page_bounds(page, limit)
        async with get_db_session() as session:
            orders, total = await OrderRepository.get_page(page, limit, session, owner=owner, status=status)
        return OrderService._to_page(orders, total, page, limit)

    @staticmethod
    async def admin_list_orders(admin_user_id: str | None,
                                page: int = 1,
                                limit: int | None = None,
                                status: OrderStatus | None = None,
                                user_id: str | None = None,
                                start_date: datetime | None = None,
                                end_date: datetime | None = None) -> OrderPageDTO:
        """
        All orders with admin filters.

        Raises:
            AdminPrivilegesRequiredException: caller is not a configured admin
        """
        require_admin(admin_user_id, "list orders")
        page, limit = OrderService._page_bounds(page, limit)
        async with get_db_session() as session:
            orders, total = await OrderRepository.get_page(
                page, limit, session,
                status=status, user_id=user_id, start_date=start_date, end_date=end_date
            )
        return OrderService._to_page(orders, total, page, limit)

    @staticmethod
    async def admin_get_order(admin_user_id: str | None, order_id: str) -> OrderWithItemsDTO:
        require_admin(admin_user_id, "view order")
        return await OrderService.get_order(order_id)
