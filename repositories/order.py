from datetime import datetime
import logging

from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from enums.order_status import OrderStatus
from models.base import utcnow
from models.order import Order, OrderDTO, OrderWithItemsDTO
from utils.permission_utils import Owner

logger = logging.getLogger(__name__)


class OrderRepository:
    @staticmethod
    async def create(order_dto: OrderDTO, session: AsyncSession) -> str:
        order = Order(**order_dto.model_dump(exclude_none=True))
        session.add(order)
        await session.flush()
        return order.id

    @staticmethod
    async def get_by_id(order_id: str, session: AsyncSession) -> OrderDTO | None:
        stmt = select(Order).where(Order.id == order_id)
        order = await session.execute(stmt)
        order = order.scalar()
        if order is not None:
            return OrderDTO.model_validate(order, from_attributes=True)
        return None

    @staticmethod
    async def get_with_items(order_id: str, session: AsyncSession) -> OrderWithItemsDTO | None:
        stmt = select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
        order = await session.execute(stmt)
        order = order.scalar()
        if order is not None:
            return OrderWithItemsDTO.model_validate(order, from_attributes=True)
        return None

    @staticmethod
    async def get_by_number(order_number: str, session: AsyncSession) -> OrderWithItemsDTO | None:
        stmt = select(Order).options(selectinload(Order.items)).where(Order.order_number == order_number)
        order = await session.execute(stmt)
        order = order.scalar()
        if order is not None:
            return OrderWithItemsDTO.model_validate(order, from_attributes=True)
        return None

    @staticmethod
    async def update_versioned(order_id: str, expected_version: int, values: dict, session: AsyncSession) -> bool:
        """
        Optimistic write: applies values only if nobody changed the order since it was read.

        Bumps version and updated_at. False means a concurrent writer won
        and the caller must re-read.
        """
        stmt = (update(Order)
                .where(Order.id == order_id, Order.version == expected_version)
                .values(**values, version=Order.version + 1, updated_at=utcnow())
                .execution_options(synchronize_session=False))
        result = await session.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    async def get_page(page: int,
                       limit: int,
                       session: AsyncSession,
                       owner: Owner | None = None,
                       status: OrderStatus | None = None,
                       user_id: str | None = None,
                       start_date: datetime | None = None,
                       end_date: datetime | None = None) -> tuple[list[OrderWithItemsDTO], int]:
        """
        Paginated order listing, newest first.

        Args:
            page: 1-based page number
            limit: Page size
            session: Database session
            owner: Restrict to orders of this owner (user id or guest session token)
            status: Only orders in this status
            user_id: Only orders of this user (admin filter)
            start_date: created_at lower bound (inclusive)
            end_date: created_at upper bound (inclusive)

        Returns:
            Tuple of (orders with items, total number of matching orders)
        """
        conditions = []
        if owner is not None:
            owner_conditions = []
            if owner.user_id:
                owner_conditions.append(Order.user_id == owner.user_id)
            if owner.session_token:
                owner_conditions.append(Order.session_token == owner.session_token)
            conditions.append(or_(*owner_conditions))
        if status is not None:
            conditions.append(Order.status == status)
        if user_id is not None:
            conditions.append(Order.user_id == user_id)
        if start_date is not None:
            conditions.append(Order.created_at >= start_date)
        if end_date is not None:
            conditions.append(Order.created_at <= end_date)

        count_stmt = select(func.count(Order.id)).where(*conditions)
        total = await session.execute(count_stmt)
        total = total.scalar_one()

        stmt = (select(Order)
                .options(selectinload(Order.items))
                .where(*conditions)
                .order_by(Order.created_at.desc(), Order.order_number.desc())
                .offset((page - 1) * limit)
                .limit(limit))
        orders = await session.execute(stmt)
        return [OrderWithItemsDTO.model_validate(order, from_attributes=True) for order in orders.scalars().all()], total
