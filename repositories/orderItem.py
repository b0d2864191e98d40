from sqlalchemy.ext.asyncio import AsyncSession

from models.orderItem import OrderItem, OrderItemDTO


class OrderItemRepository:
    @staticmethod
    async def create_many(order_items: list[OrderItemDTO], session: AsyncSession) -> None:
        for order_item_dto in order_items:
            order_item = OrderItem(**order_item_dto.model_dump(exclude_none=True))
            session.add(order_item)
        await session.flush()
