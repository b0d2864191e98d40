from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.order_number_sequence import OrderNumberSequence


class OrderNumberRepository:
    @staticmethod
    async def next_value(year: int, session: AsyncSession) -> int:
        """
        Allocate the next sequence value for a year inside the caller's transaction.

        The increment is a single UPDATE, so the row stays locked until commit.
        The first order of a year inserts the row; if a concurrent transaction
        inserted it first, flush raises IntegrityError and the caller retries.
        """
        stmt = (update(OrderNumberSequence)
                .where(OrderNumberSequence.year == year)
                .values(last_value=OrderNumberSequence.last_value + 1)
                .execution_options(synchronize_session=False))
        result = await session.execute(stmt)
        if result.rowcount == 0:
            session.add(OrderNumberSequence(year=year, last_value=1))
            await session.flush()
            return 1

        stmt = select(OrderNumberSequence.last_value).where(OrderNumberSequence.year == year)
        last_value = await session.execute(stmt)
        return last_value.scalar_one()
