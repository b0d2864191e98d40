from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from models.coupon import Coupon, CouponDTO


class CouponRepository:
    @staticmethod
    async def get_by_code(code: str, session: AsyncSession) -> CouponDTO | None:
        # Codes are stored upper-case; upper() on both sides also covers rows inserted by hand
        stmt = select(Coupon).where(func.upper(Coupon.code) == code.strip().upper())
        coupon = await session.execute(stmt)
        coupon = coupon.scalar()
        if coupon is not None:
            return CouponDTO.model_validate(coupon, from_attributes=True)
        return None

    @staticmethod
    async def increment_usage(coupon_id: str, session: AsyncSession) -> bool:
        """
        Consume one use of the coupon.

        Conditional on the usage cap so two concurrent orders can never both
        take the last use. False means the coupon is exhausted.
        """
        stmt = (update(Coupon)
                .where(Coupon.id == coupon_id,
                       or_(Coupon.usage_limit == None, Coupon.used_count < Coupon.usage_limit))
                .values(used_count=Coupon.used_count + 1)
                .execution_options(synchronize_session=False))
        result = await session.execute(stmt)
        return result.rowcount == 1
