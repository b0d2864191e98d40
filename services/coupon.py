import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from enums.discount_type import DiscountType
from exceptions.coupon import (
    CouponNotFoundException,
    CouponNotYetActiveException,
    CouponExpiredException,
    CouponExhaustedException,
    CouponMinimumNotMetException,
)
from models.base import utcnow
from models.coupon import CouponDTO, AppliedCouponDTO
from repositories.coupon import CouponRepository

logger = logging.getLogger(__name__)


class CouponService:

    @staticmethod
    def calculate_discount(coupon: CouponDTO, subtotal: int) -> int:
        """
        Discount in minor units for a subtotal.

        Percentage coupons round down and respect max_discount; fixed coupons
        are returned as is (the order total is clamped at zero later).
        """
        if coupon.discount_type == DiscountType.PERCENTAGE:
            discount = subtotal * coupon.discount_value // 100
            if coupon.max_discount is not None:
                discount = min(discount, coupon.max_discount)
            return discount
        return coupon.discount_value

    @staticmethod
    def check_coupon(coupon: CouponDTO | None, code: str, subtotal: int, now: datetime) -> CouponDTO:
        """
        Run the validity checks in order; the first failing check raises.

        Raises:
            CouponNotFoundException: unknown or inactive code
            CouponNotYetActiveException: before starts_at
            CouponExpiredException: after expires_at
            CouponExhaustedException: usage limit reached
            CouponMinimumNotMetException: subtotal below minimum_order
        """
        if coupon is None or not coupon.is_active:
            raise CouponNotFoundException(code)
        if coupon.starts_at is not None and now < coupon.starts_at:
            raise CouponNotYetActiveException(coupon.code, coupon.starts_at)
        if coupon.expires_at is not None and now > coupon.expires_at:
            raise CouponExpiredException(coupon.code, coupon.expires_at)
        if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
            raise CouponExhaustedException(coupon.code, coupon.usage_limit)
        if coupon.minimum_order is not None and subtotal < coupon.minimum_order:
            raise CouponMinimumNotMetException(coupon.code, coupon.minimum_order, subtotal)
        return coupon

    @staticmethod
    async def validate(code: str, subtotal: int, session: AsyncSession,
                       now: datetime | None = None) -> AppliedCouponDTO:
        """
        Validate a code against a subtotal and compute its discount.

        Read-only: usage is only consumed by the order-creation transaction
        (CouponRepository.increment_usage).
        """
        now = now or utcnow()
        coupon = await CouponRepository.get_by_code(code, session)
        coupon = CouponService.check_coupon(coupon, code, subtotal, now)
        discount = CouponService.calculate_discount(coupon, subtotal)
        logger.debug(f"Coupon {coupon.code} valid for subtotal {subtotal}: discount {discount}")
        return AppliedCouponDTO(coupon_id=coupon.id, code=coupon.code, discount=discount)
