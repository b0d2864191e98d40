from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint, Enum as SQLEnum

from enums.discount_type import DiscountType
from models.base import Base, new_uuid


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(String(36), primary_key=True, default=new_uuid)
    code = Column(String(50), nullable=False, unique=True)  # Stored upper-case
    description = Column(String(255), nullable=True)
    discount_type = Column(SQLEnum(DiscountType), nullable=False)
    discount_value = Column(Integer, nullable=False)  # Percent for PERCENTAGE, minor units for FIXED
    minimum_order = Column(Integer, nullable=True)  # Minor units
    max_discount = Column(Integer, nullable=True)  # Minor units, PERCENTAGE only
    usage_limit = Column(Integer, nullable=True)  # None = unlimited
    used_count = Column(Integer, nullable=False, default=0)
    starts_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint('discount_value >= 0', name='check_coupon_discount_value_non_negative'),
        CheckConstraint('used_count >= 0', name='check_coupon_used_count_non_negative'),
    )


class CouponDTO(BaseModel):
    id: str | None = None
    code: str | None = None
    description: str | None = None
    discount_type: DiscountType | None = None
    discount_value: int | None = None
    minimum_order: int | None = None
    max_discount: int | None = None
    usage_limit: int | None = None
    used_count: int | None = None
    starts_at: datetime | None = None
    expires_at: datetime | None = None
    is_active: bool | None = None


class AppliedCouponDTO(BaseModel):
    """Result of a successful coupon validation."""
    coupon_id: str
    code: str
    discount: int
