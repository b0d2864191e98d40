from datetime import datetime

from pydantic import BaseModel, Field
from sqlalchemy import Column, Integer, DateTime, String, Text, CheckConstraint, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship

from enums.order_status import OrderStatus
from enums.payment_status import PaymentStatus
from enums.shipping_zone import ShippingZone
from models.base import Base, new_uuid, utcnow
from models.orderItem import OrderItemDTO


class Order(Base):
    __tablename__ = 'orders'

    # The id doubles as the correlation id sent to the payment gateway (external_reference)
    id = Column(String(36), primary_key=True, default=new_uuid)
    order_number = Column(String(20), nullable=False, unique=True)  # ORD-2026-0001
    user_id = Column(String(64), nullable=True)  # None for guest checkout
    session_token = Column(String(128), nullable=True)  # Guest owner key
    status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    payment_status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_method = Column(String(50), nullable=False, default="mercadopago")
    payment_id = Column(String(64), nullable=True)  # Last gateway payment applied by the reconciler
    payment_preference_id = Column(String(128), nullable=True)  # Gateway payment intent reference

    # Money snapshot (minor currency units)
    subtotal = Column(Integer, nullable=False)
    shipping_cost = Column(Integer, nullable=False, default=0)
    discount = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False)
    coupon_code = Column(String(50), nullable=True)

    # Shipping address snapshot, copied so later address edits never alter a placed order
    shipping_zone = Column(SQLEnum(ShippingZone), nullable=False)
    shipping_full_name = Column(String(200), nullable=False)
    shipping_phone = Column(String(20), nullable=False)
    shipping_email = Column(String(255), nullable=True)
    shipping_street = Column(String(255), nullable=False)
    shipping_number = Column(String(255), nullable=False, default="")
    shipping_city = Column(String(100), nullable=False)
    shipping_province = Column(String(100), nullable=False)
    shipping_postal_code = Column(String(20), nullable=False)
    shipping_country = Column(String(2), nullable=False, default="AR")

    customer_notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    tracking_number = Column(String(100), nullable=True)
    tracking_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    paid_at = Column(DateTime, nullable=True)
    shipped_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Optimistic concurrency: every status/metadata write is conditional on this value
    version = Column(Integer, nullable=False, default=1)

    items = relationship('OrderItem', back_populates='order', order_by='OrderItem.id')

    __table_args__ = (
        CheckConstraint('total >= 0', name='check_order_total_non_negative'),
        CheckConstraint('subtotal >= 0', name='check_order_subtotal_non_negative'),
        CheckConstraint('discount >= 0', name='check_order_discount_non_negative'),
        Index('ix_orders_user_status', 'user_id', 'status'),
        Index('ix_orders_created_at', 'created_at'),
    )


class ShippingAddressDTO(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    address1: str = Field(..., min_length=1, max_length=255)
    address2: str | None = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    province: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field("AR", min_length=2, max_length=2)  # ISO 3166-1 alpha-2
    phone: str = Field(..., min_length=8, max_length=20)
    email: str | None = Field(None, max_length=255)  # Confirmation email recipient

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class OrderDTO(BaseModel):
    id: str | None = None
    order_number: str | None = None
    user_id: str | None = None
    session_token: str | None = None
    status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None
    payment_method: str | None = None
    payment_id: str | None = None
    payment_preference_id: str | None = None
    subtotal: int | None = None
    shipping_cost: int | None = 0
    discount: int | None = 0
    total: int | None = None
    coupon_code: str | None = None
    shipping_zone: ShippingZone | None = None
    shipping_full_name: str | None = None
    shipping_phone: str | None = None
    shipping_email: str | None = None
    shipping_street: str | None = None
    shipping_number: str | None = None
    shipping_city: str | None = None
    shipping_province: str | None = None
    shipping_postal_code: str | None = None
    shipping_country: str | None = None
    customer_notes: str | None = None
    internal_notes: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    paid_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    version: int | None = None


class OrderWithItemsDTO(OrderDTO):
    items: list[OrderItemDTO] = []


class PaginationDTO(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class OrderPageDTO(BaseModel):
    orders: list[OrderWithItemsDTO]
    pagination: PaginationDTO
