from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from models.base import Base, utcnow


class OrderItem(Base):
    """
    Immutable order line.

    Name, SKU and unit price are snapshots so historical orders stay accurate
    after the product is renamed, repriced or deleted.
    """
    __tablename__ = 'order_items'

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_order_item_positive_quantity'),
        CheckConstraint('unit_price >= 0', name='ck_order_item_non_negative_price'),
        Index('ix_order_items_order_id', 'order_id'),
        Index('ix_order_items_product_id', 'product_id'),
    )

    id = Column(Integer, primary_key=True)
    order_id = Column(String(36), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    product_id = Column(String(36), ForeignKey('products.id', ondelete='SET NULL'), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Integer, nullable=False)
    total = Column(Integer, nullable=False)
    product_name = Column(String(255), nullable=False)
    product_sku = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    order = relationship("Order", back_populates="items")


class OrderItemDTO(BaseModel):
    id: int | None = None
    order_id: str | None = None
    product_id: str | None = None
    quantity: int | None = None
    unit_price: int | None = None
    total: int | None = None
    product_name: str | None = None
    product_sku: str | None = None
    created_at: datetime | None = None
