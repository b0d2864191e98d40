# products are owned by the catalog; this subsystem only reads price/weight
# and moves the stock counter (decrement on order, restore on cancellation)
from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Boolean, CheckConstraint

from models.base import Base, new_uuid


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False)
    sku = Column(String(100), nullable=True, unique=True)
    price = Column(Integer, nullable=False)  # Minor currency units
    stock = Column(Integer, nullable=False, default=0)
    track_inventory = Column(Boolean, nullable=False, default=True)
    allow_backorder = Column(Boolean, nullable=False, default=False)
    weight = Column(Integer, nullable=False, default=0)  # Grams
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint('stock >= 0', name='check_product_stock_non_negative'),
        CheckConstraint('price >= 0', name='check_product_price_non_negative'),
    )


class ProductDTO(BaseModel):
    id: str | None = None
    name: str | None = None
    sku: str | None = None
    price: int | None = None
    stock: int | None = None
    track_inventory: bool | None = None
    allow_backorder: bool | None = None
    weight: int | None = None
    is_active: bool | None = None
