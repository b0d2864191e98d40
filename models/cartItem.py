from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship

from models.base import Base, utcnow
from models.product import ProductDTO


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(String(36), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Display snapshot only. Checkout ALWAYS re-derives pricing from the live
    # product price, carts are not payment-binding.
    price_at_add = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    cart = relationship('Cart', back_populates='items')
    product = relationship('Product')

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_quantity_positive'),
        UniqueConstraint('cart_id', 'product_id', name='uq_cart_items_cart_product'),
    )


class CartItemDTO(BaseModel):
    id: int | None = None
    cart_id: str | None = None
    product_id: str | None = None
    quantity: int | None = None
    price_at_add: int | None = None
    created_at: datetime | None = None


class CartLineDTO(BaseModel):
    """Cart item joined with the live product row."""
    item: CartItemDTO
    product: ProductDTO
