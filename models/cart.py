# a cart belongs to exactly one identity: an authenticated user or an anonymous
# session token. Checkout clears its items but never deletes the cart itself.
#
# note that items are NOT reserved, availability is checked again during checkout
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, String, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from models.base import Base, new_uuid, utcnow
from models.cartItem import CartLineDTO


class Cart(Base):
    __tablename__ = "carts"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(64), nullable=True, unique=True)
    session_token = Column(String(128), nullable=True, unique=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship('CartItem', back_populates='cart', cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint(
            '(user_id IS NOT NULL AND session_token IS NULL) OR (user_id IS NULL AND session_token IS NOT NULL)',
            name='check_cart_single_owner'
        ),
    )


class CartDTO(BaseModel):
    id: str | None = None
    user_id: str | None = None
    session_token: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CartSummaryDTO(BaseModel):
    """Cart with its lines priced at the live product price."""
    cart: CartDTO
    lines: list[CartLineDTO] = []
    item_count: int = 0
    subtotal: int = 0
