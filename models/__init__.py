"""
Models Package

This file ensures all SQLAlchemy models are imported and registered,
which is required for relationships to work correctly.
"""

from models.base import Base
from models.product import Product
from models.cart import Cart
from models.cartItem import CartItem
from models.coupon import Coupon
from models.order import Order
from models.orderItem import OrderItem
from models.order_number_sequence import OrderNumberSequence

__all__ = [
    'Base',
    'Product',
    'Cart',
    'CartItem',
    'Coupon',
    'Order',
    'OrderItem',
    'OrderNumberSequence',
]
