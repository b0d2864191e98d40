from enum import Enum


class OrderActor(Enum):
    """Who triggered an order status transition (used for audit logging)."""
    ADMIN = "admin"
    CUSTOMER = "customer"
    PAYMENT_GATEWAY = "payment_gateway"
    SYSTEM = "system"
