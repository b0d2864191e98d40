from enum import Enum


class OrderStatus(Enum):
    PENDING = "pending"          # Created, waiting for payment
    PAID = "paid"                # Payment approved by the gateway
    PROCESSING = "processing"    # Being prepared for shipment
    SHIPPED = "shipped"          # Handed to the carrier
    DELIVERED = "delivered"      # Final: received by the customer
    CANCELLED = "cancelled"      # Final: cancelled (stock restored when cancelled from pending/paid)
    REFUNDED = "refunded"        # Final: refunded or charged back
