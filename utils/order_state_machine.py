"""
Order State Machine for validating order status transitions and maintaining consistency.

This module implements a finite state machine to ensure valid order status transitions
and provide audit logging for all status changes.
"""

import logging
from typing import Dict, List, Optional, Set

from enums.order_actor import OrderActor
from enums.order_status import OrderStatus
from exceptions.order import InvalidOrderTransitionException, OrderNotCancellableException

logger = logging.getLogger(__name__)


class OrderStatusTransition:
    """Represents a valid status transition with metadata"""

    def __init__(self, from_status: OrderStatus, to_status: OrderStatus, description: str = ""):
        self.from_status = from_status
        self.to_status = to_status
        self.description = description

    def __repr__(self):
        return f"{self.from_status.value} -> {self.to_status.value}"


class OrderStateMachine:
    """
    Finite state machine for order status transitions with validation and audit logging.

    Valid status transitions:
    - PENDING -> PAID, CANCELLED, REFUNDED
    - PAID -> PROCESSING, CANCELLED, REFUNDED
    - PROCESSING -> SHIPPED, REFUNDED
    - SHIPPED -> DELIVERED, REFUNDED

    DELIVERED, CANCELLED and REFUNDED are final. Staying in the same status
    is always allowed and is a no-op.
    """

    VALID_TRANSITIONS: List[OrderStatusTransition] = [
        # From PENDING
        OrderStatusTransition(OrderStatus.PENDING, OrderStatus.PAID, "Payment approved by the gateway"),
        OrderStatusTransition(OrderStatus.PENDING, OrderStatus.CANCELLED, "Order cancelled before payment"),
        OrderStatusTransition(OrderStatus.PENDING, OrderStatus.REFUNDED, "Payment refunded or charged back"),

        # From PAID
        OrderStatusTransition(OrderStatus.PAID, OrderStatus.PROCESSING, "Order being prepared"),
        OrderStatusTransition(OrderStatus.PAID, OrderStatus.CANCELLED, "Paid order cancelled"),
        OrderStatusTransition(OrderStatus.PAID, OrderStatus.REFUNDED, "Paid order refunded"),

        # From PROCESSING
        OrderStatusTransition(OrderStatus.PROCESSING, OrderStatus.SHIPPED, "Order handed to the carrier"),
        OrderStatusTransition(OrderStatus.PROCESSING, OrderStatus.REFUNDED, "Order refunded during preparation"),

        # From SHIPPED
        OrderStatusTransition(OrderStatus.SHIPPED, OrderStatus.DELIVERED, "Order delivered"),
        OrderStatusTransition(OrderStatus.SHIPPED, OrderStatus.REFUNDED, "Shipped order refunded"),
    ]

    FINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})

    # Cancelling from these restores stock
    CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.PAID})

    # Timestamp column stamped (if unset) when entering a status
    TIMESTAMP_FIELDS: Dict[OrderStatus, str] = {
        OrderStatus.PAID: "paid_at",
        OrderStatus.SHIPPED: "shipped_at",
        OrderStatus.DELIVERED: "delivered_at",
        OrderStatus.CANCELLED: "cancelled_at",
    }

    # Build transition map for fast lookup
    _transition_map: Dict[OrderStatus, Set[OrderStatus]] = {}
    _transition_descriptions: Dict[tuple, str] = {}

    @classmethod
    def _build_transition_map(cls):
        """Build internal transition maps for performance"""
        if cls._transition_map:
            return  # Already built

        for transition in cls.VALID_TRANSITIONS:
            cls._transition_map.setdefault(transition.from_status, set()).add(transition.to_status)
            cls._transition_descriptions[(transition.from_status, transition.to_status)] = transition.description

    @classmethod
    def is_valid_transition(cls, from_status: OrderStatus, to_status: OrderStatus) -> bool:
        """
        Check if a status transition is valid according to the state machine.

        Args:
            from_status: Current order status
            to_status: Desired new status

        Returns:
            True if transition is valid, False otherwise
        """
        cls._build_transition_map()

        # Allow staying in same status (no-op)
        if from_status == to_status:
            return True

        return to_status in cls._transition_map.get(from_status, set())

    @classmethod
    def get_valid_transitions(cls, from_status: OrderStatus) -> List[OrderStatus]:
        cls._build_transition_map()
        return sorted(cls._transition_map.get(from_status, set()), key=lambda status: status.value)

    @classmethod
    def get_transition_description(cls, from_status: OrderStatus, to_status: OrderStatus) -> str:
        cls._build_transition_map()
        return cls._transition_descriptions.get(
            (from_status, to_status),
            f"Transition from {from_status.value} to {to_status.value}"
        )

    @classmethod
    def is_final_status(cls, status: OrderStatus) -> bool:
        return status in cls.FINAL_STATUSES

    @classmethod
    def is_cancellable(cls, status: OrderStatus) -> bool:
        return status in cls.CANCELLABLE_STATUSES

    @classmethod
    def require_transition(cls, order_id: str, from_status: OrderStatus, to_status: OrderStatus):
        """
        Raise the matching business error if from_status -> to_status is illegal.

        Cancellation gets its own error so callers can tell "too late to cancel"
        apart from a generally invalid move.
        """
        if to_status == OrderStatus.CANCELLED and from_status != OrderStatus.CANCELLED \
                and not cls.is_cancellable(from_status):
            raise OrderNotCancellableException(order_id, from_status.value)
        if not cls.is_valid_transition(from_status, to_status):
            raise InvalidOrderTransitionException(order_id, from_status.value, to_status.value)

    @classmethod
    def validate_and_log_transition(cls, order_id: str, from_status: OrderStatus, to_status: OrderStatus,
                                    actor: OrderActor, actor_id: Optional[str] = None) -> bool:
        """
        Validate a status transition and create audit log entry.

        Args:
            order_id: ID of the order being transitioned
            from_status: Current order status
            to_status: Desired new status
            actor: Who triggers the transition
            actor_id: User id / gateway payment id of the actor (if known)

        Returns:
            True if transition is valid and logged, False otherwise
        """
        if not cls.is_valid_transition(from_status, to_status):
            logger.error(f"Invalid status transition for order {order_id}: "
                         f"{from_status.value} -> {to_status.value} by {actor.value}")
            return False

        transition_desc = cls.get_transition_description(from_status, to_status)
        performer = f"{actor.value} {actor_id}" if actor_id else actor.value

        logger.info(f"ORDER_STATUS_TRANSITION: Order {order_id} {from_status.value} -> {to_status.value} "
                    f"by {performer}: {transition_desc}")
        return True
