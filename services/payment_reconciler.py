"""
Payment webhook reconciliation.

Notifications are only a hint: the payment is always re-fetched from the
gateway and the order is located through the payment's external_reference
(the order id). Notifications may arrive late, duplicated or out of order,
so every write is idempotent, monotone along the order state machine and
conditional on the order version.
"""

import logging

from db import get_db_session
from enums.order_actor import OrderActor
from enums.order_status import OrderStatus
from enums.payment_status import PaymentStatus
from exceptions.payment import PaymentNotFoundException
from models.order import OrderWithItemsDTO
from models.payment import GatewayPaymentDTO, ReconciliationResultDTO
from repositories.order import OrderRepository
from services.order import OrderService
from services.payment_gateway import PaymentGatewayClient, to_minor_units
from utils.order_state_machine import OrderStateMachine
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)

APPROVED_PAYMENT_STATUSES = frozenset({PaymentStatus.APPROVED, PaymentStatus.AUTHORIZED})

PAYMENT_TO_ORDER_STATUS: dict[PaymentStatus, OrderStatus] = {
    PaymentStatus.APPROVED: OrderStatus.PAID,
    PaymentStatus.AUTHORIZED: OrderStatus.PAID,
    PaymentStatus.PENDING: OrderStatus.PENDING,
    PaymentStatus.IN_PROCESS: OrderStatus.PENDING,
    PaymentStatus.IN_MEDIATION: OrderStatus.PENDING,
    PaymentStatus.REJECTED: OrderStatus.CANCELLED,
    PaymentStatus.CANCELLED: OrderStatus.CANCELLED,
    PaymentStatus.REFUNDED: OrderStatus.REFUNDED,
    PaymentStatus.CHARGED_BACK: OrderStatus.REFUNDED,
}


class PaymentReconciler:

    @staticmethod
    def superseded_by_approved_payment(order: OrderWithItemsDTO, payment: GatewayPaymentDTO, target: OrderStatus) -> bool:
        """
        A failed or pending attempt must not undo an order another payment already settled.
        Refunds and chargebacks still apply.
        """
        return (order.payment_id is not None
                and order.payment_id != payment.id
                and order.payment_status in APPROVED_PAYMENT_STATUSES
                and target in (OrderStatus.PENDING, OrderStatus.CANCELLED))

    @staticmethod
    def amount_matches(order: OrderWithItemsDTO, payment: GatewayPaymentDTO) -> bool:
        """Paid amount (major units, as the gateway reports it) equals the order total in minor units."""
        if payment.transaction_amount is None:
            return False
        return to_minor_units(payment.transaction_amount) == order.total

    @staticmethod
    async def reconcile(payment_id: str, gateway: PaymentGatewayClient) -> ReconciliationResultDTO:
        """
        Bring the order in line with the gateway's view of a payment.

        Args:
            payment_id: Gateway payment id taken from the notification
            gateway: Gateway client used to fetch the authoritative payment

        Returns:
            ReconciliationResultDTO; every result answers the webhook with success

        Raises:
            PaymentGatewayException: the payment could not be fetched (the
                webhook answers 5xx so the gateway re-delivers)
        """
        try:
            payment = await gateway.fetch_payment(payment_id)
        except PaymentNotFoundException:
            logger.warning(f"Webhook for payment {payment_id}: payment unknown at gateway, ignored")
            return ReconciliationResultDTO(result="payment_not_found", payment_id=payment_id)

        if not payment.external_reference:
            logger.error(f"Webhook for payment {payment.id}: payment has no external_reference, cannot locate order")
            return ReconciliationResultDTO(result="order_not_found", payment_id=payment.id)

        payment_status = PaymentStatus.from_gateway(payment.status)
        if payment_status is None:
            logger.warning(f"Webhook for payment {payment.id}: unknown gateway status '{payment.status}', "
                           f"order {payment.external_reference} unchanged")
            return ReconciliationResultDTO(
                result="unknown_status", payment_id=payment.id, order_id=payment.external_reference
            )

        return await PaymentReconciler.apply_payment(payment, payment_status)

    @staticmethod
    @TransactionManager.with_retry()
    async def apply_payment(payment: GatewayPaymentDTO, payment_status: PaymentStatus) -> ReconciliationResultDTO:
        """Apply one fetched payment to its order. A lost race re-reads and re-evaluates."""
        async with get_db_session() as session:
            order = await OrderRepository.get_with_items(payment.external_reference, session)
        if order is None:
            logger.error(f"Webhook for payment {payment.id}: order {payment.external_reference} not found")
            return ReconciliationResultDTO(
                result="order_not_found", payment_id=payment.id, order_id=payment.external_reference
            )

        if order.payment_id == payment.id and order.payment_status == payment_status:
            logger.info(f"Webhook for payment {payment.id}: order {order.order_number} already "
                        f"reflects {payment_status.value}, nothing to do")
            return ReconciliationResultDTO(
                result="duplicate", payment_id=payment.id, order_id=order.id, order_status=order.status
            )

        target = PAYMENT_TO_ORDER_STATUS[payment_status]
        if PaymentReconciler.superseded_by_approved_payment(order, payment, target):
            logger.warning(f"Webhook for payment {payment.id}: {payment_status.value} notification ignored, "
                           f"order {order.order_number} already paid by payment {order.payment_id}")
            return ReconciliationResultDTO(
                result="stale", payment_id=payment.id, order_id=order.id, order_status=order.status
            )

        if not OrderStateMachine.is_valid_transition(order.status, target):
            logger.warning(f"Webhook for payment {payment.id}: stale {payment_status.value} notification for "
                           f"order {order.order_number} in status {order.status.value}, ignored")
            return ReconciliationResultDTO(
                result="stale", payment_id=payment.id, order_id=order.id, order_status=order.status
            )

        if target == OrderStatus.PAID and not PaymentReconciler.amount_matches(order, payment):
            logger.error(f"Webhook for payment {payment.id}: paid amount {payment.transaction_amount} does not "
                         f"match order {order.order_number} total {order.total}, order left {order.status.value}")
            return ReconciliationResultDTO(
                result="amount_mismatch", payment_id=payment.id, order_id=order.id, order_status=order.status
            )

        timestamps = {}
        if payment.date_approved is not None:
            timestamps[OrderStatus.PAID] = payment.date_approved

        async with TransactionManager.atomic_transaction() as session:
            await OrderService.write_transition(
                order, target, OrderActor.PAYMENT_GATEWAY, session,
                actor_id=payment.id,
                extra_values={"payment_status": payment_status, "payment_id": payment.id},
                timestamps=timestamps,
            )

        logger.info(f"Webhook for payment {payment.id}: order {order.order_number} now "
                    f"{target.value} (payment {payment_status.value})")
        return ReconciliationResultDTO(
            result="applied", payment_id=payment.id, order_id=order.id, order_status=target
        )
