from enum import Enum


class PaymentStatus(Enum):
    """
    Payment status as reported by the payment gateway.

    Mirrored on the order as payment_status. The gateway may report values
    outside this set; those are parsed with from_gateway() and yield None.
    """
    PENDING = "pending"
    APPROVED = "approved"
    AUTHORIZED = "authorized"
    IN_PROCESS = "in_process"
    IN_MEDIATION = "in_mediation"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    CHARGED_BACK = "charged_back"

    @classmethod
    def from_gateway(cls, value: str | None) -> "PaymentStatus | None":
        if value is None:
            return None
        try:
            return cls(value.strip().lower().replace("-", "_"))
        except ValueError:
            return None
