"""Cashfree order/refund vocabularies and their mapping onto host statuses."""

from typing import Optional

from payments.schemas import PaymentSessionStatus


class OrderStatus:
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    PAID = "PAID"
    EXPIRED = "EXPIRED"
    TERMINATED = "TERMINATED"
    TERMINATION_REQUESTED = "TERMINATION_REQUESTED"


class RefundStatus:
    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    ONHOLD = "ONHOLD"
    CANCELLED = "CANCELLED"


IN_PROGRESS = frozenset({OrderStatus.ACTIVE, OrderStatus.PENDING})
CLOSED = frozenset({OrderStatus.TERMINATED, OrderStatus.EXPIRED})
ACCEPTED_REFUND = frozenset(
    {RefundStatus.SUCCESS, RefundStatus.PENDING, RefundStatus.ONHOLD}
)

# authorize and get_status read the same order differently: an expired order
# failed authorization, but as a session it is simply canceled.
_AUTHORIZE_MAP = {
    OrderStatus.PAID: PaymentSessionStatus.authorized,
    OrderStatus.ACTIVE: PaymentSessionStatus.pending,
    OrderStatus.PENDING: PaymentSessionStatus.pending,
    OrderStatus.EXPIRED: PaymentSessionStatus.error,
    OrderStatus.TERMINATED: PaymentSessionStatus.canceled,
}

_SESSION_MAP = {
    OrderStatus.PAID: PaymentSessionStatus.captured,
    OrderStatus.ACTIVE: PaymentSessionStatus.pending,
    OrderStatus.PENDING: PaymentSessionStatus.pending,
    OrderStatus.EXPIRED: PaymentSessionStatus.canceled,
    OrderStatus.TERMINATED: PaymentSessionStatus.canceled,
}


def map_authorize_status(order_status: Optional[str]) -> PaymentSessionStatus:
    """Host status for an order being authorized."""
    return _AUTHORIZE_MAP.get(order_status, PaymentSessionStatus.error)


def map_session_status(order_status: Optional[str]) -> PaymentSessionStatus:
    """Host status reported by get_status."""
    return _SESSION_MAP.get(order_status, PaymentSessionStatus.error)
