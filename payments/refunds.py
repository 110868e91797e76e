"""
Refund handling

Issues refunds against captured orders and keeps the append-only refund
ledger on the host payment record.

The refund id doubles as the idempotency key of the refund call. Without a
caller-supplied token the id carries a random suffix, so a retry is only
safe if the caller resends the id it got back; with a token
(``context.idempotency_key``) the suffix is derived from (order id, token)
and retries collapse onto the same refund.
"""

import random
import uuid
from typing import Any, Optional

import structlog

from core.logging import BusinessEvents
from payments.errors import InvalidInput, NotAllowed, UnexpectedState
from payments.provider import GatewayClient
from payments.schemas import PaymentOutput, RefundPaymentInput
from payments.status import ACCEPTED_REFUND

log = structlog.get_logger(__name__)

ORDER_PREFIX = "order_"
REFUND_PREFIX = "refund_"


def generate_refund_id(order_id: str, token: Optional[str] = None) -> str:
    """Derive a refund id from an ``order_...`` id."""
    if not order_id.startswith(ORDER_PREFIX):
        raise InvalidInput("Invalid order ID format")

    if token:
        suffix = uuid.uuid5(uuid.NAMESPACE_URL, f"{order_id}/{token}").hex[:8]
    else:
        suffix = uuid.uuid4().hex[: random.randint(3, 8)]

    return f"{REFUND_PREFIX}{order_id[len(ORDER_PREFIX):]}_{suffix}"


def append_refund(data: dict[str, Any], refund: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with ``refund`` appended to its ledger."""
    previous = data.get("refunds")
    previous = list(previous) if isinstance(previous, list) else []
    return {
        **data,
        "refunds": [*previous, dict(refund)],
        # Index under the pre-append count
        "last_refund_index": len(previous),
    }


def issue_refund(
    client: GatewayClient, input: RefundPaymentInput, logger=None
) -> PaymentOutput:
    logger = logger or log
    data = input.data

    if not data.get("id") or not data.get("order_id"):
        raise InvalidInput("Invalid payment data for refund")
    if input.amount <= 0:
        raise InvalidInput("Refund amount must be greater than 0")

    payment_id = str(data["id"])
    order_id = str(data["order_id"])
    token = input.context.idempotency_key if input.context else None
    refund_id = generate_refund_id(order_id, token)

    request = {
        "refund_id": refund_id,
        "refund_amount": float(input.amount),
        "refund_note": f"Refund for {order_id}",
    }

    logger.info(
        BusinessEvents.REFUND_ATTEMPT,
        order_id=order_id,
        refund_id=refund_id,
        amount=str(input.amount),
    )

    try:
        response = client.create_refund(payment_id, request, idempotency_key=refund_id)
    except Exception as e:
        detail = getattr(e, "payload", None) or str(e)
        logger.error(
            BusinessEvents.REFUND_FAILURE,
            order_id=order_id,
            refund_id=refund_id,
            error=detail,
        )
        raise NotAllowed(f"Error: {detail}", cause=detail)

    refund_status = (response or {}).get("refund_status")
    if refund_status not in ACCEPTED_REFUND:
        raise UnexpectedState(f"Refund failure: {refund_status}")

    logger.info(
        BusinessEvents.REFUND_ACCEPTED,
        order_id=order_id,
        refund_id=refund_id,
        refund_status=refund_status,
    )
    return PaymentOutput(data=append_refund(data, response))
