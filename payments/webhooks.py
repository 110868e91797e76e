"""
Webhook gate

Authenticates an inbound Cashfree notification and turns it into one host
action: captured, failed or not_supported.

Signature verification always runs on the raw body bytes. Once a webhook is
authenticated it is never answered with an error: a payload that cannot be
classified degrades to ``failed`` so the gateway stops redelivering it.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

import structlog

from core.logging import BusinessEvents
from payments.errors import Unauthorized
from payments.provider import GatewayClient
from payments.schemas import (
    ProviderWebhookPayload,
    WebhookAction,
    WebhookActionData,
    WebhookActionResult,
)

log = structlog.get_logger(__name__)

PAYMENT_SUCCESS_WEBHOOK = "PAYMENT_SUCCESS_WEBHOOK"
PAYMENT_FAILED_WEBHOOK = "PAYMENT_FAILED_WEBHOOK"

SIGNATURE_HEADER = "x-webhook-signature"
TIMESTAMP_HEADER = "x-webhook-timestamp"
SOURCE_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


def get_header(headers: Mapping[str, Any], name: str) -> Optional[str]:
    """Case-insensitive header lookup; multi-valued headers yield the first value."""
    for key, value in headers.items():
        if key.lower() == name:
            if isinstance(value, (list, tuple)):
                value = value[0] if value else None
            return value
    return None


def _order(event: Mapping[str, Any]) -> Mapping[str, Any]:
    return event["data"]["order"]


def _to_amount(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidOperation(f"not an amount: {value!r}")
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise InvalidOperation(f"not a finite amount: {value!r}")
    return amount


def classify(event: Mapping[str, Any]) -> WebhookActionResult:
    event_type = event.get("type")

    if event_type == PAYMENT_SUCCESS_WEBHOOK:
        action = WebhookAction.captured
    elif event_type == PAYMENT_FAILED_WEBHOOK:
        action = WebhookAction.failed
    else:
        return WebhookActionResult(
            action=WebhookAction.not_supported,
            data=WebhookActionData(session_id="", amount=Decimal(0)),
        )

    order = _order(event)
    return WebhookActionResult(
        action=action,
        data=WebhookActionData(
            session_id=order["order_tags"]["session_id"],
            amount=_to_amount(order["order_amount"]),
        ),
    )


def fallback_result(event: Mapping[str, Any]) -> WebhookActionResult:
    """A ``failed`` result built from whatever fields the payload still has."""
    session_id = ""
    try:
        tag = _order(event)["order_tags"]["session_id"]
        if tag is not None:
            session_id = str(tag)
    except (KeyError, TypeError, IndexError):
        pass

    amount = Decimal(0)
    candidates = []
    try:
        candidates.append(_order(event).get("order_amount"))
    except (KeyError, TypeError, AttributeError):
        pass
    if isinstance(event, Mapping):
        candidates.append(event.get("amount"))
    for candidate in candidates:
        try:
            amount = _to_amount(candidate)
            break
        except (InvalidOperation, ValueError, TypeError):
            continue

    return WebhookActionResult(
        action=WebhookAction.failed,
        data=WebhookActionData(session_id=session_id, amount=amount),
    )


def handle_webhook(
    client: GatewayClient, payload: ProviderWebhookPayload, logger=None
) -> WebhookActionResult:
    logger = logger or log
    headers = payload.headers
    event = payload.data
    event_type = event.get("type") or "unknown"

    source_ip = next(
        (ip for ip in (get_header(headers, h) for h in SOURCE_IP_HEADERS) if ip),
        "unknown",
    )
    logger.info(
        BusinessEvents.WEBHOOK_RECEIVED,
        event_type=event_type,
        source_ip=source_ip,
        user_agent=get_header(headers, "user-agent") or "unknown",
    )

    signature = get_header(headers, SIGNATURE_HEADER)
    timestamp = get_header(headers, TIMESTAMP_HEADER)

    try:
        if payload.raw_data is None or not signature or not timestamp:
            raise ValueError("missing raw body or signature headers")
        client.verify_webhook_signature(signature, payload.raw_data, timestamp)
    except Exception as e:
        logger.warning(
            BusinessEvents.WEBHOOK_UNAUTHORIZED,
            event_type=event_type,
            source_ip=source_ip,
            reason=str(e),
        )
        raise Unauthorized("Webhook triggered by unauthorized data.", cause=str(e))

    logger.info(BusinessEvents.WEBHOOK_AUTHORIZED, event_type=event_type)

    try:
        result = classify(event)
    except Exception as e:
        logger.error(BusinessEvents.WEBHOOK_ERROR, event_type=event_type, error=str(e))
        return fallback_result(event)

    logger.info(
        BusinessEvents.WEBHOOK_PROCESSED,
        event_type=event_type,
        action=result.action.value,
        session_id=result.data.session_id,
    )
    return result
