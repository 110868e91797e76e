"""Read-only summary of a Cashfree payment for admin order views."""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

PROVIDER_ID = "cashfree"


@dataclass(frozen=True)
class PaymentSummary:
    badge: str
    order_id: str
    session_id: str
    amount: str


def find_cashfree_payment(payments: list[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    return next((p for p in payments or [] if p.get("provider_id") == PROVIDER_ID), None)


def summarize_payment(payment: Mapping[str, Any]) -> PaymentSummary:
    data = payment.get("data") or {}
    return PaymentSummary(
        badge="Captured" if payment.get("captured_at") else "Pending",
        order_id=str(data.get("order_id") or payment.get("id")),
        session_id=data.get("payment_session_id") or "N/A",
        amount=f"{str(payment.get('currency_code', '')).upper()} {payment.get('amount')}",
    )
