from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from payments.schemas import (
    InitiatePaymentInput,
    InitiatePaymentOutput,
    PaymentInput,
    PaymentOutput,
    ProviderWebhookPayload,
    RefundPaymentInput,
    UpdatePaymentInput,
    WebhookActionResult,
)


@runtime_checkable
class GatewayClient(Protocol):
    def create_order(
        self, request: dict[str, Any], idempotency_key: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Create a gateway order. Repeating a call with the same idempotency key
        returns the original order instead of creating another.
        """
        ...

    def fetch_order(self, order_id: str) -> dict[str, Any]:
        ...

    def terminate_order(self, order_id: str, request: dict[str, Any]) -> dict[str, Any]:
        ...

    def create_refund(
        self,
        order_id: str,
        request: dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> dict[str, Any]:
        ...

    def verify_webhook_signature(
        self, signature: Optional[str], raw_body: bytes | str, timestamp: Optional[str]
    ) -> None:
        """Return None for an authentic webhook, raise otherwise."""
        ...


@runtime_checkable
class PaymentProvider(Protocol):
    """The fixed operation set a host framework calls on a payment provider."""

    identifier: str

    def initiate_payment(self, input: InitiatePaymentInput) -> InitiatePaymentOutput: ...

    def authorize_payment(self, input: PaymentInput) -> PaymentOutput: ...

    def capture_payment(self, input: PaymentInput) -> PaymentOutput: ...

    def cancel_payment(self, input: PaymentInput) -> PaymentOutput: ...

    def delete_payment(self, input: PaymentInput) -> PaymentOutput: ...

    def retrieve_payment(self, input: PaymentInput) -> PaymentOutput: ...

    def get_payment_status(self, input: PaymentInput) -> PaymentOutput: ...

    def update_payment(self, input: UpdatePaymentInput) -> PaymentOutput: ...

    def refund_payment(self, input: RefundPaymentInput) -> PaymentOutput: ...

    def get_webhook_action_and_data(
        self, payload: ProviderWebhookPayload
    ) -> WebhookActionResult: ...

    def create_account_holder(self, *args, **kwargs): ...

    def update_account_holder(self, *args, **kwargs): ...

    def delete_account_holder(self, *args, **kwargs): ...

    def save_payment_method(self, *args, **kwargs): ...

    def list_payment_methods(self, *args, **kwargs): ...
