"""
Cashfree Payment Service

This module implements the host payment-provider contract on top of the
Cashfree order API:
- Initiating orders for checkout sessions (idempotent per session)
- Reconciling order status into host payment statuses
- Canceling, deleting and replacing orders
- Refunds and webhook handling (see payments.refunds, payments.webhooks)
"""

import re
from typing import Any, Mapping, Optional

import structlog

from core.logging import BusinessEvents
from payments.cashfree_client import CashfreeClient
from payments.errors import (
    InvalidInput,
    NotAllowed,
    NotFound,
    PaymentError,
    UpstreamRejected,
    UpstreamUnavailable,
)
from payments.options import CashfreeOptions, validate_options
from payments.provider import GatewayClient
from payments.refunds import issue_refund
from payments.schemas import (
    InitiatePaymentInput,
    InitiatePaymentOutput,
    PaymentInput,
    PaymentOutput,
    PaymentSessionStatus,
    ProviderWebhookPayload,
    RefundPaymentInput,
    UpdatePaymentInput,
    WebhookActionResult,
)
from payments.status import (
    CLOSED,
    IN_PROGRESS,
    OrderStatus,
    map_authorize_status,
    map_session_status,
)
from payments.webhooks import handle_webhook

log = structlog.get_logger(__name__)

TERMINATE_REQUEST = {"order_status": OrderStatus.TERMINATED}


def format_phone_number(phone: Optional[str]) -> str:
    """Keep digits and a leading ``+``; drop everything else."""
    if not phone:
        return ""
    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    if not digits:
        return ""
    prefix = "+" if phone.startswith("+") else ""
    return prefix + digits


def _upstream_detail(error: Exception) -> Any:
    return getattr(error, "payload", None) or str(error)


class CashfreePaymentProvider:
    identifier = "cashfree"

    def __init__(
        self,
        client: GatewayClient,
        options: CashfreeOptions | Mapping[str, Any],
        logger=None,
    ):
        """
        Build a provider around an explicitly owned gateway client.

        Args:
            client: Anything implementing the GatewayClient protocol
            options: Validated options, or a raw mapping to validate now
            logger: Optional structlog-style logger; defaults to the module logger
        """
        self.logger = logger or log
        if not isinstance(options, CashfreeOptions):
            options = validate_options(options)
        self.options = options
        self.client = client
        self.logger.info(
            BusinessEvents.PROVIDER_CONFIGURED,
            provider=self.identifier,
            environment=options.environment,
        )

    @classmethod
    def from_options(
        cls, options: Mapping[str, Any], logger=None, **client_kwargs
    ) -> "CashfreePaymentProvider":
        """Validate options and build the provider with a real Cashfree client."""
        validated = validate_options(options)
        client = CashfreeClient.from_options(validated, **client_kwargs)
        return cls(client, validated, logger=logger)

    # Order lifecycle

    def _fetch(self, order_id: str) -> dict[str, Any]:
        return self.client.fetch_order(order_id) or {}

    def _build_order_request(self, input: InitiatePaymentInput) -> dict[str, Any]:
        customer = input.context.customer if input.context else None
        if customer is None:
            raise InvalidInput("Customer not found")

        billing_phone = customer.billing_address.phone if customer.billing_address else None
        phone = format_phone_number(customer.phone or billing_phone)
        if not phone:
            raise InvalidInput("Customer phone is required")

        session_id = input.data.get("session_id")
        if not session_id:
            raise InvalidInput("session_id is required")

        customer_name = f"{customer.first_name or ''} {customer.last_name or ''}".strip()
        if not customer_name:
            raise InvalidInput("Customer name is required")

        if input.amount <= 0:
            raise InvalidInput("Amount must be greater than 0")

        order_meta = {
            key: value
            for key, value in (
                ("return_url", self.options.return_url),
                ("notify_url", self.options.notify_url),
            )
            if value
        }
        return {
            "order_amount": float(input.amount),
            "order_currency": input.currency_code.upper(),
            "customer_details": {
                "customer_id": customer.id,
                "customer_name": customer_name,
                "customer_email": customer.email,
                "customer_phone": phone,
            },
            "order_meta": order_meta,
            "order_tags": {"session_id": str(session_id)},
        }

    def initiate_payment(self, input: InitiatePaymentInput) -> InitiatePaymentOutput:
        request = self._build_order_request(input)
        session_id = request["order_tags"]["session_id"]
        customer = request["customer_details"]

        self.logger.info(
            BusinessEvents.PAYMENT_INITIATE,
            amount=request["order_amount"],
            currency=request["order_currency"],
            customer=customer["customer_name"][:20],
        )

        try:
            response = self.client.create_order(request, idempotency_key=session_id)
        except Exception as e:
            self.logger.error(
                BusinessEvents.PAYMENT_FAILURE,
                error=str(e),
                status=getattr(e, "status", None),
                code=getattr(e, "code", None),
                request_amount=request["order_amount"],
                request_currency=request["order_currency"],
                has_customer_name=bool(customer["customer_name"]),
                has_customer_email=bool(customer["customer_email"]),
                has_customer_phone=bool(customer["customer_phone"]),
            )
            if "UNSUPPORTED" in str(e).upper():
                raise UpstreamRejected(
                    "Cashfree API returned UNSUPPORTED error. Please check: "
                    "currency code, amount format, or customer data.",
                    cause=_upstream_detail(e),
                )
            raise UpstreamUnavailable(f"Failed to create Cashfree order: {e}", cause=e)

        if not response or not response.get("order_id"):
            raise NotFound("Payment request failure: No order_id returned from Cashfree")

        self.logger.info(BusinessEvents.PAYMENT_INITIATED, order_id=response["order_id"])
        return InitiatePaymentOutput(
            id=response["order_id"],
            data={
                **response,
                "payment_session_id": response.get("payment_session_id"),
                "payment_link": response.get("payment_link"),
            },
        )

    def authorize_payment(self, input: PaymentInput) -> PaymentOutput:
        order_id = input.data.get("order_id")
        if not order_id:
            raise InvalidInput("Missing order_id for authorization")

        try:
            order = self._fetch(order_id)
        except Exception as e:
            self.logger.error("payment.authorize_failed", order_id=order_id, error=str(e))
            raise UpstreamUnavailable("Failed to authorize payment", cause=e)

        return PaymentOutput(
            data={**order, "id": order_id},
            status=map_authorize_status(order.get("order_status")),
        )

    def capture_payment(self, input: PaymentInput) -> PaymentOutput:
        order_id = input.data.get("id")
        if not order_id:
            raise InvalidInput("Missing payment ID")

        try:
            order = self._fetch(order_id)
        except Exception as e:
            self.logger.error("payment.capture_failed", order_id=order_id, error=str(e))
            raise UpstreamUnavailable(f"Failed to fetch order {order_id}", cause=e)

        status = order.get("order_status")
        if status == OrderStatus.PAID:
            return PaymentOutput(data={**order, "id": order_id})
        if status in IN_PROGRESS:
            raise NotFound("Pending payment. Try again later.")
        if status == OrderStatus.EXPIRED:
            raise NotFound("Payment order expired.")
        if status == OrderStatus.TERMINATED:
            raise NotFound("Payment terminated.")
        raise NotFound("Payment not captured.")

    def cancel_payment(self, input: PaymentInput) -> PaymentOutput:
        order_id = input.data.get("order_id")
        if not order_id:
            raise InvalidInput("Missing order_id")

        try:
            status = self._fetch(order_id).get("order_status") or "UNKNOWN"
            if status == OrderStatus.PAID:
                raise NotAllowed("Order already paid, cannot cancel.")
            if status in CLOSED:
                return PaymentOutput(data=input.data)

            self.client.terminate_order(order_id, dict(TERMINATE_REQUEST))
        except PaymentError:
            raise
        except Exception as e:
            self.logger.error(
                "payment.cancel_failed", order_id=order_id, error=_upstream_detail(e)
            )
            raise UpstreamUnavailable(f"Failed to cancel order {order_id}", cause=e)

        self.logger.info(BusinessEvents.PAYMENT_CANCELED, order_id=order_id)
        return PaymentOutput(data={**input.data, "canceled": True})

    def delete_payment(self, input: PaymentInput) -> PaymentOutput:
        # Best effort: never fails the caller
        order_id = input.data.get("order_id")
        if not order_id:
            self.logger.warning(BusinessEvents.PAYMENT_DELETE_SKIPPED, reason="missing order_id")
            return PaymentOutput(data=input.data)

        try:
            status = self._fetch(order_id).get("order_status")
            if status == OrderStatus.PAID:
                self.logger.warning(
                    BusinessEvents.PAYMENT_DELETE_SKIPPED,
                    order_id=order_id,
                    reason="order already paid",
                )
                return PaymentOutput(data=input.data)
            if status in CLOSED:
                return PaymentOutput(data=input.data)

            self.client.terminate_order(order_id, dict(TERMINATE_REQUEST))
        except Exception as e:
            self.logger.error(
                "payment.delete_failed", order_id=order_id, error=_upstream_detail(e)
            )

        return PaymentOutput(data=input.data)

    def retrieve_payment(self, input: PaymentInput) -> PaymentOutput:
        order_id = input.data.get("order_id")
        if not order_id:
            raise InvalidInput("Cashfree retrievePayment requires order_id")

        try:
            order = self._fetch(order_id)
        except Exception as e:
            self.logger.error(
                "payment.retrieve_failed", order_id=order_id, error=_upstream_detail(e)
            )
            raise UpstreamUnavailable(f"Failed to retrieve order {order_id}", cause=e)

        return PaymentOutput(data={**input.data, **order})

    def get_payment_status(self, input: PaymentInput) -> PaymentOutput:
        order_id = input.data.get("order_id")
        if not order_id:
            raise InvalidInput("Cashfree getPaymentStatus requires order_id")

        try:
            order = self._fetch(order_id)
        except Exception as e:
            self.logger.error(
                "payment.status_failed", order_id=order_id, error=_upstream_detail(e)
            )
            raise NotFound("Order not found", cause=e)

        return PaymentOutput(
            data={**input.data, **order},
            status=map_session_status(order.get("order_status")),
        )

    def update_payment(self, input: UpdatePaymentInput) -> PaymentOutput:
        external_id = input.data.get("id")
        if not external_id:
            raise InvalidInput("Cashfree updatePayment requires order_id")

        try:
            self.delete_payment(PaymentInput(data={"order_id": external_id}))
        except Exception as e:
            self.logger.warning(
                BusinessEvents.PAYMENT_DELETE_SKIPPED, order_id=external_id, error=str(e)
            )

        try:
            response = self.initiate_payment(input)
        except Exception as e:
            self.logger.error(BusinessEvents.PAYMENT_UPDATE_FAILED, error=str(e))
            raise NotFound("Failed to update payment. Please try again.", cause=e)

        return PaymentOutput(data=response.data, status=PaymentSessionStatus.pending)

    # Refunds and webhooks

    def refund_payment(self, input: RefundPaymentInput) -> PaymentOutput:
        return issue_refund(self.client, input, logger=self.logger)

    def get_webhook_action_and_data(
        self, payload: ProviderWebhookPayload
    ) -> WebhookActionResult:
        return handle_webhook(self.client, payload, logger=self.logger)

    # Not supported by Cashfree

    def create_account_holder(self, *args, **kwargs):
        raise NotAllowed("UNSUPPORTED")

    def update_account_holder(self, *args, **kwargs):
        raise NotAllowed("UNSUPPORTED")

    def delete_account_holder(self, *args, **kwargs):
        raise NotAllowed("UNSUPPORTED")

    def save_payment_method(self, *args, **kwargs):
        raise NotAllowed("UNSUPPORTED")

    def list_payment_methods(self, *args, **kwargs):
        raise NotAllowed("UNSUPPORTED")

    def __repr__(self):
        return f"<{self.__class__.__name__}(environment={self.options.environment})>"
