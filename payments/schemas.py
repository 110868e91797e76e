"""
Payment Schemas Module

Pydantic models for the host provider contract: what the host passes into
each lifecycle operation and what the provider hands back.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentSessionStatus(str, Enum):
    authorized = "authorized"
    captured = "captured"
    pending = "pending"
    requires_more = "requires_more"
    error = "error"
    canceled = "canceled"


class WebhookAction(str, Enum):
    captured = "captured"
    failed = "failed"
    not_supported = "not_supported"


class BillingAddress(BaseModel):
    phone: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class Customer(BaseModel):
    id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    billing_address: Optional[BillingAddress] = None

    model_config = ConfigDict(extra="allow")


class PaymentContext(BaseModel):
    customer: Optional[Customer] = None
    idempotency_key: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class PaymentInput(BaseModel):
    """Input for operations that only need the stored payment data."""

    data: dict[str, Any] = Field(default_factory=dict)
    context: Optional[PaymentContext] = None


class InitiatePaymentInput(PaymentInput):
    amount: Decimal
    currency_code: str


class UpdatePaymentInput(InitiatePaymentInput):
    pass


class RefundPaymentInput(PaymentInput):
    amount: Decimal


class InitiatePaymentOutput(BaseModel):
    id: str
    data: dict[str, Any]


class PaymentOutput(BaseModel):
    data: dict[str, Any]
    status: Optional[PaymentSessionStatus] = None


class ProviderWebhookPayload(BaseModel):
    """An inbound webhook as received: parsed body, exact raw body, headers."""

    data: dict[str, Any] = Field(default_factory=dict)
    raw_data: Optional[bytes | str] = None
    headers: dict[str, Any] = Field(default_factory=dict)


class WebhookActionData(BaseModel):
    session_id: str
    amount: Decimal


class WebhookActionResult(BaseModel):
    action: WebhookAction
    data: WebhookActionData
