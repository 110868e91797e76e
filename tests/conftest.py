"""Test configuration and fixtures."""

import os
import uuid
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from payments.cashfree_client import CashfreeError, CashfreeSignatureError
from payments.cashfree_service import CashfreePaymentProvider
from payments.schemas import InitiatePaymentInput

VALID_SIGNATURE = "valid-signature"


class FakeCashfreeClient:
    """In-memory Cashfree: honors idempotency keys and records every call."""

    def __init__(self):
        self.orders = {}
        self.by_idempotency_key = {}
        self.refunds = {}
        self.calls = []
        self.refund_status = "SUCCESS"
        # method name -> exception to raise
        self.failures = {}

    def _maybe_fail(self, method):
        if method in self.failures:
            raise self.failures[method]

    def create_order(self, request, idempotency_key=None):
        self.calls.append(("create_order", request, idempotency_key))
        self._maybe_fail("create_order")
        if idempotency_key in self.by_idempotency_key:
            return dict(self.orders[self.by_idempotency_key[idempotency_key]])

        order_id = f"order_{idempotency_key}_{len(self.orders) + 1}"
        order = {
            **request,
            "order_id": order_id,
            "cf_order_id": str(len(self.orders) + 1000),
            "order_status": "ACTIVE",
            "payment_session_id": f"session_{uuid.uuid4().hex}",
            "payment_link": f"https://payments-test.cashfree.com/links/{order_id}",
        }
        self.orders[order_id] = order
        if idempotency_key:
            self.by_idempotency_key[idempotency_key] = order_id
        return dict(order)

    def set_status(self, order_id, status):
        self.orders[order_id]["order_status"] = status

    def add_order(self, order_id, status):
        self.orders[order_id] = {"order_id": order_id, "order_status": status}

    def fetch_order(self, order_id):
        self.calls.append(("fetch_order", order_id))
        self._maybe_fail("fetch_order")
        if order_id not in self.orders:
            raise CashfreeError("order not found", status=404, code="order_not_found")
        return dict(self.orders[order_id])

    def terminate_order(self, order_id, request):
        self.calls.append(("terminate_order", order_id, request))
        self._maybe_fail("terminate_order")
        self.orders[order_id]["order_status"] = request["order_status"]
        return dict(self.orders[order_id])

    def create_refund(self, order_id, request, idempotency_key=None):
        self.calls.append(("create_refund", order_id, request, idempotency_key))
        self._maybe_fail("create_refund")
        if idempotency_key in self.refunds:
            return dict(self.refunds[idempotency_key])
        refund = {
            "cf_refund_id": str(len(self.refunds) + 1),
            "order_id": order_id,
            "refund_id": request["refund_id"],
            "refund_amount": request["refund_amount"],
            "refund_status": self.refund_status,
        }
        self.refunds[idempotency_key] = refund
        return dict(refund)

    def verify_webhook_signature(self, signature, raw_body, timestamp):
        self.calls.append(("verify_webhook_signature", signature, raw_body, timestamp))
        if signature != VALID_SIGNATURE:
            raise CashfreeSignatureError("Invalid webhook signature")

    def called(self, method):
        return [call for call in self.calls if call[0] == method]


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment variables before each test."""
    original_env = dict(os.environ)

    os.environ.update(
        {
            "CASHFREE_APP_ID": "test_app_id",
            "CASHFREE_SECRET_KEY": "cfsk_test_secret",
            "CASHFREE_WEBHOOK_SECRET": "whsec_test",
            "CASHFREE_ENVIRONMENT": "sandbox",
            "ENVIRONMENT": "test",
        }
    )

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def options():
    return {
        "app_id": "test_app_id",
        "secret_key": "cfsk_test_secret",
        "webhook_secret": "whsec_test",
        "environment": "sandbox",
        "return_url": "https://shop.test/checkout/return",
        "notify_url": "https://shop.test/hooks/cashfree",
    }


@pytest.fixture
def fake_client():
    return FakeCashfreeClient()


@pytest.fixture
def mock_logger():
    return MagicMock()


@pytest.fixture
def provider(fake_client, options, mock_logger):
    return CashfreePaymentProvider(fake_client, options, logger=mock_logger)


@pytest.fixture
def make_initiate_input():
    def _make(**overrides):
        payload = {
            "amount": Decimal("1000"),
            "currency_code": "inr",
            "data": {"session_id": "sess_1"},
            "context": {
                "customer": {
                    "id": "cus_1",
                    "first_name": "A",
                    "last_name": "B",
                    "email": "a@b.com",
                    "phone": "+911234567890",
                }
            },
        }
        payload.update(overrides)
        return InitiatePaymentInput.model_validate(payload)

    return _make
