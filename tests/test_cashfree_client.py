"""
Tests for the Cashfree REST client.
"""

import base64
import hashlib
import hmac
from unittest.mock import MagicMock, patch

import pytest
import requests

from payments.cashfree_client import CashfreeClient, CashfreeError, CashfreeSignatureError


class MockResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code, json_data=None, text=""):
        self.status_code = status_code
        self._json_data = json_data
        self.text = text
        self.content = b"" if json_data is None and not text else b"x"

    def json(self):
        if self._json_data is None:
            raise ValueError("No JSON")
        return self._json_data


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session):
    return CashfreeClient(
        "app_1",
        "secret_1",
        webhook_secret="whsec_1",
        retry_attempts=3,
        retry_wait=0,
        session=session,
    )


def sign(secret, timestamp, raw):
    digest = hmac.new(secret.encode(), timestamp.encode() + raw, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def test_create_order_sends_idempotency_key(client, session):
    session.request.return_value = MockResponse(200, {"order_id": "order_1"})

    result = client.create_order({"order_amount": 10.0}, idempotency_key="sess_1")

    assert result == {"order_id": "order_1"}
    method, url = session.request.call_args.args
    kwargs = session.request.call_args.kwargs
    assert method == "POST"
    assert url == "https://sandbox.cashfree.com/pg/orders"
    assert kwargs["json"] == {"order_amount": 10.0}
    assert kwargs["headers"]["x-idempotency-key"] == "sess_1"
    assert kwargs["headers"]["x-client-id"] == "app_1"
    assert kwargs["headers"]["x-client-secret"] == "secret_1"
    assert kwargs["headers"]["x-api-version"] == "2023-08-01"
    assert kwargs["timeout"] == 15.0


def test_production_base_url(session):
    client = CashfreeClient("a", "s", environment="production", session=session)
    session.request.return_value = MockResponse(200, {"order_id": "order_1"})

    client.fetch_order("order_1")

    assert session.request.call_args.args == ("GET", "https://api.cashfree.com/pg/orders/order_1")


def test_fetch_order_has_no_idempotency_header(client, session):
    session.request.return_value = MockResponse(200, {"order_status": "PAID"})

    assert client.fetch_order("order_1") == {"order_status": "PAID"}
    assert "x-idempotency-key" not in session.request.call_args.kwargs["headers"]


def test_terminate_order_patches(client, session):
    session.request.return_value = MockResponse(200, {"order_status": "TERMINATED"})

    client.terminate_order("order_1", {"order_status": "TERMINATED"})

    assert session.request.call_args.args[0] == "PATCH"
    assert session.request.call_args.kwargs["json"] == {"order_status": "TERMINATED"}


def test_create_refund_uses_refund_id_as_key(client, session):
    session.request.return_value = MockResponse(200, {"refund_status": "PENDING"})

    client.create_refund("order_1", {"refund_id": "refund_1_abc"}, idempotency_key="refund_1_abc")

    assert session.request.call_args.args[1].endswith("/orders/order_1/refunds")
    assert session.request.call_args.kwargs["headers"]["x-idempotency-key"] == "refund_1_abc"


def test_client_error_raises_with_payload(client, session):
    session.request.return_value = MockResponse(
        400, {"message": "order_currency : UNSUPPORTED", "code": "order_currency_invalid"}
    )

    with pytest.raises(CashfreeError) as exc_info:
        client.create_order({}, idempotency_key="k")

    error = exc_info.value
    assert error.status == 400
    assert error.code == "order_currency_invalid"
    assert "UNSUPPORTED" in str(error)
    assert error.payload["code"] == "order_currency_invalid"
    # 4xx answers are not retried
    assert session.request.call_count == 1


def test_non_json_error_body(client, session):
    session.request.return_value = MockResponse(502, text="Bad Gateway")

    with pytest.raises(CashfreeError) as exc_info:
        client.fetch_order("order_1")

    assert exc_info.value.payload == {"message": "Bad Gateway"}


def test_server_errors_are_retried(client, session):
    session.request.side_effect = [
        MockResponse(503, {"message": "busy"}),
        MockResponse(500, {"message": "busy"}),
        MockResponse(200, {"order_id": "order_1"}),
    ]

    result = client.create_order({}, idempotency_key="sess_1")

    assert result == {"order_id": "order_1"}
    assert session.request.call_count == 3
    keys = {c.kwargs["headers"]["x-idempotency-key"] for c in session.request.call_args_list}
    assert keys == {"sess_1"}


def test_connection_errors_are_retried_then_raised(client, session):
    session.request.side_effect = requests.ConnectionError("reset")

    with pytest.raises(requests.ConnectionError):
        client.fetch_order("order_1")

    assert session.request.call_count == 3


def test_empty_success_body(client, session):
    session.request.return_value = MockResponse(204)

    assert client.terminate_order("order_1", {"order_status": "TERMINATED"}) == {}


@patch("payments.cashfree_client.time.time", return_value=1_760_000_000)
def test_verify_signature_accepts_valid(mock_time, client):
    raw = b'{"type":"PAYMENT_SUCCESS_WEBHOOK"}'
    timestamp = "1760000000000"

    assert client.verify_webhook_signature(sign("whsec_1", timestamp, raw), raw, timestamp) is None


@patch("payments.cashfree_client.time.time", return_value=1_760_000_000)
def test_verify_signature_accepts_seconds_and_str_body(mock_time, client):
    raw = '{"type":"PAYMENT_SUCCESS_WEBHOOK"}'
    timestamp = "1760000010"

    client.verify_webhook_signature(sign("whsec_1", timestamp, raw.encode()), raw, timestamp)


@patch("payments.cashfree_client.time.time", return_value=1_760_000_000)
def test_verify_signature_rejects_tampered_body(mock_time, client):
    timestamp = "1760000000000"
    signature = sign("whsec_1", timestamp, b'{"amount":1}')

    with pytest.raises(CashfreeSignatureError, match="Invalid"):
        client.verify_webhook_signature(signature, b'{"amount":100}', timestamp)


@patch("payments.cashfree_client.time.time", return_value=1_760_000_000)
def test_verify_signature_rejects_stale_timestamp(mock_time, client):
    raw = b"{}"
    timestamp = str((1_760_000_000 - 301) * 1000)

    with pytest.raises(CashfreeSignatureError, match="tolerance"):
        client.verify_webhook_signature(sign("whsec_1", timestamp, raw), raw, timestamp)


@pytest.mark.parametrize(
    "signature, timestamp",
    [(None, "1760000000000"), ("sig", None), ("", "")],
)
def test_verify_signature_requires_headers(client, signature, timestamp):
    with pytest.raises(CashfreeSignatureError, match="Missing"):
        client.verify_webhook_signature(signature, b"{}", timestamp)


def test_verify_signature_rejects_malformed_timestamp(client):
    raw = b"{}"

    with pytest.raises(CashfreeSignatureError, match="Malformed"):
        client.verify_webhook_signature(sign("whsec_1", "soon", raw), raw, "soon")


def test_verify_signature_without_secret(session):
    client = CashfreeClient("a", "", session=session)

    with pytest.raises(CashfreeSignatureError, match="not configured"):
        client.verify_webhook_signature("sig", b"{}", "1")


@patch("payments.cashfree_client.time.time", return_value=1_760_000_000)
def test_verify_signature_accepts_client_secret(mock_time, client):
    raw = b'{"type":"PAYMENT_SUCCESS_WEBHOOK"}'
    timestamp = "1760000000000"

    client.verify_webhook_signature(sign("secret_1", timestamp, raw), raw, timestamp)


@patch("payments.cashfree_client.time.time", return_value=1_760_000_000)
def test_verify_signature_with_client_secret_only(mock_time, session):
    client = CashfreeClient("a", "secret_1", session=session)
    raw = b"{}"
    timestamp = "1760000000000"

    client.verify_webhook_signature(sign("secret_1", timestamp, raw), raw, timestamp)
    with pytest.raises(CashfreeSignatureError, match="Invalid"):
        client.verify_webhook_signature(sign("whsec_1", timestamp, raw), raw, timestamp)
