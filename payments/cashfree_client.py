"""
Cashfree PG REST client

Thin wrapper over the Cashfree Payment Gateway order API:
- Creating orders (idempotent per key)
- Fetching and terminating orders
- Creating refunds (idempotent per refund id)
- Verifying webhook signatures

Transient failures (connection errors, timeouts, 429 and 5xx answers) are
retried with exponential backoff. Every retry resends the same idempotency
key, so a retried create never opens a second order.
"""

import base64
import hashlib
import hmac
import time
from typing import Any, Optional
from urllib.parse import quote

import requests
import structlog
import tenacity

from payments.options import BASE_URLS, CashfreeOptions

log = structlog.get_logger(__name__)

DEFAULT_API_VERSION = "2023-08-01"


class CashfreeError(Exception):
    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        payload: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.payload = payload or {}


class CashfreeSignatureError(CashfreeError):
    pass


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(exc, CashfreeError) and exc.status is not None:
        return exc.status == 429 or exc.status >= 500
    return False


def _log_retry(retry_state: tenacity.RetryCallState) -> None:
    log.warning(
        "cashfree.retry",
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()),
    )


def _sign(key: str, message: bytes) -> str:
    digest = hmac.new(key.encode(), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


class CashfreeClient:
    def __init__(
        self,
        app_id: str,
        secret_key: str,
        *,
        environment: str = "sandbox",
        webhook_secret: Optional[str] = None,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 15.0,
        retry_attempts: int = 3,
        retry_wait: float = 1.0,
        webhook_tolerance: int = 300,
        session: Optional[requests.Session] = None,
    ):
        self.base = BASE_URLS[environment]
        self.app_id = app_id
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.api_version = api_version
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait
        self.webhook_tolerance = webhook_tolerance
        self.session = session or requests.Session()

    @classmethod
    def from_options(cls, options: CashfreeOptions, **kwargs) -> "CashfreeClient":
        return cls(
            options.app_id,
            options.secret_key,
            environment=options.environment,
            webhook_secret=options.webhook_secret,
            **kwargs,
        )

    def _headers(self, idempotency_key: Optional[str] = None) -> dict[str, str]:
        headers = {
            "x-client-id": self.app_id,
            "x-client-secret": self.secret_key,
            "x-api-version": self.api_version,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if idempotency_key:
            headers["x-idempotency-key"] = idempotency_key
        return headers

    def _send(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> dict[str, Any]:
        response = self.session.request(
            method,
            f"{self.base}{path}",
            json=json,
            headers=self._headers(idempotency_key),
            timeout=self.timeout,
        )

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.text}
            if not isinstance(payload, dict):
                payload = {"message": str(payload)}
            raise CashfreeError(
                payload.get("message") or f"Cashfree returned HTTP {response.status_code}",
                status=response.status_code,
                code=payload.get("code"),
                payload=payload,
            )

        if not response.content:
            return {}
        return response.json()

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        retrying = tenacity.Retrying(
            stop=tenacity.stop_after_attempt(self.retry_attempts),
            wait=tenacity.wait_exponential(multiplier=self.retry_wait, max=8),
            retry=tenacity.retry_if_exception(_is_transient),
            before_sleep=_log_retry,
            reraise=True,
        )
        return retrying(self._send, method, path, **kwargs)

    def create_order(
        self, request: dict[str, Any], idempotency_key: Optional[str] = None
    ) -> dict[str, Any]:
        return self._request("POST", "/orders", json=request, idempotency_key=idempotency_key)

    def fetch_order(self, order_id: str) -> dict[str, Any]:
        return self._request("GET", f"/orders/{quote(order_id, safe='')}")

    def terminate_order(self, order_id: str, request: dict[str, Any]) -> dict[str, Any]:
        return self._request("PATCH", f"/orders/{quote(order_id, safe='')}", json=request)

    def create_refund(
        self,
        order_id: str,
        request: dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            f"/orders/{quote(order_id, safe='')}/refunds",
            json=request,
            idempotency_key=idempotency_key,
        )

    def verify_webhook_signature(
        self, signature: Optional[str], raw_body: bytes | str, timestamp: Optional[str]
    ) -> None:
        """
        Check a webhook against its ``x-webhook-signature`` header.

        The signature is base64(HMAC-SHA256(key, timestamp + raw body)),
        computed over the body exactly as it arrived on the wire. Cashfree
        signs with the client secret; a separately configured webhook secret
        is accepted as well.

        Raises:
            CashfreeSignatureError: missing input, mismatch or stale timestamp
        """
        keys = self._webhook_keys()
        if not keys:
            raise CashfreeSignatureError("Webhook secret not configured")
        if not signature or not timestamp:
            raise CashfreeSignatureError("Missing webhook signature or timestamp")
        if raw_body is None:
            raise CashfreeSignatureError("Missing raw webhook body")

        if isinstance(raw_body, str):
            raw_body = raw_body.encode("utf-8")

        message = timestamp.encode() + raw_body
        if not any(
            hmac.compare_digest(_sign(key, message), signature) for key in keys
        ):
            raise CashfreeSignatureError("Invalid webhook signature")

        self._check_timestamp(timestamp)

    def _webhook_keys(self) -> list[str]:
        keys = [self.secret_key] if self.secret_key else []
        if self.webhook_secret and self.webhook_secret not in keys:
            keys.append(self.webhook_secret)
        return keys

    def _check_timestamp(self, timestamp: str) -> None:
        try:
            sent_at = int(timestamp)
        except ValueError:
            raise CashfreeSignatureError(f"Malformed webhook timestamp: {timestamp!r}")

        # Cashfree sends epoch milliseconds
        if sent_at > 10**11:
            sent_at = sent_at / 1000

        if self.webhook_tolerance and abs(time.time() - sent_at) > self.webhook_tolerance:
            raise CashfreeSignatureError("Webhook timestamp outside tolerance")
