"""
Provider options and their eager validation.

Options are checked once, when the provider is built, so a misconfigured
deployment fails at startup rather than on the first checkout.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from payments.errors import InvalidInput

ENVIRONMENTS = ("sandbox", "production")

BASE_URLS = {
    "sandbox": "https://sandbox.cashfree.com/pg",
    "production": "https://api.cashfree.com/pg",
}


@dataclass(frozen=True)
class CashfreeOptions:
    app_id: str
    secret_key: str
    webhook_secret: str
    environment: str = "sandbox"
    return_url: Optional[str] = None
    notify_url: Optional[str] = None

    @property
    def base_url(self) -> str:
        return BASE_URLS[self.environment]

    def __repr__(self):
        # Keep credentials out of logs and tracebacks
        return f"<CashfreeOptions(app_id={self.app_id!r}, environment={self.environment!r})>"


def _required_string(options: Mapping[str, Any], key: str) -> str:
    value = options.get(key)
    if not value or not isinstance(value, str):
        raise InvalidInput(
            f"Cashfree requires a valid `{key}` (string) in the options."
        )
    return value


def _optional_string(options: Mapping[str, Any], key: str) -> Optional[str]:
    value = options.get(key)
    if value and not isinstance(value, str):
        raise InvalidInput(f"`{key}` must be a string if provided.")
    return value or None


def validate_options(options: Mapping[str, Any]) -> CashfreeOptions:
    """Validate raw provider options, raising InvalidInput naming the bad field."""
    app_id = _required_string(options, "app_id")
    secret_key = _required_string(options, "secret_key")

    environment = options.get("environment")
    if environment and environment not in ENVIRONMENTS:
        raise InvalidInput(
            f'Invalid environment "{environment}". Use "sandbox" or "production".'
        )

    webhook_secret = _required_string(options, "webhook_secret")

    return CashfreeOptions(
        app_id=app_id,
        secret_key=secret_key,
        webhook_secret=webhook_secret,
        environment=environment or "sandbox",
        return_url=_optional_string(options, "return_url"),
        notify_url=_optional_string(options, "notify_url"),
    )
