from fastapi import Request

from core.settings import Settings
from payments.cashfree_service import CashfreePaymentProvider


def build_provider(settings: Settings) -> CashfreePaymentProvider:
    """Validate settings and build the one provider instance the app owns."""
    return CashfreePaymentProvider.from_options(
        settings.cashfree_options(),
        api_version=settings.CASHFREE_API_VERSION,
        timeout=settings.CASHFREE_TIMEOUT,
        retry_attempts=settings.CASHFREE_RETRY_ATTEMPTS,
        webhook_tolerance=settings.CASHFREE_WEBHOOK_TOLERANCE,
    )


def get_provider(request: Request) -> CashfreePaymentProvider:
    """Dependency that provides the provider built at startup."""
    provider = getattr(request.app.state, "provider", None)
    assert provider is not None, "Provider not initialized. Make sure startup ran."
    return provider
