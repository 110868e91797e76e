import logging
import sys

import structlog

# Events captured when running with ENVIRONMENT=test
test_output = []

# Credential fields that must never reach a log line
REDACTED_KEYS = frozenset(
    {
        "secret_key",
        "webhook_secret",
        "x-client-secret",
        "x-webhook-signature",
    }
)


def redact_secrets(logger, method_name, event_dict):
    """Mask credential fields, including inside a logged ``headers`` mapping."""
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    headers = event_dict.get("headers")
    if isinstance(headers, dict):
        event_dict["headers"] = {
            name: "***" if name.lower() in REDACTED_KEYS else value
            for name, value in headers.items()
        }
    return event_dict


def test_output_processor(logger, method_name, event_dict):
    """Custom processor that stores output for test assertions"""
    test_output.append(event_dict.copy())
    return event_dict


def configure_logging(level: str = "INFO", environment: str = "development"):
    """
    Set up structlog on top of stdlib logging.

    JSON lines in test and production, the console renderer otherwise.
    """
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        redact_secrets,
    ]
    if environment == "test":
        processors.append(test_output_processor)

    if environment in ("test", "production"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True, sort_keys=False))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level.upper())

    # Retry noise is logged by the Cashfree client itself
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# Business Event Log Names
class BusinessEvents:
    """Standard names for business event logs"""

    API_ENTRY = "api.request"
    PROVIDER_CONFIGURED = "provider.configured"
    PAYMENT_INITIATE = "payment.initiate"
    PAYMENT_INITIATED = "payment.initiated"
    PAYMENT_FAILURE = "payment.failure"
    PAYMENT_CANCELED = "payment.canceled"
    PAYMENT_DELETE_SKIPPED = "payment.delete_skipped"
    PAYMENT_UPDATE_FAILED = "payment.update_failed"
    REFUND_ATTEMPT = "refund.attempt"
    REFUND_ACCEPTED = "refund.accepted"
    REFUND_FAILURE = "refund.failure"
    WEBHOOK_RECEIVED = "webhook.received"
    WEBHOOK_AUTHORIZED = "webhook.authorized"
    WEBHOOK_UNAUTHORIZED = "webhook.unauthorized"
    WEBHOOK_PROCESSED = "webhook.processed"
    WEBHOOK_ERROR = "webhook.error"
