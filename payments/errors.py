"""
Payment error classification.

Every failure the provider surfaces to the host is one of these kinds. The
``type`` code lets the host decide how to present it: ``not_found`` is
retryable by the caller, ``upstream_rejected`` deserves a targeted message,
``unauthorized`` means a webhook must not be trusted.
"""

from typing import Any


class PaymentError(Exception):
    type = "payment_error"

    def __init__(self, message: str, *, cause: Any = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class InvalidInput(PaymentError):
    """The request is malformed or a required field is missing."""

    type = "invalid_data"


class NotFound(PaymentError):
    """The resource, or the state the caller wants, is not there yet."""

    type = "not_found"


class NotAllowed(PaymentError):
    """The operation is forbidden in the current state or unsupported."""

    type = "not_allowed"


class Unauthorized(PaymentError):
    type = "unauthorized"


class UnexpectedState(PaymentError):
    """The gateway answered with a status outside the known vocabulary."""

    type = "unexpected_state"


class UpstreamUnavailable(PaymentError):
    """The gateway call failed; ``cause`` holds the underlying error."""

    type = "upstream_unavailable"


class UpstreamRejected(PaymentError):
    """The gateway refused the request as unsupported."""

    type = "upstream_rejected"
