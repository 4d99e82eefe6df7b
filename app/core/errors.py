"""
Error taxonomy for order and payment handling.
Routes map these to HTTP status codes; race loss is not an error (the core returns None).
"""
from typing import Any


class OrderError(Exception):
    """Base class; detail holds structured fields for logging."""

    status_code = 500

    def __init__(self, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class ValidationError(OrderError):
    """Malformed or missing client input. Never retried automatically."""

    status_code = 400


class NotFoundError(OrderError):
    status_code = 404


class OrderIntegrityError(OrderError):
    """Data integrity problem that requires human review."""

    status_code = 400


class DuplicateReferenceError(OrderIntegrityError):
    """UTR number already used by another order."""

    status_code = 409


class AmountMismatchError(OrderIntegrityError):
    """Gateway-observed amount differs from the stored order amount."""

    status_code = 400


class UpstreamError(OrderError):
    """Gateway unreachable, slow or erroring."""

    status_code = 500


class GatewayError(UpstreamError):
    def __init__(self, message: str, detail: dict[str, Any] | None = None, http_status: int | None = None):
        super().__init__(message, detail)
        self.http_status = http_status


class SignatureError(OrderError):
    """Webhook signature missing or invalid."""

    status_code = 401


class ConfigurationError(OrderError):
    """Required deployment setting missing (e.g. webhook secret in production)."""

    status_code = 500
