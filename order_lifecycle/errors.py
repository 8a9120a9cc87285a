"""
errors.py — Error taxonomy of the order lifecycle service

Every error carries the HTTP status it maps to at the boundary. Handlers
catch these at the top level and turn them into a stable JSON contract.
"""

from typing import Optional


class OrderLifecycleError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(OrderLifecycleError):
    """A required server-side setting (secret, API key) is missing or malformed."""
    status_code = 500


class AuthorizationError(OrderLifecycleError):
    status_code = 401


class PayloadValidationError(OrderLifecycleError):
    status_code = 400


class PaymentProviderError(OrderLifecycleError):
    """
    The payment provider rejected the operation or could not be reached.

    Attributes:
        code (str, optional): Provider error code, e.g. 'charge_already_refunded'.
        status_code (int, optional): HTTP status reported by the provider. None for
            transport failures, in which case the boundary falls back to 500.
    """

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class BackendError(OrderLifecycleError):
    """The content/order backend returned an error or was unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = status_code


class CancellationRequestError(OrderLifecycleError):
    """Raised on the storefront side when a cancellation request did not succeed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
