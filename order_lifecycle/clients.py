"""
This module provides communication clients for the external systems used by the order lifecycle service:
- Payment provider (Stripe REST API) for refunds
- Content/order backend (Strapi REST API) for order lookup and status updates
Each class encapsulates its protocol logic, error handling, and connection management.
Both accept an already configured httpx.Client, which is how the mock services are plugged in.
"""

import logging
import re
import uuid
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .errors import BackendError, ConfigurationError, PaymentProviderError
from .models import Order

log = logging.getLogger(__name__)

STRIPE_KEY_PATTERN = re.compile(r"^sk_(test|live)_")
REFUND_REASON = "requested_by_customer"


class _HttpClientOwner:
    """Closes the underlying httpx.Client only when this instance created it."""

    def __init__(self, client: httpx.Client, owns_client: bool):
        self.client = client
        self._owns_client = owns_client

    def close(self):
        if self._owns_client and not self.client.is_closed:
            self.client.close()

    def __del__(self):
        """Closes the HTTP client session."""
        try:
            self.close()
        except AttributeError:
            pass


# --- Payment Client (REST) ---
class PaymentClient(_HttpClientOwner):
    """
    Client for the payment provider's REST API.
    Issues refunds and translates provider error responses into PaymentProviderError.
    """
    def __init__(self, api_key: Optional[str], base_url: str = "https://api.stripe.com",
                 client: Optional[httpx.Client] = None):
        """
        Initializes the HTTP client with proper timeout configuration.

        Args:
            api_key (str, optional): Provider secret key. Checked lazily, on first use.
            base_url (str): Provider API base URL.
            client (httpx.Client, optional): Preconfigured client (tests, mocks).
        """
        self.api_key = api_key
        if client is None:
            timeout_config = httpx.Timeout(5.0, read=15.0)
            super().__init__(httpx.Client(base_url=base_url, timeout=timeout_config), owns_client=True)
        else:
            super().__init__(client, owns_client=False)

    def _auth_headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ConfigurationError("STRIPE_SECRET_KEY is not configured")
        if not STRIPE_KEY_PATTERN.match(self.api_key):
            raise ConfigurationError("Invalid STRIPE_SECRET_KEY format. Must start with sk_test_ or sk_live_")
        return {"Authorization": f"Bearer {self.api_key}"}

    def create_refund(self, payment_intent_id: str, amount_minor: int, metadata: Dict[str, str]) -> Dict[str, Any]:
        """
        Creates a refund for a payment intent.

        Args:
            payment_intent_id (str): The payment intent to refund.
            amount_minor (int): Refund amount in minor currency units (cents).
            metadata (dict): Correlation data stored with the refund (orderId, traceId).
        Returns:
            dict: The provider's refund object (id, status, ...).
        Raises:
            ConfigurationError: If the secret key is missing or malformed.
            PaymentProviderError: If the provider rejects the refund or cannot be reached.
        """
        headers = self._auth_headers()
        headers["Idempotency-Key"] = str(uuid.uuid4())
        form = {
            "payment_intent": payment_intent_id,
            "amount": str(amount_minor),
            "reason": REFUND_REASON,
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = value

        try:
            response = self.client.post("/v1/refunds", data=form, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise provider_error_from_response(e.response) from e
        except httpx.TransportError as e:
            log.error(f"Payment provider unreachable while refunding {payment_intent_id}: {e}")
            raise PaymentProviderError(str(e) or "Payment provider unreachable", code="api_connection_error") from e


def provider_error_from_response(response: httpx.Response) -> PaymentProviderError:
    """Builds a PaymentProviderError from a provider error body ({"error": {"message", "code", ...}})."""
    try:
        error = response.json().get("error") or {}
    except ValueError:
        error = {}
    if not isinstance(error, dict):
        error = {}
    message = error.get("message") or f"Payment provider returned HTTP {response.status_code}"
    return PaymentProviderError(message, code=error.get("code"), status_code=response.status_code)


# --- Backend Client (REST) ---
class BackendClient(_HttpClientOwner):
    """
    Client for the content/order backend.
    Every call forwards the customer's session token, so ownership checks stay in the backend.
    """
    def __init__(self, base_url: str, client: Optional[httpx.Client] = None):
        if client is None:
            timeout_config = httpx.Timeout(5.0, read=10.0)
            super().__init__(httpx.Client(base_url=base_url, timeout=timeout_config), owns_client=True)
        else:
            super().__init__(client, owns_client=False)

    @staticmethod
    def _headers(token: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

    def find_order(self, order_id: str, token: str) -> Optional[Order]:
        """
        Looks up an order by its external order id.

        Args:
            order_id (str): Externally visible order id (ORD-...).
            token (str): Customer session token.
        Returns:
            Order | None: The order, or None if the backend returned no match
            (unknown id or not owned by the caller).
        Raises:
            BackendError: If the backend responds with an error or is unreachable.
        """
        params = {"filters[orderId][$eq]": order_id, "populate": "*"}
        try:
            response = self.client.get("/api/orders", params=params, headers=self._headers(token))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error(f"[Order: {order_id}] Backend lookup failed (HTTP {e.response.status_code})")
            raise BackendError("Failed to find order", status_code=e.response.status_code) from e
        except httpx.TransportError as e:
            log.error(f"[Order: {order_id}] Backend unreachable during lookup: {e}")
            raise BackendError("Failed to find order") from e

        try:
            data = response.json().get("data") or []
            if not data:
                return None
            record = data[0]
            # Older backend versions nest fields under "attributes"
            if isinstance(record.get("attributes"), dict):
                record = {**record["attributes"], "id": record.get("id")}
            return Order.model_validate(record)
        except (ValueError, AttributeError, ValidationError) as e:
            log.error(f"[Order: {order_id}] Backend returned an unreadable order: {e}")
            raise BackendError("Failed to find order") from e

    def update_order_status(self, backend_id: str, status: str, note: Optional[str], token: str) -> Dict[str, Any]:
        """
        Sets a new orderStatus on an order.

        Args:
            backend_id (str): Backend document id of the order.
            status (str): New status value.
            note (str, optional): Status change note (e.g. cancellation reason).
            token (str): Customer session token.
        Raises:
            BackendError: If the update is rejected or the backend is unreachable.
        """
        payload = {"data": {"orderStatus": status, "statusChangeNote": note}}
        try:
            response = self.client.put(f"/api/orders/{backend_id}", json=payload, headers=self._headers(token))
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            log.error(f"Backend rejected status update of {backend_id}: {e.response.text}")
            raise BackendError("Failed to update order", status_code=e.response.status_code) from e
        except httpx.TransportError as e:
            log.error(f"Backend unreachable during status update of {backend_id}: {e}")
            raise BackendError("Failed to update order") from e
