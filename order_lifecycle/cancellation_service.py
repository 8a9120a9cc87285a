"""
cancellation_service.py — Server side of the cancellation request

Validates a customer's cancellation request independently of the storefront
and moves the order to `cancellation_requested` in the backend. Ownership is
enforced by the backend: the order lookup runs with the caller's own token,
so orders of other customers are simply not found.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from .clients import BackendClient
from .errors import BackendError
from .logging_config import order_prefix
from .models import CancellationRequest, HandlerResult
from .status_registry import OrderStatus, is_valid_transition

log = logging.getLogger(__name__)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extracts the token from an 'Authorization: Bearer <token>' header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


class CancellationRequestHandler:

    def __init__(self, backend_client: BackendClient):
        self.backend_client = backend_client

    def handle(self, order_id: str, authorization: Optional[str], payload: Any) -> HandlerResult:
        """
        Processes POST /api/orders/{orderId}/request-cancellation.

        Args:
            order_id (str): External order id from the path.
            authorization (str, optional): Raw Authorization header.
            payload: Decoded JSON body, expected {"reason": str}.

        Returns:
            HandlerResult: HTTP status and JSON body.
        """
        log_prefix = order_prefix(order_id)

        token = bearer_token(authorization)
        if token is None:
            log.warning(f"{log_prefix} Cancellation request without valid bearer token.")
            return HandlerResult(401, {"error": "Unauthorized"})

        try:
            reason = CancellationRequest.model_validate(payload).reason
        except ValidationError:
            return HandlerResult(400, {"error": "Cancellation reason is required"})

        try:
            order = self.backend_client.find_order(order_id, token)
            if order is None:
                log.warning(f"{log_prefix} Order not found or not owned by caller.")
                return HandlerResult(404, {"error": "Order not found or unauthorized"})

            if not is_valid_transition(order.orderStatus, OrderStatus.CANCELLATION_REQUESTED):
                log.info(f"{log_prefix} Cancellation refused, order is {order.orderStatus}.")
                return HandlerResult(400, {"error": f"Cannot cancel an order with status: {order.orderStatus}"})

            try:
                self.backend_client.update_order_status(
                    order.backend_id,
                    OrderStatus.CANCELLATION_REQUESTED.value,
                    reason,
                    token,
                )
            except BackendError:
                log.error(f"{log_prefix} Backend rejected the cancellation request.")
                return HandlerResult(500, {"error": "Failed to submit cancellation request to backend"})

        except BackendError:
            log.error(f"{log_prefix} Order lookup failed.")
            return HandlerResult(500, {"error": "Failed to find order"})

        except Exception as e:
            log.critical(f"{log_prefix} Unexpected error in cancellation request: {e}", exc_info=True)
            return HandlerResult(500, {"error": "Internal server error"})

        log.info(f"{log_prefix} Order moved to {OrderStatus.CANCELLATION_REQUESTED.value}.")
        return HandlerResult(200, {"success": True, "message": "Cancellation requested successfully"})
