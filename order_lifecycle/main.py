"""
main.py — FastAPI Entry Point for the Order Lifecycle Service

This module provides the REST API through which order lifecycle state is
changed from outside the storefront UI, plus the read path the order detail
page uses to render its timeline.

Responsibilities:
    • Accept refund commands from the back-office webhook (shared-secret protected)
    • Accept customer cancellation requests (bearer-token protected)
    • Serve the reconstructed order timeline
    • Provide system health information
"""

import json
import uuid

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from typing import Optional

from .cancellation_service import CancellationRequestHandler, bearer_token
from .clients import BackendClient
from .config import get_settings
from .delivery import order_delivery_estimate
from .dependencies import get_backend_client, get_cancellation_handler, get_refund_handler
from .errors import BackendError
from .logging_config import get_logger, order_prefix, setup_logging
from .refund import RefundCommandHandler
from .timeline import order_timeline

# Initialization
# Configure logging and initialize FastAPI app
settings = get_settings()
setup_logging(settings.log_level, settings.log_file)
log = get_logger(__name__)
app = FastAPI(title="Order Lifecycle Service")


async def read_json(request: Request):
    """Decodes the request body; malformed JSON yields None and is rejected by the handlers' validation."""
    body = await request.body()
    try:
        return json.loads(body) if body else None
    except ValueError:
        return None


# API Endpoint: Back office → Refund
@app.post("/api/refund-order")
async def refund_order(
        request: Request,
        x_strapi_secret: Optional[str] = Header(default=None),
        x_trace_id: Optional[str] = Header(default=None),
        handler: RefundCommandHandler = Depends(get_refund_handler),
):
    """
    Refunds an order's payment. Triggered by the backend webhook after a cancellation is approved.

    Headers:
        x-strapi-secret: Shared webhook secret (required).
        x-trace-id: Correlation id; generated when absent and echoed back.

    Body:
        {"paymentIntentId": str, "amount": number (major units), "orderId": str}

    Returns:
        200 {"success": true, "refundId", "status"}
        400 {"error"} for missing or malformed fields
        401 {"error": "Unauthorized"}
        <provider status> {"error": "Stripe API Error", "message", "code"}
        500 {"error"} for configuration or unexpected failures
    """
    trace_id = x_trace_id or str(uuid.uuid4())
    payload = await read_json(request)
    result = await run_in_threadpool(handler.handle, payload, secret_header=x_strapi_secret, trace_id=trace_id)
    return JSONResponse(status_code=result.status_code, content=result.body, headers={"x-trace-id": trace_id})


# API Endpoint: Storefront → Cancellation request
@app.post("/api/orders/{order_id}/request-cancellation")
async def request_cancellation(
        order_id: str,
        request: Request,
        authorization: Optional[str] = Header(default=None),
        handler: CancellationRequestHandler = Depends(get_cancellation_handler),
):
    """
    Moves a customer's order to `cancellation_requested`.

    Headers:
        Authorization: Bearer <session token>

    Body:
        {"reason": str}

    Returns:
        200 {"success": true, "message"}; 400/401/404/500 {"error"}
    """
    payload = await read_json(request)
    result = await run_in_threadpool(handler.handle, order_id, authorization, payload)
    return JSONResponse(status_code=result.status_code, content=result.body)


# API Endpoint: Storefront → Order timeline
@app.get("/api/orders/{order_id}/timeline")
def get_order_timeline(
        order_id: str,
        authorization: Optional[str] = Header(default=None),
        backend_client: BackendClient = Depends(get_backend_client),
):
    """
    Returns the five-slot progress timeline, the terminal banner and the
    delivery estimate of an order.

    The order is read from the backend with the caller's token, so only the
    owner's orders are visible.
    """
    token = bearer_token(authorization)
    if token is None:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    try:
        order = backend_client.find_order(order_id, token)
    except BackendError:
        log.error(f"{order_prefix(order_id)} Timeline unavailable, backend lookup failed.")
        return JSONResponse(status_code=500, content={"error": "Failed to find order"})

    if order is None:
        return JSONResponse(status_code=404, content={"error": "Order not found or unauthorized"})

    estimate = order_delivery_estimate(order)
    return {
        "orderId": order.orderId,
        "orderStatus": order.orderStatus,
        **order_timeline(order).to_dict(),
        "deliveryEstimate": None if estimate is None else estimate.to_dict(),
    }


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint.

    Can be used by monitoring systems or container orchestrators
    (e.g., Docker, Kubernetes) to verify that the service is running.
    """
    return {"status": "ok"}
