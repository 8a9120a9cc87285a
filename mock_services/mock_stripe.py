"""
mock_stripe.py — Mock Implementation of the Payment Provider Refund API (REST)

This module provides a simulated payment provider for testing the refund flow.
It exposes a small FastAPI application that mimics the provider's refund endpoint,
including its form-encoded requests and its error body format.

Simulation Scenarios:
    • Successful refund
    • Charge already refunded (HTTP 402, code 'charge_already_refunded')
    • Unknown payment intent (HTTP 404, code 'resource_missing')
    • Missing or invalid secret key (HTTP 401)

Endpoints:
    POST /v1/refunds — Handles incoming refund requests.

Port:
    Default: 8002 (HTTP)
"""

import logging
import uuid
from urllib.parse import parse_qs

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from typing import Optional

app = FastAPI(title="Mock Payment Provider")
log = logging.getLogger(__name__)

# Refunds issued during this process' lifetime, for inspection in tests
REFUNDS = []


def stripe_error(status_code: int, code: str, message: str, error_type: str = "invalid_request_error"):
    return JSONResponse(
        status_code=status_code,
        content={"error": {"type": error_type, "code": code, "message": message}},
    )


@app.post("/v1/refunds")
async def create_refund(
        request: Request,
        authorization: Optional[str] = Header(default=None),
        idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
):
    """
    Processes a refund request.

    This endpoint simulates different outcomes based on the provided `payment_intent`:
        - Starts with "pi_refunded_" → Already refunded (HTTP 402)
        - Starts with "pi_missing_"  → No such payment intent (HTTP 404)
        - Any other id               → Successful refund

    Returns:
        dict: Refund object on success, including:
            - id (str): Refund identifier (re_...).
            - status (str): Always "succeeded" for successful refunds.
            - amount (int): Refunded amount in minor units.
            - metadata (dict): Metadata sent with the request.
    """
    if not authorization or not authorization.startswith("Bearer sk_"):
        return stripe_error(401, "api_key_invalid", "Invalid API Key provided.", "authentication_error")

    form = {key: values[0] for key, values in parse_qs((await request.body()).decode("utf-8")).items()}
    payment_intent = form.get("payment_intent", "")
    metadata = {
        key[len("metadata["):-1]: value
        for key, value in form.items()
        if key.startswith("metadata[") and key.endswith("]")
    }
    log.info(f"[PSP] Refund request for {payment_intent} (Idempotency: {idempotency_key})")

    # Scenario simulation
    if payment_intent.startswith("pi_refunded_"):
        log.warning(f"[PSP] Charge of {payment_intent} already refunded.")
        return stripe_error(402, "charge_already_refunded",
                            f"Charge for {payment_intent} has already been refunded.")

    if payment_intent.startswith("pi_missing_"):
        return stripe_error(404, "resource_missing", f"No such payment_intent: '{payment_intent}'")

    refund = {
        "id": f"re_{uuid.uuid4().hex[:24]}",
        "object": "refund",
        "payment_intent": payment_intent,
        "amount": int(form.get("amount", "0")),
        "reason": form.get("reason"),
        "status": "succeeded",
        "metadata": metadata,
    }
    REFUNDS.append(refund)
    log.info(f"[PSP] Refund {refund['id']} for {payment_intent} succeeded.")
    return refund


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
