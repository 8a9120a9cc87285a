"""
mock_backend.py — Mock Implementation of the Content/Order Backend (REST)

This module simulates the headless backend that owns orders. It keeps a small
in-memory order collection and supports the two calls the service makes:
lookup by external order id and status update by document id.

Ownership is simulated through the bearer token: each seeded order belongs to
one token, and lookups with another token return an empty result, as the real
backend does for orders the caller does not own.

Endpoints:
    GET /api/orders?filters[orderId][$eq]=<orderId> — Order lookup.
    PUT /api/orders/{documentId}                    — Order update.

Port:
    Default: 1337 (HTTP)
"""

import copy
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from typing import Optional

app = FastAPI(title="Mock Order Backend")
log = logging.getLogger(__name__)

SEED_ORDERS = [
    {
        "id": 1,
        "documentId": "doc-pending",
        "orderId": "ORD-1730476800-PEND",
        "owner": "token-ana",
        "orderStatus": "pending",
        "subtotal": 40.0,
        "shipping": 4.99,
        "total": 44.99,
        "paymentIntentId": "pi_pending_1",
        "items": [
            {"id": 10, "name": "Pulsera de plata", "price": 20.0, "quantity": 2,
             "images": ["/img/pulsera.jpg"], "href": "/tienda/pulsera", "stock": 5},
        ],
        "statusHistory": [
            {"status": "pending", "date": "2025-11-20T10:00:00Z"},
        ],
    },
    {
        "id": 2,
        "documentId": "doc-shipped",
        "orderId": "ORD-1730476801-SHIP",
        "owner": "token-ana",
        "orderStatus": "shipped",
        "subtotal": 80.0,
        "shipping": 0.0,
        "total": 80.0,
        "paymentIntentId": "pi_shipped_2",
        "items": [],
        "statusHistory": [
            {"status": "pending", "date": "2025-11-20T10:00:00Z"},
            {"status": "paid", "date": "2025-11-20T10:05:00Z"},
            {"status": "shipped", "date": "2025-11-22T09:00:00Z"},
        ],
    },
    {
        "id": 3,
        "documentId": "doc-other",
        "orderId": "ORD-1730476802-OTHR",
        "owner": "token-luis",
        "orderStatus": "paid",
        "subtotal": 15.0,
        "shipping": 4.99,
        "total": 19.99,
        "paymentIntentId": "pi_other_3",
        "items": [],
        "statusHistory": None,
    },
]

ORDERS = {}


def reset_orders():
    """Restores the seeded order collection."""
    ORDERS.clear()
    for order in copy.deepcopy(SEED_ORDERS):
        ORDERS[order["documentId"]] = order


reset_orders()


def _token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):]


def _public(order: dict) -> dict:
    return {key: value for key, value in order.items() if key != "owner"}


@app.get("/api/orders")
def list_orders(request: Request, authorization: Optional[str] = Header(default=None)):
    token = _token(authorization)
    if token is None:
        return JSONResponse(status_code=401, content={"error": {"status": 401, "message": "Missing or invalid credentials"}})

    order_id = request.query_params.get("filters[orderId][$eq]")
    matches = [
        _public(order) for order in ORDERS.values()
        if order["owner"] == token and (order_id is None or order["orderId"] == order_id)
    ]
    log.info(f"[BACKEND] Lookup {order_id}: {len(matches)} match(es).")
    return {"data": matches, "meta": {"pagination": {"total": len(matches)}}}


@app.put("/api/orders/{document_id}")
async def update_order(document_id: str, request: Request, authorization: Optional[str] = Header(default=None)):
    token = _token(authorization)
    order = ORDERS.get(document_id)
    if token is None or order is None or order["owner"] != token:
        return JSONResponse(status_code=404, content={"error": {"status": 404, "message": "Not Found"}})

    data = (await request.json()).get("data") or {}
    new_status = data.get("orderStatus")
    if new_status:
        order["orderStatus"] = new_status
        history = order.get("statusHistory") or []
        history.append({
            "status": new_status,
            "date": datetime.now(timezone.utc).isoformat(),
            "description": data.get("statusChangeNote"),
        })
        order["statusHistory"] = history
        log.info(f"[BACKEND] {order['orderId']} → {new_status}")
    return {"data": _public(order)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=1337)
