"""
refund.py — Refund command handler

Entry point for the back-office webhook that refunds a cancelled order.

Flow:
1. Check the server holds a webhook secret (otherwise: configuration error, 500)
2. Compare the x-strapi-secret header with it (otherwise: unauthorized, 401)
3. Validate the payload (otherwise: bad request, 400)
4. Convert the amount to minor units and issue the refund with the payment provider
5. Translate provider errors into a stable response contract

Nothing is sent to the provider unless steps 1–3 pass, and a refund is never
retried: a failed call is reported back to the caller, which decides.
"""

import hmac
import logging
import math
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from numbers import Number
from typing import Any, Optional

from .clients import PaymentClient
from .errors import AuthorizationError, ConfigurationError, PayloadValidationError, PaymentProviderError
from .logging_config import trace_prefix
from .models import HandlerResult, RefundRequest, RefundResponse

log = logging.getLogger(__name__)

REQUIRED_FIELDS = ("paymentIntentId", "amount", "orderId")
MISSING_FIELDS_MESSAGE = "Missing required fields: paymentIntentId, amount, orderId"


def to_minor_units(amount) -> int:
    """
    Converts a major-unit amount (e.g. 19.99 EUR) to minor units (1999).

    Goes through the decimal string representation so binary float error
    cannot truncate a cent away (1.005 → 101, not 100). Halves round up.
    """
    try:
        major = Decimal(str(amount))
        return int((major * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError, OverflowError) as e:
        raise PayloadValidationError("amount must be a number") from e


def new_trace_id() -> str:
    return str(uuid.uuid4())


class RefundCommandHandler:
    """
    Validates and executes refund commands.

    The webhook secret is injected at construction so the authorization path
    can be exercised without touching the process environment.
    """

    def __init__(self, webhook_secret: Optional[str], payment_client: PaymentClient):
        self.webhook_secret = webhook_secret
        self.payment_client = payment_client

    def authorize(self, secret_header: Optional[str]):
        """
        Raises:
            ConfigurationError: If no webhook secret is configured on this server.
            AuthorizationError: If the header is missing or does not match.
        """
        if not self.webhook_secret:
            raise ConfigurationError("STRAPI_WEBHOOK_SECRET not configured")
        if secret_header is None or not hmac.compare_digest(
            secret_header.encode("utf-8"), self.webhook_secret.encode("utf-8")
        ):
            raise AuthorizationError("Unauthorized")

    @staticmethod
    def validate(payload: Any) -> RefundRequest:
        """
        Checks that all three fields are present and truthy.

        A zero amount counts as missing. Booleans, non-numeric and negative
        amounts are rejected as well.
        """
        if not isinstance(payload, dict):
            raise PayloadValidationError(MISSING_FIELDS_MESSAGE)
        if any(not payload.get(field) for field in REQUIRED_FIELDS):
            raise PayloadValidationError(MISSING_FIELDS_MESSAGE)

        amount = payload["amount"]
        if isinstance(amount, bool) or not isinstance(amount, Number):
            raise PayloadValidationError("amount must be a number")
        if isinstance(amount, float) and not math.isfinite(amount):
            raise PayloadValidationError("amount must be a number")
        if amount < 0:
            raise PayloadValidationError("amount must be a positive number")
        if not isinstance(payload["paymentIntentId"], str) or not isinstance(payload["orderId"], str):
            raise PayloadValidationError("paymentIntentId and orderId must be strings")

        return RefundRequest(
            paymentIntentId=payload["paymentIntentId"],
            amount=amount,
            orderId=payload["orderId"],
        )

    def handle(self, payload: Any, secret_header: Optional[str], trace_id: Optional[str] = None) -> HandlerResult:
        """
        Processes one refund command.

        Args:
            payload: Decoded JSON body ({paymentIntentId, amount, orderId}).
            secret_header (str, optional): Value of the x-strapi-secret header.
            trace_id (str, optional): Correlation id; generated when absent.

        Returns:
            HandlerResult: HTTP status and JSON body of the response.
        """
        trace_id = trace_id or new_trace_id()
        log_prefix = trace_prefix(trace_id)
        log.info(f"{log_prefix} Refund command received.")

        try:
            self.authorize(secret_header)
            request = self.validate(payload)
            amount_minor = to_minor_units(request.amount)
            log.info(f"{log_prefix} Processing refund for order {request.orderId}, amount: {request.amount} ({amount_minor} minor units)")

            refund = self.payment_client.create_refund(
                payment_intent_id=request.paymentIntentId,
                amount_minor=amount_minor,
                metadata={"orderId": request.orderId, "traceId": trace_id},
            )
            response = RefundResponse(refundId=refund["id"], status=refund.get("status"))
            log.info(f"{log_prefix} Refund processed successfully: {response.refundId} ({response.status})")
            return HandlerResult(200, response.model_dump())

        except PaymentProviderError as e:
            log.error(f"{log_prefix} Payment provider rejected refund: {e.code} - {e.message}")
            return HandlerResult(
                e.status_code or 500,
                {"error": "Stripe API Error", "message": e.message, "code": e.code},
            )

        except ConfigurationError as e:
            log.error(f"{log_prefix} Refund aborted, server misconfigured: {e.message}")
            return HandlerResult(500, {"error": "Server configuration error"})

        except AuthorizationError as e:
            log.warning(f"{log_prefix} Unauthorized refund attempt. Secret missing or mismatched.")
            return HandlerResult(e.status_code, {"error": e.message})

        except PayloadValidationError as e:
            log.warning(f"{log_prefix} Invalid refund payload: {e.message}")
            return HandlerResult(e.status_code, {"error": e.message})

        except Exception as e:
            log.critical(f"{log_prefix} Unexpected error while processing refund: {e}", exc_info=True)
            return HandlerResult(500, {"error": "Internal server error"})
