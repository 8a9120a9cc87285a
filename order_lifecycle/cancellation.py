"""
cancellation.py — Customer cancellation request flow (storefront side)

Dialog state machine:

    CLOSED → OPEN → VALIDATING → SUBMITTING → CLOSED   (success, order view reloaded)
                        │             └──────→ OPEN     (failure, error shown inline)
                        └────────────────────→ OPEN     (empty reason)

The dialog never patches the order locally. On success it calls the
`reload_order` callback so the page refetches the order from the backend,
which then reports `cancellation_requested`.
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional

import httpx

from .errors import CancellationRequestError
from .logging_config import order_prefix

log = logging.getLogger(__name__)

MISSING_REASON_MESSAGE = "Por favor, proporciona un motivo para la cancelación."
MISSING_SESSION_MESSAGE = "Error de autenticación. Por favor, inicia sesión de nuevo."
DEFAULT_FAILURE_MESSAGE = "Error al enviar la solicitud de cancelación."
CONNECTION_FAILURE_MESSAGE = "Error al conectar con el servidor."

MAX_ATTEMPTS = 3
BASE_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 8.0


def backoff_delay(attempt: int, base_delay: float = BASE_DELAY_SECONDS) -> float:
    """Exponential backoff: base * 2^(attempt - 1), capped at MAX_DELAY_SECONDS."""
    return min(base_delay * (2 ** (attempt - 1)), MAX_DELAY_SECONDS)


class CancellationClient:
    """
    HTTP client for POST /api/orders/{orderId}/request-cancellation.

    Requests are bounded by a timeout. Only failures where the request never
    reached the server (connection refused, connect timeout) are retried with
    exponential backoff; an HTTP error or a read timeout is reported at once,
    since the server may already have applied the change.
    """

    def __init__(self, base_url: str = "", client: Optional[httpx.Client] = None,
                 max_attempts: int = MAX_ATTEMPTS, base_delay: float = BASE_DELAY_SECONDS,
                 sleep: Callable[[float], None] = time.sleep):
        timeout_config = httpx.Timeout(5.0, read=10.0)
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout_config)
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.sleep = sleep

    def request_cancellation(self, order_id: str, reason: str, token: str) -> dict:
        """
        Sends the cancellation request.

        Args:
            order_id (str): External order id.
            reason (str): Trimmed, non-empty cancellation reason.
            token (str): Session token, sent as bearer credential.
        Returns:
            dict: The success body ({"success": true, ...}).
        Raises:
            CancellationRequestError: With the message to show in the dialog.
        """
        log_prefix = order_prefix(order_id)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }
        url = f"/api/orders/{order_id}/request-cancellation"

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self.client.post(url, json={"reason": reason}, headers=headers)
                break
            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                if attempt == self.max_attempts:
                    log.error(f"{log_prefix} Cancellation request failed after {attempt} attempts: {e}")
                    raise CancellationRequestError(CONNECTION_FAILURE_MESSAGE) from e
                delay = backoff_delay(attempt, self.base_delay)
                log.warning(f"{log_prefix} Connection failed (attempt {attempt}/{self.max_attempts}). Retrying in {delay}s.")
                self.sleep(delay)
            except httpx.TransportError as e:
                log.error(f"{log_prefix} Cancellation request aborted: {e}")
                raise CancellationRequestError(CONNECTION_FAILURE_MESSAGE) from e

        if response.is_error:
            raise CancellationRequestError(error_message(response), status_code=response.status_code)
        log.info(f"{log_prefix} Cancellation requested.")
        return response.json()


def error_message(response: httpx.Response) -> str:
    """Picks the message to surface from an error response; `error` wins over `message`."""
    message = DEFAULT_FAILURE_MESSAGE
    try:
        body = response.json()
    except ValueError:
        return message
    if isinstance(body, dict):
        if body.get("message"):
            message = body["message"]
        if body.get("error"):
            message = body["error"]
    return message


class DialogState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    VALIDATING = "validating"
    SUBMITTING = "submitting"


class CancellationDialog:
    """
    State of one cancellation dialog instance.

    Args:
        order_id: External id of the order being cancelled.
        client: Anything with request_cancellation(order_id, reason, token).
        session_token: Callable returning the current session token, or None when logged out.
        reload_order: Called with the order id after a successful request.
    """

    def __init__(self, order_id: str, client: CancellationClient,
                 session_token: Callable[[], Optional[str]],
                 reload_order: Callable[[str], None]):
        self.order_id = order_id
        self.client = client
        self.session_token = session_token
        self.reload_order = reload_order
        self.state = DialogState.CLOSED
        self.reason = ""
        self.error: Optional[str] = None

    @property
    def can_submit(self) -> bool:
        return self.state == DialogState.OPEN and bool(self.reason.strip())

    @property
    def is_submitting(self) -> bool:
        return self.state == DialogState.SUBMITTING

    def open(self):
        if self.state == DialogState.CLOSED:
            self.state = DialogState.OPEN

    def close(self) -> bool:
        """Closes and resets the dialog. Refused while a submission is in flight."""
        if self.state == DialogState.SUBMITTING:
            return False
        self.state = DialogState.CLOSED
        self.reason = ""
        self.error = None
        return True

    def set_reason(self, text: str):
        if self.state != DialogState.OPEN:
            return
        self.reason = text
        self.error = None

    def submit(self) -> bool:
        """
        Runs one submission. Returns True when the request succeeded.

        A second call while SUBMITTING is ignored.
        """
        if self.state != DialogState.OPEN:
            return False

        self.state = DialogState.VALIDATING
        reason = self.reason.strip()
        if not reason:
            self._fail(MISSING_REASON_MESSAGE)
            return False

        token = self.session_token()
        if not token:
            self._fail(MISSING_SESSION_MESSAGE)
            return False

        self.state = DialogState.SUBMITTING
        self.error = None
        try:
            self.client.request_cancellation(self.order_id, reason, token)
        except CancellationRequestError as e:
            self._fail(e.message)
            return False
        except Exception as e:
            log.error(f"{order_prefix(self.order_id)} Unexpected failure while requesting cancellation: {e}")
            self._fail(str(e) or CONNECTION_FAILURE_MESSAGE)
            return False

        self.state = DialogState.CLOSED
        self.reason = ""
        self.reload_order(self.order_id)
        return True

    def _fail(self, message: str):
        self.state = DialogState.OPEN
        self.error = message
