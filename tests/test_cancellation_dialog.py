from unittest.mock import MagicMock

import pytest

from order_lifecycle.cancellation import (
    MISSING_REASON_MESSAGE,
    MISSING_SESSION_MESSAGE,
    CancellationClient,
    CancellationDialog,
    DialogState,
)
from order_lifecycle.errors import CancellationRequestError

ORDER_ID = "ORD-1730476800-PEND"


@pytest.fixture
def client():
    mock_client = MagicMock(spec=CancellationClient)
    mock_client.request_cancellation.return_value = {"success": True}
    return mock_client


@pytest.fixture
def reload_order():
    return MagicMock()


@pytest.fixture
def dialog(client, reload_order):
    dialog = CancellationDialog(ORDER_ID, client, session_token=lambda: "jwt-token", reload_order=reload_order)
    dialog.open()
    return dialog


def test_dialog_starts_closed_and_opens():
    dialog = CancellationDialog(ORDER_ID, MagicMock(), lambda: "jwt", MagicMock())
    assert dialog.state == DialogState.CLOSED
    dialog.open()
    assert dialog.state == DialogState.OPEN


@pytest.mark.parametrize("text, enabled", [
    ("", False),
    ("   ", False),
    ("\n\t", False),
    ("Me equivoqué de talla", True),
    ("  x  ", True),
])
def test_submit_is_enabled_exactly_when_reason_has_content(dialog, text, enabled):
    dialog.set_reason(text)
    assert dialog.can_submit is enabled


def test_enabling_is_idempotent_under_repeated_keystrokes(dialog):
    for text in ["", " ", "", "a", "a", " a", "", "   "]:
        dialog.set_reason(text)
        assert dialog.can_submit is bool(text.strip())
        assert dialog.can_submit is bool(text.strip())


def test_successful_submission_closes_and_reloads_order(dialog, client, reload_order):
    dialog.set_reason("  He cambiado de opinión  ")

    assert dialog.submit() is True

    client.request_cancellation.assert_called_once_with(ORDER_ID, "He cambiado de opinión", "jwt-token")
    reload_order.assert_called_once_with(ORDER_ID)
    assert dialog.state == DialogState.CLOSED
    assert dialog.reason == ""
    assert dialog.error is None


def test_failed_submission_keeps_dialog_open_with_inline_error(dialog, client, reload_order):
    client.request_cancellation.side_effect = CancellationRequestError(
        "Cannot cancel an order with status: shipped", status_code=400,
    )
    dialog.set_reason("Ya no lo necesito")

    assert dialog.submit() is False

    assert dialog.state == DialogState.OPEN
    assert dialog.error == "Cannot cancel an order with status: shipped"
    assert dialog.reason == "Ya no lo necesito"
    reload_order.assert_not_called()
    assert client.request_cancellation.call_count == 1


def test_typing_after_a_failure_clears_the_error(dialog, client):
    client.request_cancellation.side_effect = CancellationRequestError("boom")
    dialog.set_reason("motivo")
    dialog.submit()
    dialog.set_reason("motivo nuevo")
    assert dialog.error is None


def test_empty_reason_is_rejected_without_a_request(dialog, client):
    dialog.set_reason("    ")
    assert dialog.submit() is False
    assert dialog.state == DialogState.OPEN
    assert dialog.error == MISSING_REASON_MESSAGE
    client.request_cancellation.assert_not_called()


def test_missing_session_is_rejected_without_a_request(client, reload_order):
    dialog = CancellationDialog(ORDER_ID, client, session_token=lambda: None, reload_order=reload_order)
    dialog.open()
    dialog.set_reason("motivo")
    assert dialog.submit() is False
    assert dialog.error == MISSING_SESSION_MESSAGE
    client.request_cancellation.assert_not_called()


def test_only_one_submission_in_flight(client, reload_order):
    observed = {}

    def in_flight(order_id, reason, token):
        observed["state"] = dialog.state
        observed["can_submit"] = dialog.can_submit
        observed["second_submit"] = dialog.submit()
        observed["close"] = dialog.close()
        return {"success": True}

    client.request_cancellation.side_effect = in_flight
    dialog = CancellationDialog(ORDER_ID, client, lambda: "jwt", reload_order)
    dialog.open()
    dialog.set_reason("motivo")

    assert dialog.submit() is True
    assert observed == {
        "state": DialogState.SUBMITTING,
        "can_submit": False,
        "second_submit": False,
        "close": False,
    }
    assert client.request_cancellation.call_count == 1


def test_close_resets_reason_and_error(dialog):
    dialog.set_reason("motivo")
    dialog.error = "algo"
    assert dialog.close() is True
    assert dialog.state == DialogState.CLOSED
    assert dialog.reason == ""
    assert dialog.error is None


def test_submit_on_closed_dialog_does_nothing(client, reload_order):
    dialog = CancellationDialog(ORDER_ID, client, lambda: "jwt", reload_order)
    assert dialog.submit() is False
    client.request_cancellation.assert_not_called()
