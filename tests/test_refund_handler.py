import logging
from unittest.mock import MagicMock

import pytest

from order_lifecycle.clients import PaymentClient
from order_lifecycle.errors import ConfigurationError, PayloadValidationError, PaymentProviderError
from order_lifecycle.refund import MISSING_FIELDS_MESSAGE, RefundCommandHandler, to_minor_units

SECRET = "test_secret_123"
VALID_PAYLOAD = {"paymentIntentId": "pi_1", "amount": 100, "orderId": "ORD-1"}


@pytest.fixture
def provider():
    mock_client = MagicMock(spec=PaymentClient)
    mock_client.create_refund.return_value = {"id": "re_test_123", "status": "succeeded"}
    return mock_client


@pytest.fixture
def handler(provider):
    return RefundCommandHandler(webhook_secret=SECRET, payment_client=provider)


def test_valid_command_refunds_amount_in_minor_units(handler, provider):
    result = handler.handle(VALID_PAYLOAD, secret_header=SECRET, trace_id="trace-1")

    assert result.status_code == 200
    assert result.body == {"success": True, "refundId": "re_test_123", "status": "succeeded"}
    provider.create_refund.assert_called_once_with(
        payment_intent_id="pi_1",
        amount_minor=10000,
        metadata={"orderId": "ORD-1", "traceId": "trace-1"},
    )


def test_trace_id_is_generated_when_absent(handler, provider):
    handler.handle(VALID_PAYLOAD, secret_header=SECRET)
    trace_id = provider.create_refund.call_args.kwargs["metadata"]["traceId"]
    assert trace_id


@pytest.mark.parametrize("header", [None, "", "wrong_secret"])
def test_missing_or_wrong_secret_is_unauthorized(handler, provider, header):
    result = handler.handle(VALID_PAYLOAD, secret_header=header)
    assert result.status_code == 401
    assert result.body == {"error": "Unauthorized"}
    provider.create_refund.assert_not_called()


@pytest.mark.parametrize("server_secret", [None, ""])
@pytest.mark.parametrize("header", [None, SECRET, "anything"])
def test_unconfigured_secret_is_a_configuration_error(provider, server_secret, header):
    handler = RefundCommandHandler(webhook_secret=server_secret, payment_client=provider)
    result = handler.handle(VALID_PAYLOAD, secret_header=header)
    assert result.status_code == 500
    assert result.body == {"error": "Server configuration error"}
    provider.create_refund.assert_not_called()


@pytest.mark.parametrize("payload", [
    {"amount": 100, "orderId": "ORD-1"},
    {"paymentIntentId": "pi_1", "orderId": "ORD-1"},
    {"paymentIntentId": "pi_1", "amount": 100},
    {"paymentIntentId": "pi_1", "amount": 0, "orderId": "ORD-1"},
    {"paymentIntentId": "", "amount": 100, "orderId": "ORD-1"},
    {},
    None,
    ["pi_1", 100, "ORD-1"],
])
def test_missing_fields_are_a_bad_request(handler, provider, payload):
    result = handler.handle(payload, secret_header=SECRET)
    assert result.status_code == 400
    assert result.body == {"error": MISSING_FIELDS_MESSAGE}
    provider.create_refund.assert_not_called()


@pytest.mark.parametrize("amount", ["100", True, -5, float("inf"), float("-inf"), float("nan")])
def test_malformed_amounts_are_a_bad_request(handler, provider, amount):
    result = handler.handle({**VALID_PAYLOAD, "amount": amount}, secret_header=SECRET)
    assert result.status_code == 400
    provider.create_refund.assert_not_called()


def test_authorization_is_checked_before_payload(handler):
    result = handler.handle({}, secret_header="wrong")
    assert result.status_code == 401


def test_provider_error_is_passed_through_with_its_status_and_code(handler, provider):
    provider.create_refund.side_effect = PaymentProviderError(
        "Charge ch_1 has already been refunded.", code="charge_already_refunded", status_code=402,
    )
    result = handler.handle(VALID_PAYLOAD, secret_header=SECRET)
    assert result.status_code == 402
    assert result.body == {
        "error": "Stripe API Error",
        "message": "Charge ch_1 has already been refunded.",
        "code": "charge_already_refunded",
    }
    assert provider.create_refund.call_count == 1


def test_provider_error_without_status_falls_back_to_500(handler, provider):
    provider.create_refund.side_effect = PaymentProviderError("unreachable", code="api_connection_error")
    result = handler.handle(VALID_PAYLOAD, secret_header=SECRET)
    assert result.status_code == 500
    assert result.body["error"] == "Stripe API Error"


def test_missing_provider_key_is_a_configuration_error(handler, provider):
    provider.create_refund.side_effect = ConfigurationError("STRIPE_SECRET_KEY is not configured")
    result = handler.handle(VALID_PAYLOAD, secret_header=SECRET)
    assert result.status_code == 500
    assert result.body == {"error": "Server configuration error"}


def test_unexpected_errors_are_not_leaked(handler, provider):
    provider.create_refund.side_effect = RuntimeError("db password is hunter2")
    result = handler.handle(VALID_PAYLOAD, secret_header=SECRET)
    assert result.status_code == 500
    assert result.body == {"error": "Internal server error"}


def test_every_exit_is_logged_with_the_trace_id(handler, provider, caplog):
    caplog.set_level(logging.INFO, logger="order_lifecycle.refund")
    handler.handle(VALID_PAYLOAD, secret_header="wrong", trace_id="trace-unauth")
    handler.handle(VALID_PAYLOAD, secret_header=SECRET, trace_id="trace-ok")

    messages = [record.getMessage() for record in caplog.records]
    assert any("[Trace: trace-unauth]" in m and "Unauthorized" in m for m in messages)
    assert any("[Trace: trace-ok]" in m and "received" in m for m in messages)
    assert any("[Trace: trace-ok]" in m and "re_test_123" in m for m in messages)


@pytest.mark.parametrize("amount, expected", [
    (100, 10000),
    (19.99, 1999),
    (0.1, 10),
    (1.005, 101),
    (44.99, 4499),
    (0.015, 2),
])
def test_to_minor_units_rounds_to_nearest_minor_unit(amount, expected):
    assert to_minor_units(amount) == expected


@pytest.mark.parametrize("amount", [float("inf"), float("nan"), "abc"])
def test_to_minor_units_rejects_non_finite_amounts(amount):
    with pytest.raises(PayloadValidationError):
        to_minor_units(amount)


def test_very_large_integer_amounts_are_converted_exactly(handler, provider):
    result = handler.handle({**VALID_PAYLOAD, "amount": 10 ** 30}, secret_header=SECRET)
    assert result.status_code == 200
    assert provider.create_refund.call_args.kwargs["amount_minor"] == 10 ** 32
