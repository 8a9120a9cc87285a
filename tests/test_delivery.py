from datetime import date, datetime, timezone

import pytest

from order_lifecycle.delivery import (
    DeliveryRange,
    EstimateStatus,
    calculate_delivery_range,
    delivery_estimate,
    format_delivered_date,
    format_delivery_range,
    order_delivery_estimate,
)
from order_lifecycle.models import Order


def test_range_starts_three_and_ends_four_days_after_shipping():
    delivery_range = calculate_delivery_range(datetime(2025, 11, 20, 10, 0, tzinfo=timezone.utc))
    assert delivery_range == DeliveryRange(date(2025, 11, 23), date(2025, 11, 24))


def test_range_crosses_month_and_year_boundaries():
    assert calculate_delivery_range(date(2025, 11, 28)) == DeliveryRange(date(2025, 12, 1), date(2025, 12, 2))
    assert calculate_delivery_range(date(2025, 12, 29)).max_date == date(2026, 1, 2)


@pytest.mark.parametrize("low, high, expected", [
    (date(2025, 11, 24), date(2025, 11, 24), "24 nov 2025"),
    (date(2025, 11, 24), date(2025, 11, 25), "24-25 nov 2025"),
    (date(2025, 11, 30), date(2025, 12, 1), "30 nov - 1 dic 2025"),
    (date(2025, 12, 31), date(2026, 1, 1), "31 dic 2025 - 1 ene 2026"),
])
def test_format_delivery_range(low, high, expected):
    assert format_delivery_range(DeliveryRange(low, high)) == expected


def test_format_delivered_date():
    assert format_delivered_date(datetime(2025, 9, 4, 14, 30)) == "4 sept 2025"


def test_shipped_order_gets_an_estimated_window():
    estimate = delivery_estimate(shipped_at=date(2025, 11, 20))
    assert estimate.status == EstimateStatus.ESTIMATED
    assert estimate.formatted_text == "23-24 nov 2025"


def test_delivered_order_shows_the_exact_date():
    estimate = delivery_estimate(shipped_at=date(2025, 11, 20), delivered_at=date(2025, 11, 24))
    assert estimate.status == EstimateStatus.DELIVERED
    assert estimate.formatted_text == "24 nov 2025"
    assert estimate.range.min_date == estimate.range.max_date


def test_no_estimate_before_shipping():
    assert delivery_estimate() is None


def test_order_estimate_reads_dates_from_history():
    order = Order.model_validate({
        "orderId": "ORD-1",
        "orderStatus": "shipped",
        "statusHistory": [
            {"status": "paid", "date": "2025-11-18T10:00:00Z"},
            {"status": "shipped", "date": "2025-11-20T10:00:00Z"},
        ],
    })
    assert order_delivery_estimate(order).to_dict() == {
        "status": "estimated",
        "formattedText": "23-24 nov 2025",
        "minDate": "2025-11-23",
        "maxDate": "2025-11-24",
    }


def test_order_without_history_has_no_estimate():
    assert order_delivery_estimate(Order(orderId="ORD-1", orderStatus="delivered")) is None
