from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.models.schemas import AggregationPeriod, OrderRecord
from backend.app.services.aggregation_service import (
    aggregate,
    format_period_label,
    generate_future_periods,
    generate_periods,
    period_start_for,
    summarize_orders,
)


def _order(day: date, product_id: str = "P1", quantity: float = 1.0, **extra: object) -> OrderRecord:
    return OrderRecord(
        date=day,
        product_id=product_id,
        product_name=extra.pop("product_name", f"Product {product_id}"),
        quantity=quantity,
        **extra,
    )


def _sample_orders() -> list[OrderRecord]:
    return [
        _order(date(2024, 1, 3), "P1", 5),
        _order(date(2024, 1, 4), "P1", 3),
        _order(date(2024, 1, 25), "P1", 8),
        _order(date(2024, 2, 14), "P1", 2),
        _order(date(2024, 1, 10), "P2", 4),
        _order(date(2024, 3, 28), "P2", 6),
    ]


def test_empty_order_list_yields_empty_mapping() -> None:
    assert aggregate([], AggregationPeriod.WEEKLY) == {}


def test_period_start_for_each_width() -> None:
    sunday = date(2024, 1, 7)
    assert period_start_for(sunday, AggregationPeriod.DAILY) == sunday
    assert period_start_for(sunday, AggregationPeriod.WEEKLY) == date(2024, 1, 1)
    assert period_start_for(date(2024, 1, 1), AggregationPeriod.WEEKLY) == date(2024, 1, 1)
    assert period_start_for(date(2024, 2, 29), AggregationPeriod.MONTHLY) == date(2024, 2, 1)


def test_weekly_series_is_dense_and_contiguous() -> None:
    result = aggregate(_sample_orders(), AggregationPeriod.WEEKLY)

    for series in result.values():
        starts = [bucket.period_start for bucket in series.data]
        assert starts == sorted(starts)
        for previous, current in zip(starts, starts[1:]):
            assert current - previous == timedelta(days=7)
        assert all(start.weekday() == 0 for start in starts)

    p1 = result["P1"]
    assert p1.data[0].period_start == date(2024, 1, 1)
    assert p1.data[-1].period_start == date(2024, 2, 12)
    assert len(p1.data) == 7
    assert [bucket.total_quantity for bucket in p1.data] == [8, 0, 0, 8, 0, 0, 2]


def test_monthly_series_spans_every_month() -> None:
    result = aggregate(_sample_orders(), AggregationPeriod.MONTHLY)

    p2 = result["P2"]
    assert [bucket.period_start for bucket in p2.data] == [
        date(2024, 1, 1),
        date(2024, 2, 1),
        date(2024, 3, 1),
    ]
    assert [bucket.order_count for bucket in p2.data] == [1, 0, 1]


def test_quantity_is_conserved_per_product() -> None:
    orders = _sample_orders()
    for period in AggregationPeriod:
        result = aggregate(orders, period)
        for product_id, series in result.items():
            expected = sum(order.quantity for order in orders if order.product_id == product_id)
            assert sum(bucket.total_quantity for bucket in series.data) == expected
            assert series.total_quantity == expected
            assert series.total_orders == sum(1 for o in orders if o.product_id == product_id)


def test_average_per_order_is_computed_after_folding() -> None:
    result = aggregate(_sample_orders(), AggregationPeriod.WEEKLY)
    first, empty = result["P1"].data[0], result["P1"].data[1]

    assert first.order_count == 2
    assert first.avg_quantity_per_order == 4.0
    assert empty.order_count == 0
    assert empty.avg_quantity_per_order == 0.0


def test_single_order_yields_single_bucket() -> None:
    result = aggregate([_order(date(2024, 5, 5), "SOLO", 9)], AggregationPeriod.DAILY)

    series = result["SOLO"]
    assert len(series.data) == 1
    assert series.first_order_date == series.last_order_date == date(2024, 5, 5)


def test_series_metadata_uses_first_seen_values() -> None:
    orders = [
        _order(date(2024, 1, 2), "P9", 1, product_name="Widget"),
        _order(date(2024, 1, 3), "P9", 1, product_name="Widget v2", category="Tools"),
        _order(date(2024, 1, 1), "P9", 1, product_name="Widget", category="Other"),
    ]

    series = aggregate(orders, AggregationPeriod.DAILY)["P9"]

    assert series.product_name == "Widget"
    assert series.category == "Tools"
    assert series.first_order_date == date(2024, 1, 1)
    assert series.last_order_date == date(2024, 1, 3)


def test_aggregation_is_idempotent() -> None:
    orders = _sample_orders()
    assert aggregate(orders, AggregationPeriod.WEEKLY) == aggregate(orders, AggregationPeriod.WEEKLY)
    assert list(aggregate(orders, AggregationPeriod.WEEKLY)) == ["P1", "P2"]


def test_period_labels() -> None:
    assert format_period_label(date(2024, 1, 5), AggregationPeriod.DAILY) == "Jan 5, 2024"
    assert format_period_label(date(2024, 1, 1), AggregationPeriod.WEEKLY) == "Jan 1 - Jan 7, 2024"
    assert format_period_label(date(2024, 12, 30), AggregationPeriod.WEEKLY) == "Dec 30 - Jan 5, 2025"
    assert format_period_label(date(2024, 3, 1), AggregationPeriod.MONTHLY) == "March 2024"


def test_generate_periods_and_future_periods() -> None:
    assert generate_periods(date(2024, 1, 30), date(2024, 2, 2), AggregationPeriod.DAILY) == [
        date(2024, 1, 30),
        date(2024, 1, 31),
        date(2024, 2, 1),
        date(2024, 2, 2),
    ]
    assert generate_future_periods(date(2024, 1, 31), 2, AggregationPeriod.MONTHLY) == [
        date(2024, 2, 1),
        date(2024, 3, 1),
    ]
    assert generate_future_periods(date(2024, 1, 10), 1, AggregationPeriod.WEEKLY) == [date(2024, 1, 15)]
    assert generate_future_periods(date(2024, 1, 10), 0, AggregationPeriod.WEEKLY) == []


def test_summarize_orders() -> None:
    orders = _sample_orders() + [
        _order(date(2023, 12, 31), "P3", 1, category="Tools", supplier="Acme"),
        _order(date(2024, 4, 1), "P3", 1, category="Garden", supplier="Acme"),
    ]

    summary = summarize_orders(orders)

    assert summary.total_records == 8
    assert summary.total_products == 3
    assert summary.total_quantity == 30
    assert summary.date_range.start == date(2023, 12, 31)
    assert summary.date_range.end == date(2024, 4, 1)
    assert summary.categories == ["Garden", "Tools"]
    assert summary.suppliers == ["Acme"]

    empty = summarize_orders([])
    assert empty.total_records == 0
    assert empty.date_range is None
