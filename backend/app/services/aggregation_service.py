r"""backend\app\services\aggregation_service.py

Bucket raw order records into dense per-product time series.

Every product gets one bucket per period between the bucket of its first
order and the bucket of its last order, including periods without any
orders, so that the trend and seasonality maths downstream always sees an
evenly spaced series.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Sequence

import pandas as pd

from ..core.constants import PANDAS_FREQUENCY
from ..models.schemas import (
    AggregatedPeriod,
    AggregationPeriod,
    DataSummary,
    DateRange,
    OrderRecord,
    ProductSeries,
)

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Period helpers


def _as_date(value: date | datetime | pd.Timestamp) -> date:
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    return value


def period_start_for(value: date, period: AggregationPeriod) -> date:
    """Return the first day of the bucket containing ``value``.

    Daily buckets start on the day itself, weekly buckets on the Monday of
    the ISO week and monthly buckets on the first of the month.
    """

    day = _as_date(value)
    period = AggregationPeriod(period)
    if period is AggregationPeriod.WEEKLY:
        return day - timedelta(days=day.weekday())
    if period is AggregationPeriod.MONTHLY:
        return day.replace(day=1)
    return day


def format_period_label(start: date, period: AggregationPeriod) -> str:
    """Human readable label for the bucket beginning at ``start``."""

    period = AggregationPeriod(period)
    if period is AggregationPeriod.WEEKLY:
        end = start + timedelta(days=6)
        return f"{start:%b} {start.day} - {end:%b} {end.day}, {end.year}"
    if period is AggregationPeriod.MONTHLY:
        return f"{start:%B} {start.year}"
    return f"{start:%b} {start.day}, {start.year}"


def generate_periods(start: date, end: date, period: AggregationPeriod) -> List[date]:
    """Return every bucket start from the bucket of ``start`` to that of ``end``."""

    period = AggregationPeriod(period)
    first = period_start_for(start, period)
    last = period_start_for(end, period)
    if last < first:
        return []
    stamps = pd.date_range(first, last, freq=PANDAS_FREQUENCY[period])
    return [stamp.date() for stamp in stamps]


def generate_future_periods(last_date: date, count: int, period: AggregationPeriod) -> List[date]:
    """Return the ``count`` bucket starts following the bucket of ``last_date``."""

    if count <= 0:
        return []
    period = AggregationPeriod(period)
    anchor = period_start_for(last_date, period)
    stamps = pd.date_range(anchor, periods=count + 1, freq=PANDAS_FREQUENCY[period])
    return [stamp.date() for stamp in stamps[1:]]


# ---------------------------------------------------------------------------
# Aggregation


def _orders_frame(orders: Sequence[OrderRecord], period: AggregationPeriod) -> pd.DataFrame:
    frame = pd.DataFrame(
        {
            "product_id": [order.product_id for order in orders],
            "product_name": [order.product_name for order in orders],
            "category": [order.category for order in orders],
            "date": [_as_date(order.date) for order in orders],
            "quantity": [float(order.quantity) for order in orders],
        }
    )
    frame["period_start"] = [period_start_for(day, period) for day in frame["date"]]
    return frame


def _build_series(
    product_id: str,
    product_orders: pd.DataFrame,
    period: AggregationPeriod,
) -> ProductSeries:
    product_name = str(product_orders["product_name"].iloc[0])
    categories = product_orders["category"].dropna()
    category = str(categories.iloc[0]) if not categories.empty else None

    first_order = min(product_orders["date"])
    last_order = max(product_orders["date"])
    buckets = generate_periods(first_order, last_order, period)

    # Fold orders into the pre-generated zero buckets
    totals = (
        product_orders.groupby("period_start", sort=False)["quantity"]
        .agg(["sum", "count"])
        .reindex(buckets, fill_value=0)
    )

    data: List[AggregatedPeriod] = []
    for start in buckets:
        total_quantity = float(totals.at[start, "sum"])
        order_count = int(totals.at[start, "count"])
        data.append(
            AggregatedPeriod(
                period_start=start,
                period_label=format_period_label(start, period),
                product_id=product_id,
                product_name=product_name,
                total_quantity=total_quantity,
                order_count=order_count,
                avg_quantity_per_order=total_quantity / order_count if order_count > 0 else 0.0,
            )
        )

    return ProductSeries(
        product_id=product_id,
        product_name=product_name,
        category=category,
        data=data,
        total_orders=int(len(product_orders)),
        total_quantity=float(product_orders["quantity"].sum()),
        first_order_date=first_order,
        last_order_date=last_order,
    )


def aggregate(
    orders: Sequence[OrderRecord],
    period: AggregationPeriod = AggregationPeriod.WEEKLY,
) -> Dict[str, ProductSeries]:
    """Aggregate orders into one dense bucket series per product.

    Parameters
    ----------
    orders:
        Validated order records; the list is not modified.
    period:
        Bucket width used for every product.

    Returns
    -------
    Mapping of ``product_id`` to :class:`ProductSeries`, keyed in ascending
    product id order. An empty order list yields an empty mapping.
    """

    period = AggregationPeriod(period)
    if not orders:
        return {}

    frame = _orders_frame(orders, period)
    result: Dict[str, ProductSeries] = {}
    for product_id, product_orders in frame.groupby("product_id", sort=True):
        series = _build_series(str(product_id), product_orders, period)
        result[series.product_id] = series

    LOGGER.debug(
        "Aggregated %d orders into %d product series (period=%s)",
        len(orders),
        len(result),
        period.value,
    )
    return result


def get_product_series(
    aggregated: Dict[str, ProductSeries],
    product_id: str,
) -> ProductSeries | None:
    return aggregated.get(product_id)


# ---------------------------------------------------------------------------
# Summary


def summarize_orders(orders: Iterable[OrderRecord]) -> DataSummary:
    """Return headline figures for an order list."""

    orders = list(orders)
    if not orders:
        return DataSummary(total_records=0, total_products=0, total_quantity=0.0)

    dates = [_as_date(order.date) for order in orders]
    return DataSummary(
        total_records=len(orders),
        total_products=len({order.product_id for order in orders}),
        total_quantity=float(sum(order.quantity for order in orders)),
        date_range=DateRange(start=min(dates), end=max(dates)),
        categories=sorted({order.category for order in orders if order.category}),
        suppliers=sorted({order.supplier for order in orders if order.supplier}),
    )
