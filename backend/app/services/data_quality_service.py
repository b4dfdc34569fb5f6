r"""backend\app\services\data_quality_service.py"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, List

from ..core.constants import (
    LARGE_ORDER_FACTOR,
    MIN_SPAN_DAYS,
    SPARSE_DATE_COVERAGE,
    SPARSE_SPAN_DAYS,
)
from ..models.schemas import DataQualityReport, OrderRecord, QualityCheck


def check_orders(orders: Iterable[OrderRecord]) -> DataQualityReport:
    """Run advisory data-quality checks over an already validated order list."""

    orders = list(orders)
    checks: List[QualityCheck] = []
    issues: List[str] = []

    def add(name: str, ok: bool, issue: str = "") -> None:
        checks.append(QualityCheck(name=name, ok=bool(ok), message="" if ok else issue))
        if not ok:
            issues.append(issue)

    if not orders:
        add("has_records", False, "No order records found")
        return DataQualityReport(ok=False, checks=checks, issues=issues)
    add("has_records", True)

    seen = Counter((order.date, order.product_id, order.quantity) for order in orders)
    duplicates = sum(1 for count in seen.values() if count > 1)
    add("no_duplicates", duplicates == 0, f"Found {duplicates} potential duplicate records")

    avg_quantity = sum(order.quantity for order in orders) / len(orders)
    large = sum(1 for order in orders if order.quantity > avg_quantity * LARGE_ORDER_FACTOR)
    add("no_large_orders", large == 0, f"Found {large} orders with unusually large quantities")

    zeros = sum(1 for order in orders if order.quantity == 0)
    add("no_zero_quantities", zeros == 0, f"Found {zeros} orders with zero quantity")

    dates = [order.date for order in orders]
    span_days = (max(dates) - min(dates)).days
    add(
        "sufficient_span",
        span_days >= MIN_SPAN_DAYS,
        f"Data spans less than {MIN_SPAN_DAYS} days - projections may be less accurate",
    )

    distinct_days = len(set(dates))
    sparse = span_days > SPARSE_SPAN_DAYS and distinct_days < span_days * SPARSE_DATE_COVERAGE
    add("dense_dates", not sparse, "Significant gaps found in order dates")

    return DataQualityReport(ok=not issues, checks=checks, issues=issues)
