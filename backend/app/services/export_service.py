r"""backend\app\services\export_service.py

Tabular views of projections for exporters and reports.

Nothing here touches the filesystem: frames and CSV text are returned to
the caller, who decides where (and whether) to store them.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

import pandas as pd

from ..models.schemas import ProductProjection

SUMMARY_BASE_COLUMNS = ["product_id", "product_name", "category"]
SUMMARY_METRIC_COLUMNS = ["avg_daily_demand", "avg_weekly_demand", "trend"]
SUMMARY_PROJECTION_COLUMNS = [
    "projected_demand",
    "suggested_reorder_qty",
    "safety_stock",
    "confidence_level",
    "confidence_low",
    "confidence_high",
]
POINT_COLUMNS = [
    "product_id",
    "product_name",
    "period_start",
    "period",
    "type",
    "demand",
    "confidence_low",
    "confidence_high",
]


def _mean_bound(values: List[float]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def projections_to_frame(
    projections: Iterable[ProductProjection],
    include_metrics: bool = True,
    include_projections: bool = True,
) -> pd.DataFrame:
    """Return one summary row per product."""

    columns = list(SUMMARY_BASE_COLUMNS)
    if include_metrics:
        columns += SUMMARY_METRIC_COLUMNS
    if include_projections:
        columns += SUMMARY_PROJECTION_COLUMNS

    rows: List[Dict[str, Any]] = []
    for projection in projections:
        row: Dict[str, Any] = {
            "product_id": projection.product_id,
            "product_name": projection.product_name,
            "category": projection.category,
        }
        if include_metrics:
            row["avg_daily_demand"] = round(projection.metrics.avg_daily_demand, 2)
            row["avg_weekly_demand"] = round(projection.metrics.avg_weekly_demand, 2)
            row["trend"] = projection.metrics.trend
        if include_projections:
            row["projected_demand"] = projection.total_projected_demand
            row["suggested_reorder_qty"] = projection.suggested_reorder_qty
            row["safety_stock"] = projection.safety_stock
            row["confidence_level"] = projection.confidence_level
            row["confidence_low"] = _mean_bound([p.confidence_low for p in projection.projected_data])
            row["confidence_high"] = _mean_bound([p.confidence_high for p in projection.projected_data])
        rows.append(row)

    return pd.DataFrame(rows, columns=columns)


def points_to_frame(projections: Iterable[ProductProjection]) -> pd.DataFrame:
    """Return the long table of historical and forecast points."""

    rows: List[Dict[str, Any]] = []
    for projection in projections:
        for point in [*projection.historical_data, *projection.projected_data]:
            rows.append(
                {
                    "product_id": projection.product_id,
                    "product_name": projection.product_name,
                    "period_start": point.period_start,
                    "period": point.period_label,
                    "type": "projected" if point.is_forecast else "historical",
                    "demand": point.demand,
                    "confidence_low": point.confidence_low if point.is_forecast else None,
                    "confidence_high": point.confidence_high if point.is_forecast else None,
                }
            )
    return pd.DataFrame(rows, columns=POINT_COLUMNS)


def projections_to_csv(
    projections: Iterable[ProductProjection],
    include_metrics: bool = True,
    include_projections: bool = True,
) -> str:
    """Render the summary frame as CSV text; empty input gives an empty string."""

    frame = projections_to_frame(projections, include_metrics, include_projections)
    if frame.empty:
        return ""
    return frame.to_csv(index=False)
