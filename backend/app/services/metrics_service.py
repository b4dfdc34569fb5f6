r"""backend\app\services\metrics_service.py

Descriptive, trend, outlier and seasonality statistics for product series.

The helpers are kept top-level so each statistic can be unit tested on its
own; :func:`compute_metrics` stitches them together for one series.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..core.constants import (
    OUTLIER_Z_THRESHOLD,
    PERIODS_PER_MONTH,
    PERIODS_PER_WEEK,
    SEASONALITY_MIN_INDEX_VARIANCE,
    SEASONALITY_MIN_PERIODS,
    TREND_MIN_NORMALIZED_SLOPE,
    TREND_MIN_R_SQUARED,
)
from ..models.schemas import (
    AggregatedPeriod,
    AggregationPeriod,
    OutlierPoint,
    ProductMetrics,
    ProductSeries,
    TrendDirection,
)

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Descriptive statistics


def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def variance(values: Sequence[float]) -> float:
    """Sample variance (divides by ``n - 1``); 0 for fewer than two values."""

    if len(values) < 2:
        return 0.0
    return float(np.var(np.asarray(values, dtype=float), ddof=1))


def std_deviation(values: Sequence[float]) -> float:
    return float(np.sqrt(variance(values)))


def median(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.median(np.sort(np.asarray(values, dtype=float))))


def coefficient_of_variation(values: Sequence[float]) -> float:
    avg = mean(values)
    if avg == 0:
        return 0.0
    return std_deviation(values) / avg


def z_score(value: float, avg: float, std: float) -> float:
    if std == 0:
        return 0.0
    return (value - avg) / std


# ---------------------------------------------------------------------------
# Linear regression


@dataclass(frozen=True, slots=True)
class RegressionResult:
    """Ordinary least squares fit of quantity against bucket index."""

    slope: float
    intercept: float
    r_squared: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def linear_regression(values: Sequence[float]) -> RegressionResult:
    """Fit ``y = slope * x + intercept`` with ``x = 0, 1, 2, ...``.

    A series with fewer than two points degenerates to a flat line through
    its only value (or zero) with an R² of 0. R² is clamped to be
    non-negative.
    """

    n = len(values)
    if n < 2:
        only = float(values[0]) if n == 1 else 0.0
        return RegressionResult(slope=0.0, intercept=only, r_squared=0.0)

    y = np.asarray(values, dtype=float)
    x = np.arange(n, dtype=float)
    x_diff = x - x.mean()
    y_diff = y - y.mean()

    denominator = float(np.sum(x_diff * x_diff))
    slope = float(np.sum(x_diff * y_diff)) / denominator if denominator != 0 else 0.0
    intercept = float(y.mean()) - slope * float(x.mean())

    residuals = y - (slope * x + intercept)
    ss_res = float(np.sum(residuals * residuals))
    ss_tot = float(np.sum(y_diff * y_diff))
    r_squared = 1.0 - ss_res / ss_tot if ss_tot != 0 else 0.0

    return RegressionResult(slope=slope, intercept=intercept, r_squared=max(0.0, r_squared))


def determine_trend(slope: float, r_squared: float, avg_value: float) -> TrendDirection:
    """Classify a fitted slope as increasing, decreasing or stable.

    Both the fit quality (R² above 0.10) and the slope relative to the mean
    (more than 2% per bucket) must be significant; otherwise the series is
    reported as stable.
    """

    normalized_slope = slope / avg_value if avg_value != 0 else 0.0
    significant_r_squared = r_squared > TREND_MIN_R_SQUARED
    significant_slope = abs(normalized_slope) > TREND_MIN_NORMALIZED_SLOPE
    if not significant_r_squared or not significant_slope:
        return "stable"
    return "increasing" if slope > 0 else "decreasing"


# ---------------------------------------------------------------------------
# Outliers and seasonality


def detect_outliers(
    periods: Sequence[AggregatedPeriod],
    z_threshold: float = OUTLIER_Z_THRESHOLD,
) -> List[OutlierPoint]:
    """Flag buckets whose z-score against the whole series exceeds the threshold."""

    quantities = [period.total_quantity for period in periods]
    avg = mean(quantities)
    std = std_deviation(quantities)
    if std == 0:
        return []

    outliers: List[OutlierPoint] = []
    for period in periods:
        z = z_score(period.total_quantity, avg, std)
        if abs(z) > z_threshold:
            outliers.append(
                OutlierPoint(
                    period_start=period.period_start,
                    period_label=period.period_label,
                    quantity=period.total_quantity,
                    z_score=z,
                    kind="spike" if z > 0 else "drop",
                )
            )
    return outliers


def detect_seasonality(
    period_starts: Sequence[date],
    quantities: Sequence[float],
) -> Optional[List[float]]:
    """Return twelve monthly seasonal indices, or ``None`` when not meaningful.

    Requires at least twelve buckets with data in every calendar month. The
    index of a month is its average divided by the average of all monthly
    averages; indices whose variance is below 0.01 are rejected as flat.
    """

    if len(quantities) < SEASONALITY_MIN_PERIODS:
        return None

    by_month: List[List[float]] = [[] for _ in range(12)]
    for start, quantity in zip(period_starts, quantities):
        by_month[start.month - 1].append(float(quantity))

    if any(len(month) == 0 for month in by_month):
        return None

    monthly_averages = [mean(month) for month in by_month]
    overall_average = mean(monthly_averages)
    if overall_average == 0:
        return None

    indices = [avg / overall_average for avg in monthly_averages]
    if variance(indices) < SEASONALITY_MIN_INDEX_VARIANCE:
        return None
    return indices


# ---------------------------------------------------------------------------
# Metrics bundle


def compute_metrics(series: ProductSeries, period: AggregationPeriod) -> ProductMetrics:
    """Compute the full :class:`ProductMetrics` bundle for one series.

    Raises
    ------
    ValueError
        If the series contains no buckets.
    """

    if not series.data:
        raise ValueError(f"series for product '{series.product_id}' has no periods")

    period = AggregationPeriod(period)
    quantities = series.quantities
    avg_quantity = mean(quantities)
    periods_per_week = PERIODS_PER_WEEK[period]
    periods_per_month = PERIODS_PER_MONTH[period]

    regression = linear_regression(quantities)
    trend = determine_trend(regression.slope, regression.r_squared, avg_quantity)

    seasonality = None
    if period is AggregationPeriod.MONTHLY:
        seasonality = detect_seasonality([p.period_start for p in series.data], quantities)

    return ProductMetrics(
        product_id=series.product_id,
        product_name=series.product_name,
        avg_daily_demand=avg_quantity / (7 / periods_per_week),
        avg_weekly_demand=avg_quantity * periods_per_week,
        avg_monthly_demand=avg_quantity * periods_per_month,
        variance=variance(quantities),
        std_deviation=std_deviation(quantities),
        coefficient_of_variation=coefficient_of_variation(quantities),
        trend=trend,
        trend_slope=regression.slope,
        trend_strength=min(regression.r_squared, 1.0),
        seasonality_index=seasonality,
        outliers=detect_outliers(series.data),
        min_demand=float(min(quantities)),
        max_demand=float(max(quantities)),
        median_demand=median(quantities),
    )


def compute_all_metrics(
    aggregated: Dict[str, ProductSeries],
    period: AggregationPeriod,
) -> Dict[str, ProductMetrics]:
    """Compute metrics for every non-empty series, keyed by product id."""

    metrics: Dict[str, ProductMetrics] = {}
    for product_id in sorted(aggregated):
        series = aggregated[product_id]
        if not series.data:
            continue
        metrics[product_id] = compute_metrics(series, period)
    LOGGER.debug("Computed metrics for %d products", len(metrics))
    return metrics
