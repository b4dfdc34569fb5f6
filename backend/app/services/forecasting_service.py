r"""backend\app\services\forecasting_service.py

Demand projections with confidence bounds and reorder recommendations.

Three interchangeable methods turn a product's bucketed history into a
forecast over the configured horizon:

* ``sma`` - simple moving average over the last ``periods`` buckets;
* ``wma`` - linearly weighted moving average over the same window;
* ``linear_regression`` - the OLS trend line extrapolated forward, with
  prediction intervals that widen with the distance from the fitted data.

Intervals use a tabulated Student-t critical value. Inventory figures
(safety stock, reorder point, suggested order) are derived from the
forecast and from the product's average daily demand. All arithmetic runs
on unrounded values; rounding to two decimals happens only when output
points and totals are built.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.constants import (
    DEFAULT_HORIZON_PERIODS,
    METHOD_DISPLAY_NAMES,
    PERIODS_PER_MONTH,
    PERIODS_PER_WEEK,
    T_CRITICAL,
)
from ..models.schemas import (
    AggregationPeriod,
    ForecastConfig,
    ForecastMethod,
    OrderRecord,
    ProductMetrics,
    ProductProjection,
    ProductSeries,
    ProjectionPoint,
)
from .aggregation_service import aggregate, format_period_label, generate_future_periods
from .metrics_service import compute_all_metrics, linear_regression, mean, std_deviation

LOGGER = logging.getLogger(__name__)

_TIMEFRAME_PATTERN = re.compile(r"^\s*(\d+)[\s_-]*(week|month)s?\s*$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Helper utilities (kept top-level for straightforward unit testing)


def _round2(value: float) -> float:
    return round(value, 2)


def _ceil(value: float) -> int:
    # absorb binary noise such as 3.0000000000000004 before taking the ceiling
    return int(math.ceil(round(value, 9)))


def _parse_timeframe(timeframe: str) -> Optional[Tuple[int, str]]:
    match = _TIMEFRAME_PATTERN.match(timeframe or "")
    if match is None:
        return None
    return int(match.group(1)), match.group(2).lower()


def timeframe_to_periods(timeframe: str, period: AggregationPeriod) -> int:
    """Convert a horizon such as ``"4_weeks"`` or ``"2 months"`` into buckets.

    Unknown timeframes fall back to a horizon of four buckets.
    """

    parsed = _parse_timeframe(timeframe)
    if parsed is None:
        LOGGER.debug("Unrecognised timeframe %r; using %d periods", timeframe, DEFAULT_HORIZON_PERIODS)
        return DEFAULT_HORIZON_PERIODS

    count, unit = parsed
    period = AggregationPeriod(period)
    rate = PERIODS_PER_WEEK[period] if unit == "week" else PERIODS_PER_MONTH[period]
    return _ceil(count * rate)


def timeframe_display_name(timeframe: str) -> str:
    parsed = _parse_timeframe(timeframe)
    if parsed is None:
        return timeframe
    count, unit = parsed
    label = unit.capitalize() if count == 1 else f"{unit.capitalize()}s"
    return f"{count} {label}"


def method_display_name(method: ForecastMethod | str) -> str:
    return METHOD_DISPLAY_NAMES[ForecastMethod(method).value]


def t_critical(confidence_level: float, degrees_of_freedom: float) -> float:
    """Look up the two-sided Student-t critical value.

    The confidence level resolves to the smallest tabulated level that is at
    least the requested one (the highest level when above the table). The
    value is read from the first degrees-of-freedom breakpoint that is not
    below ``degrees_of_freedom``.
    """

    levels = sorted(T_CRITICAL)
    requested = round(float(confidence_level), 6)
    level = next((candidate for candidate in levels if requested <= candidate), levels[-1])

    table = T_CRITICAL[level]
    for breakpoint, value in table:
        if degrees_of_freedom <= breakpoint:
            return value
    return table[-1][1]


def confidence_interval(
    forecast: float,
    standard_error: float,
    sample_size: int,
    confidence_level: float,
) -> Tuple[float, float]:
    """Return ``(low, high)`` bounds; the low bound is floored at zero."""

    degrees_of_freedom = max(1, sample_size - 1)
    margin = t_critical(confidence_level, degrees_of_freedom) * standard_error
    return max(0.0, forecast - margin), forecast + margin


# ---------------------------------------------------------------------------
# Forecasting methods


@dataclass(frozen=True, slots=True)
class MovingAverageEstimate:
    forecast: float
    standard_error: float


@dataclass(frozen=True, slots=True)
class RegressionForecast:
    forecasts: List[float]
    standard_errors: List[float]
    r_squared: float


def simple_moving_average(values: Sequence[float], periods: int) -> MovingAverageEstimate:
    """Mean of the last ``min(periods, n)`` values with its standard error."""

    if len(values) == 0:
        return MovingAverageEstimate(forecast=0.0, standard_error=0.0)

    size = min(periods, len(values))
    window = list(values[-size:])
    return MovingAverageEstimate(
        forecast=mean(window),
        standard_error=std_deviation(window) / math.sqrt(size),
    )


def weighted_moving_average(values: Sequence[float], periods: int) -> MovingAverageEstimate:
    """Linearly weighted mean (weights ``1..n``, newest heaviest).

    The standard error is the square root of the weighted variance around
    the forecast divided by the square root of the window size, not of the
    weight total. Existing intervals depend on that scaling, so it is kept.
    """

    if len(values) == 0:
        return MovingAverageEstimate(forecast=0.0, standard_error=0.0)

    size = min(periods, len(values))
    window = list(values[-size:])
    weights = list(range(1, size + 1))
    total_weight = float(sum(weights))

    forecast = sum(value * weight for value, weight in zip(window, weights)) / total_weight
    weighted_variance = (
        sum(weight * (value - forecast) ** 2 for value, weight in zip(window, weights)) / total_weight
    )
    return MovingAverageEstimate(
        forecast=forecast,
        standard_error=math.sqrt(weighted_variance) / math.sqrt(size),
    )


def linear_regression_forecast(values: Sequence[float], periods_ahead: int) -> RegressionForecast:
    """Extrapolate the OLS trend ``periods_ahead`` buckets past the history.

    Each forecast is floored at zero. The standard error of the prediction at
    index ``x`` is ``s * sqrt(1 + 1/n + (x - x_mean)^2 / Sxx)`` where ``s``
    is the residual standard error of the fit.
    """

    n = len(values)
    if n < 2:
        last = float(values[0]) if n == 1 else 0.0
        return RegressionForecast(
            forecasts=[last] * periods_ahead,
            standard_errors=[0.0] * periods_ahead,
            r_squared=0.0,
        )

    regression = linear_regression(values)
    residual_ss = sum((value - regression.predict(i)) ** 2 for i, value in enumerate(values))
    # two points leave no residual degrees of freedom; the fit is exact
    residual_std_error = math.sqrt(residual_ss / (n - 2)) if n > 2 else 0.0

    x_mean = (n - 1) / 2
    sxx = sum((i - x_mean) ** 2 for i in range(n))

    forecasts: List[float] = []
    standard_errors: List[float] = []
    for step in range(periods_ahead):
        x = n + step
        forecasts.append(max(0.0, regression.predict(x)))
        standard_errors.append(
            residual_std_error * math.sqrt(1 + 1 / n + (x - x_mean) ** 2 / sxx)
        )

    return RegressionForecast(
        forecasts=forecasts,
        standard_errors=standard_errors,
        r_squared=regression.r_squared,
    )


_MethodPath = Callable[[Sequence[float], ForecastConfig, int], Tuple[List[float], List[float]]]


def _moving_average_path(
    estimator: Callable[[Sequence[float], int], MovingAverageEstimate],
) -> _MethodPath:
    def _path(values: Sequence[float], config: ForecastConfig, horizon: int) -> Tuple[List[float], List[float]]:
        estimate = estimator(values, config.periods)
        return [estimate.forecast] * horizon, [estimate.standard_error] * horizon

    return _path


def _regression_path(
    values: Sequence[float], config: ForecastConfig, horizon: int
) -> Tuple[List[float], List[float]]:
    result = linear_regression_forecast(values, horizon)
    return result.forecasts, result.standard_errors


_METHODS: Mapping[ForecastMethod, _MethodPath] = {
    ForecastMethod.SMA: _moving_average_path(simple_moving_average),
    ForecastMethod.WMA: _moving_average_path(weighted_moving_average),
    ForecastMethod.LINEAR_REGRESSION: _regression_path,
}


# ---------------------------------------------------------------------------
# Projection


def project(
    series: ProductSeries,
    metrics: ProductMetrics,
    config: ForecastConfig,
    period: AggregationPeriod,
) -> ProductProjection:
    """Build the :class:`ProductProjection` for one product.

    Raises
    ------
    ValueError
        If the series contains no buckets.
    """

    if not series.data:
        raise ValueError(f"series for product '{series.product_id}' has no periods")

    period = AggregationPeriod(period)
    history = series.quantities
    horizon = timeframe_to_periods(config.timeframe, period)

    historical_points = [
        ProjectionPoint(
            period_start=bucket.period_start,
            period_label=bucket.period_label,
            demand=bucket.total_quantity,
            confidence_low=bucket.total_quantity,
            confidence_high=bucket.total_quantity,
            is_forecast=False,
        )
        for bucket in series.data
    ]

    forecasts, standard_errors = _METHODS[config.method](history, config, horizon)
    future_starts = generate_future_periods(series.last_order_date, horizon, period)

    projected_points: List[ProjectionPoint] = []
    for start, forecast, standard_error in zip(future_starts, forecasts, standard_errors):
        low, high = confidence_interval(forecast, standard_error, len(history), config.confidence_level)
        projected_points.append(
            ProjectionPoint(
                period_start=start,
                period_label=format_period_label(start, period),
                demand=_round2(forecast),
                confidence_low=_round2(low),
                confidence_high=_round2(high),
                is_forecast=True,
            )
        )

    total_projected = float(sum(forecasts))
    avg_projected = total_projected / horizon if horizon > 0 else 0.0

    safety_stock = _ceil(avg_projected * config.safety_stock_percent / 100)
    reorder_point = _ceil(metrics.avg_daily_demand * config.lead_time_days + safety_stock)
    suggested_reorder_qty = _ceil(total_projected + safety_stock)

    LOGGER.debug(
        "Projected product=%s method=%s horizon=%d total=%.2f",
        series.product_id,
        config.method.value,
        horizon,
        total_projected,
    )

    return ProductProjection(
        product_id=series.product_id,
        product_name=series.product_name,
        category=series.category,
        historical_data=historical_points,
        projected_data=projected_points,
        horizon_periods=horizon,
        total_projected_demand=_round2(total_projected),
        avg_projected_demand=_round2(avg_projected),
        safety_stock=safety_stock,
        reorder_point=reorder_point,
        suggested_reorder_qty=suggested_reorder_qty,
        confidence_level=_round2(config.confidence_level * 100),
        method=config.method,
        metrics=metrics,
    )


def project_all(
    aggregated: Mapping[str, ProductSeries],
    metrics: Mapping[str, ProductMetrics],
    config: ForecastConfig,
    period: AggregationPeriod,
) -> Dict[str, ProductProjection]:
    """Project every product that has both a non-empty series and metrics."""

    projections: Dict[str, ProductProjection] = {}
    for product_id in sorted(aggregated):
        series = aggregated[product_id]
        product_metrics = metrics.get(product_id)
        if product_metrics is None or not series.data:
            continue
        projections[product_id] = project(series, product_metrics, config, period)
    return projections


# ---------------------------------------------------------------------------
# Core service implementation


class ForecastingService:
    """Run the aggregate, metrics and projection stages for an order list.

    The service only holds immutable defaults; every call works on the data
    passed in and returns fresh values, so one instance can be shared across
    concurrent requests.
    """

    def __init__(
        self,
        default_config: ForecastConfig | None = None,
        default_period: AggregationPeriod = AggregationPeriod.WEEKLY,
    ) -> None:
        self.default_config = default_config or ForecastConfig()
        self.default_period = AggregationPeriod(default_period)

    def metrics(
        self,
        orders: Sequence[OrderRecord],
        period: AggregationPeriod | None = None,
    ) -> Dict[str, ProductMetrics]:
        period = AggregationPeriod(period or self.default_period)
        return compute_all_metrics(aggregate(orders, period), period)

    def forecast(
        self,
        orders: Sequence[OrderRecord],
        config: ForecastConfig | None = None,
        period: AggregationPeriod | None = None,
    ) -> List[ProductProjection]:
        """Return projections for every product, ordered by product id."""

        config = config or self.default_config
        period = AggregationPeriod(period or self.default_period)

        aggregated = aggregate(orders, period)
        metrics = compute_all_metrics(aggregated, period)
        projections = project_all(aggregated, metrics, config, period)

        LOGGER.info(
            "Forecast complete: products=%d method=%s timeframe=%s period=%s",
            len(projections),
            config.method.value,
            config.timeframe,
            period.value,
        )
        return [projections[product_id] for product_id in sorted(projections)]
