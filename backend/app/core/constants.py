r"""backend\app\core\constants.py

Static numeric tables and thresholds used by the forecasting engine.

Keeping these as data rather than branches makes every constant visible in
one place and lets the tests check them in isolation.
"""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Mapping, Tuple

from ..models.schemas import AggregationPeriod

# Conversion from bucket width to calendar rates
PERIODS_PER_WEEK: Mapping[AggregationPeriod, float] = MappingProxyType(
    {
        AggregationPeriod.DAILY: 7.0,
        AggregationPeriod.WEEKLY: 1.0,
        AggregationPeriod.MONTHLY: 0.25,
    }
)
PERIODS_PER_MONTH: Mapping[AggregationPeriod, float] = MappingProxyType(
    {
        AggregationPeriod.DAILY: 30.0,
        AggregationPeriod.WEEKLY: 4.33,
        AggregationPeriod.MONTHLY: 1.0,
    }
)

# pandas offset aliases aligned with bucket starts (Monday weeks, month starts)
PANDAS_FREQUENCY: Mapping[AggregationPeriod, str] = MappingProxyType(
    {
        AggregationPeriod.DAILY: "D",
        AggregationPeriod.WEEKLY: "W-MON",
        AggregationPeriod.MONTHLY: "MS",
    }
)

DEFAULT_HORIZON_PERIODS = 4

# Trend classification
TREND_MIN_R_SQUARED = 0.10
TREND_MIN_NORMALIZED_SLOPE = 0.02

# Outliers and seasonality
OUTLIER_Z_THRESHOLD = 2.5
SEASONALITY_MIN_PERIODS = 12
SEASONALITY_MIN_INDEX_VARIANCE = 0.01

# Student-t critical values: confidence level -> ((df breakpoint, t), ...)
T_CRITICAL: Mapping[float, Tuple[Tuple[float, float], ...]] = MappingProxyType(
    {
        0.90: (
            (5, 2.015),
            (10, 1.812),
            (20, 1.725),
            (30, 1.697),
            (50, 1.676),
            (100, 1.660),
            (math.inf, 1.645),
        ),
        0.95: (
            (5, 2.571),
            (10, 2.228),
            (20, 2.086),
            (30, 2.042),
            (50, 2.009),
            (100, 1.984),
            (math.inf, 1.960),
        ),
        0.99: (
            (5, 4.032),
            (10, 3.169),
            (20, 2.845),
            (30, 2.750),
            (50, 2.678),
            (100, 2.626),
            (math.inf, 2.576),
        ),
    }
)

METHOD_DISPLAY_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "sma": "Simple Moving Average",
        "wma": "Weighted Moving Average",
        "linear_regression": "Linear Regression",
    }
)

# Data-quality heuristics
LARGE_ORDER_FACTOR = 10
MIN_SPAN_DAYS = 30
SPARSE_SPAN_DAYS = 7
SPARSE_DATE_COVERAGE = 0.3
