r"""backend\app\models\schemas.py

Pydantic models used throughout the forecasting engine and its API.

The same models describe the values flowing between the aggregation,
metrics and forecasting services and the payloads exchanged over HTTP.
All of them are frozen: once a series, a metrics bundle or a projection
has been built it is never mutated, so results can be shared freely
between concurrent callers.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class AggregationPeriod(str, Enum):
    """Width of the buckets an order stream is regularised into."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ForecastMethod(str, Enum):
    """Forecasting methods supported by the projection service."""

    SMA = "sma"
    WMA = "wma"
    LINEAR_REGRESSION = "linear_regression"


TrendDirection = Literal["increasing", "decreasing", "stable"]


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Input


class OrderRecord(_FrozenModel):
    """One historical order line, already validated upstream."""

    date: date
    product_id: str
    product_name: str
    quantity: float = Field(..., ge=0, description="Ordered quantity (non-negative)")
    category: Optional[str] = None
    unit_price: Optional[float] = None
    supplier: Optional[str] = None


# ---------------------------------------------------------------------------
# Aggregation


class AggregatedPeriod(_FrozenModel):
    """A single (product, bucket) cell of an aggregated series."""

    period_start: date
    period_label: str
    product_id: str
    product_name: str
    total_quantity: float = 0.0
    order_count: int = 0
    avg_quantity_per_order: float = 0.0


class ProductSeries(_FrozenModel):
    """Dense, chronologically ordered bucket series for one product."""

    product_id: str
    product_name: str
    category: Optional[str] = None
    data: List[AggregatedPeriod]
    total_orders: int
    total_quantity: float
    first_order_date: date
    last_order_date: date

    @property
    def quantities(self) -> List[float]:
        return [period.total_quantity for period in self.data]


class DateRange(_FrozenModel):
    start: date
    end: date


class DataSummary(_FrozenModel):
    """Headline figures describing an order list."""

    total_records: int
    total_products: int
    total_quantity: float
    date_range: Optional[DateRange] = None
    categories: List[str] = Field(default_factory=list)
    suppliers: List[str] = Field(default_factory=list)


class QualityCheck(_FrozenModel):
    name: str
    ok: bool
    message: str = ""


class DataQualityReport(_FrozenModel):
    """Advisory data-quality findings; never used to reject input."""

    ok: bool
    checks: List[QualityCheck]
    issues: List[str]


# ---------------------------------------------------------------------------
# Metrics


class OutlierPoint(_FrozenModel):
    """A bucket whose quantity deviates more than the z-score threshold."""

    period_start: date
    period_label: str
    quantity: float
    z_score: float
    kind: Literal["spike", "drop"]


class ProductMetrics(_FrozenModel):
    """Descriptive and trend statistics derived from one product series."""

    product_id: str
    product_name: str
    avg_daily_demand: float
    avg_weekly_demand: float
    avg_monthly_demand: float
    variance: float
    std_deviation: float
    coefficient_of_variation: float
    trend: TrendDirection
    trend_slope: float
    trend_strength: float = Field(..., ge=0.0, le=1.0, description="R-squared of the linear fit")
    seasonality_index: Optional[List[float]] = None
    outliers: List[OutlierPoint] = Field(default_factory=list)
    min_demand: float
    max_demand: float
    median_demand: float


# ---------------------------------------------------------------------------
# Forecasting


class ForecastConfig(_FrozenModel):
    """User-chosen forecasting parameters."""

    method: ForecastMethod = ForecastMethod.WMA
    timeframe: str = Field("4_weeks", description="Horizon such as '4_weeks' or '2 months'")
    periods: int = Field(4, ge=2, le=12, description="Window size for moving averages")
    safety_stock_percent: float = Field(20.0, ge=0.0, le=100.0)
    lead_time_days: float = Field(7.0, ge=0.0, le=90.0)
    confidence_level: float = Field(0.95, ge=0.80, le=0.99)


class ProjectionPoint(_FrozenModel):
    """One historical or forecast period of a projection."""

    period_start: date
    period_label: str
    demand: float
    confidence_low: float
    confidence_high: float
    is_forecast: bool


class ProductProjection(_FrozenModel):
    """Final forecasting output for one product."""

    product_id: str
    product_name: str
    category: Optional[str] = None
    historical_data: List[ProjectionPoint]
    projected_data: List[ProjectionPoint]
    horizon_periods: int
    total_projected_demand: float
    avg_projected_demand: float
    safety_stock: int
    reorder_point: int
    suggested_reorder_qty: int
    confidence_level: float = Field(..., description="Confidence level as a percentage")
    method: ForecastMethod
    metrics: ProductMetrics


# ---------------------------------------------------------------------------
# API payloads


class OrdersRequest(BaseModel):
    """Order list posted to the analysis endpoints."""

    orders: List[OrderRecord]


class MetricsRequest(OrdersRequest):
    aggregation_period: AggregationPeriod = AggregationPeriod.WEEKLY


class ProjectionRequest(MetricsRequest):
    config: Optional[ForecastConfig] = None


class ExportRequest(ProjectionRequest):
    include_metrics: bool = True
    include_projections: bool = True


class DataSummaryResponse(BaseModel):
    summary: DataSummary
    quality: DataQualityReport


class MetricsResponse(BaseModel):
    aggregation_period: AggregationPeriod
    metrics: List[ProductMetrics]


class ProjectionResponse(BaseModel):
    aggregation_period: AggregationPeriod
    config: ForecastConfig
    projections: List[ProductProjection]


class ForecastDefaultsResponse(BaseModel):
    aggregation_period: AggregationPeriod
    config: ForecastConfig
