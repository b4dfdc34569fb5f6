r"""backend/tests/test_export.py"""

from __future__ import annotations

import io
import sys
from datetime import date, timedelta
from pathlib import Path

import pandas as pd

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.models.schemas import AggregationPeriod, ForecastConfig, OrderRecord
from backend.app.services.export_service import (
    points_to_frame,
    projections_to_csv,
    projections_to_frame,
)
from backend.app.services.forecasting_service import ForecastingService


def _projections():
    start = date(2024, 1, 1)
    orders = [
        OrderRecord(
            date=start + timedelta(days=7 * i),
            product_id=product_id,
            product_name=f"Item {product_id}",
            quantity=10 + i,
            category="Tools",
        )
        for product_id in ("B", "A")
        for i in range(4)
    ]
    service = ForecastingService(ForecastConfig(method="sma", timeframe="2_weeks"), AggregationPeriod.WEEKLY)
    return service.forecast(orders)


def test_summary_frame_has_one_row_per_product() -> None:
    frame = projections_to_frame(_projections())

    assert list(frame["product_id"]) == ["A", "B"]
    assert list(frame.columns) == [
        "product_id",
        "product_name",
        "category",
        "avg_daily_demand",
        "avg_weekly_demand",
        "trend",
        "projected_demand",
        "suggested_reorder_qty",
        "safety_stock",
        "confidence_level",
        "confidence_low",
        "confidence_high",
    ]
    assert frame.loc[0, "category"] == "Tools"
    assert frame.loc[0, "confidence_level"] == 95.0


def test_summary_frame_can_omit_sections() -> None:
    projections = _projections()

    metrics_only = projections_to_frame(projections, include_projections=False)
    bare = projections_to_frame(projections, include_metrics=False, include_projections=False)

    assert "trend" in metrics_only.columns
    assert "projected_demand" not in metrics_only.columns
    assert list(bare.columns) == ["product_id", "product_name", "category"]


def test_points_frame_marks_historical_and_projected_rows() -> None:
    frame = points_to_frame(_projections())

    per_product = frame[frame["product_id"] == "A"]
    assert list(per_product["type"]) == ["historical"] * 4 + ["projected"] * 2
    historical = per_product[per_product["type"] == "historical"]
    assert historical["confidence_low"].isna().all()
    assert per_product[per_product["type"] == "projected"]["confidence_high"].notna().all()


def test_csv_export_round_trips_through_pandas() -> None:
    text = projections_to_csv(_projections())
    frame = pd.read_csv(io.StringIO(text))

    assert len(frame) == 2
    assert list(frame["suggested_reorder_qty"]) == list(projections_to_frame(_projections())["suggested_reorder_qty"])


def test_csv_export_of_nothing_is_empty() -> None:
    assert projections_to_csv([]) == ""
