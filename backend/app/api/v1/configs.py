"""API endpoint exposing the default forecast configuration."""

from __future__ import annotations

from fastapi import APIRouter

from ...core.config import load_forecast_defaults
from ...models import schemas

router = APIRouter()


@router.get("/configs/forecast", response_model=schemas.ForecastDefaultsResponse)
def get_forecast_defaults() -> schemas.ForecastDefaultsResponse:
    """Return the forecast settings applied when a request supplies none."""

    config, period = load_forecast_defaults()
    return schemas.ForecastDefaultsResponse(aggregation_period=period, config=config)
