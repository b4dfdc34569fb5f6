"""Routes for demand projections and their export."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import PlainTextResponse

from ...core.config import load_forecast_defaults
from ...core.observability import PROJECTIONS_COUNTER
from ...models import schemas
from ...services.export_service import projections_to_csv
from ...services.forecasting_service import ForecastingService

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_forecast_service = ForecastingService(*load_forecast_defaults())


def _error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


def _run_forecast(body: schemas.ProjectionRequest) -> tuple[schemas.ForecastConfig, List[schemas.ProductProjection]]:
    config = body.config or _forecast_service.default_config
    LOGGER.info(
        "Projection request received: orders=%d method=%s timeframe=%s period=%s",
        len(body.orders),
        config.method.value,
        config.timeframe,
        body.aggregation_period.value,
    )
    try:
        projections = _forecast_service.forecast(body.orders, config, body.aggregation_period)
    except ValueError as exc:
        LOGGER.warning("Projection rejected: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_request", str(exc)),
        ) from exc
    except Exception as exc:  # pragma: no cover - unexpected failure
        LOGGER.exception("Unexpected error while projecting demand")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_error_payload("forecast_failed", "An unexpected error occurred while forecasting."),
        ) from exc

    PROJECTIONS_COUNTER.labels(config.method.value, body.aggregation_period.value).inc(len(projections))
    return config, projections


@router.post("/projections", response_model=schemas.ProjectionResponse)
def create_projections(body: schemas.ProjectionRequest) -> schemas.ProjectionResponse:
    """Return a projection per product, ordered by product id."""

    config, projections = _run_forecast(body)
    return schemas.ProjectionResponse(
        aggregation_period=body.aggregation_period,
        config=config,
        projections=projections,
    )


@router.post("/projections/export", response_class=PlainTextResponse)
def export_projections(body: schemas.ExportRequest) -> PlainTextResponse:
    """Return the projection summary as CSV text."""

    _, projections = _run_forecast(body)
    content = projections_to_csv(projections, body.include_metrics, body.include_projections)
    return PlainTextResponse(content, media_type="text/csv")
