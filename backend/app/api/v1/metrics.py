"""Routes for per-product demand statistics."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...core.config import load_forecast_defaults
from ...models import schemas
from ...services.forecasting_service import ForecastingService

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_forecast_service = ForecastingService(*load_forecast_defaults())


def _error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


@router.post("/metrics", response_model=schemas.MetricsResponse)
def compute_metrics(body: schemas.MetricsRequest) -> schemas.MetricsResponse:
    """Return demand statistics for every product in the posted orders."""

    LOGGER.info(
        "Metrics request received: orders=%d period=%s",
        len(body.orders),
        body.aggregation_period.value,
    )
    try:
        metrics = _forecast_service.metrics(body.orders, body.aggregation_period)
    except ValueError as exc:
        LOGGER.warning("Metrics rejected: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_request", str(exc)),
        ) from exc

    return schemas.MetricsResponse(
        aggregation_period=body.aggregation_period,
        metrics=[metrics[product_id] for product_id in sorted(metrics)],
    )
