r"""backend\app\main.py

Main entrypoint for the FastAPI application.

The API wraps the demand-forecasting core: posted order lists are
aggregated into per-product series, summarised, and projected forward with
confidence bounds and reorder recommendations. A health endpoint is also
provided for readiness/liveness checks. Configuration is read from
environment variables and `configs/settings.yaml`.
"""


import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from .api.v1 import configs, data, health, metrics, projections
from .core.config import get_settings
from .core.observability import RequestMetricsMiddleware, configure_logging, metrics_endpoint

# Load .env from repo root
BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(BASE_DIR / ".env")

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title="Demand Forecasting API", version="0.1.0")

origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,  # In production specify your UI domain(s)
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestMetricsMiddleware)

# Include versioned routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(configs.router, prefix="/api/v1")
app.include_router(data.router, prefix="/api/v1")
app.include_router(metrics.router, prefix="/api/v1")
app.include_router(projections.router, prefix="/api/v1")

logging.getLogger(__name__).info("Demand Forecasting API ready; CORS origins=%s", origins)


@app.get("/", include_in_schema=False)
def _root() -> RedirectResponse:
    """Redirect the root path to the interactive docs."""

    return RedirectResponse(url="/docs")


@app.get("/metrics", include_in_schema=False)
async def _metrics() -> Response:
    """Expose Prometheus metrics."""

    return metrics_endpoint()
