r"""backend\app\api\v1\health.py

Health check endpoints.

Orchestrators and load balancers can use `/api/v1/health` to verify that
the service is running. The forecasting core has no external dependencies,
so a running process is a healthy one.
"""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Return a basic health indicator."""
    return {"status": "ok"}
