r"""backend\app\api\v1\data.py"""

from __future__ import annotations

from fastapi import APIRouter

from ...models import schemas
from ...services.aggregation_service import summarize_orders
from ...services.data_quality_service import check_orders

router = APIRouter()


@router.post("/data/summary", response_model=schemas.DataSummaryResponse)
def summarize(body: schemas.OrdersRequest) -> schemas.DataSummaryResponse:
    """Return headline figures and advisory data-quality findings for the orders."""

    return schemas.DataSummaryResponse(
        summary=summarize_orders(body.orders),
        quality=check_orders(body.orders),
    )
