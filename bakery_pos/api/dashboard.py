from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bakery_pos.database import get_db
from bakery_pos.schemas.dashboard import DashboardResponse
from bakery_pos.services.aggregation import ReportPeriod
from bakery_pos.services.reporting import ReportingService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get(
    "/",
    response_model=DashboardResponse,
    summary="Sales dashboard",
    description="""
    Aggregate completed orders for a period.

    - **today**: local midnight to now, with a 24-hour histogram and peak hour
    - **week**: the last seven days
    - **month**: the current calendar month
    - **year**: the last twelve months
    """
)
def get_dashboard(
    period: ReportPeriod = Query(ReportPeriod.TODAY, description="Reporting period"),
    db: Session = Depends(get_db)
):
    """Revenue, order counts, top products, categories and hourly sales."""
    service = ReportingService(db)
    summary = service.dashboard(period)
    return DashboardResponse.model_validate(summary)
