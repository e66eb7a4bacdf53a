"""
Sales analytics endpoint.
"""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rest_api.routers._common import branch_scope, current_staff
from rest_api.services.domain import ReportService
from rest_api.services.permissions import BranchScope, StaffContext
from shared.infrastructure.db import get_db
from shared.utils.schemas import AnalyticsOutput


router = APIRouter(tags=["reports"])


@router.get("/analytics", response_model=AnalyticsOutput)
def sales_analytics(
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> AnalyticsOutput:
    """
    Totals, daily sales, top items and peak hours for served and
    completed orders. Defaults to the last 7 days.
    """
    return ReportService(db).sales_summary(scope, ctx, date_from, date_to)
