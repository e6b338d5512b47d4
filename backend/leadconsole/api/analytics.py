"""
Analytics endpoints: dashboard funnel/trend, ROAS report, manual ad costs.

Endpoints:
- GET  /api/analytics/dashboard  (user, admin, super)
- POST /api/analytics/roas       (admin, super)
- PUT  /api/analytics/ad-costs   (super)
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import ADMIN_ROLES, ALL_ROLES, SUPER_ONLY, CallerRole, require_role
from ..core.database import get_db
from ..core.transactions import transaction
from ..schemas.analytics import (
    AdCostRequest,
    DashboardStatsResponse,
    DateRangeRequest,
    RoasReportResponse,
)
from ..schemas.common import ERROR_RESPONSES, Ack
from ..services.ad_spend import AdSpendLedger, SettlementCostBook
from ..services.aggregation import AggregationEngine
from ..services.lead_repository import LeadRepository
from ..utils.dates import utc_now


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"], responses=ERROR_RESPONSES)


def get_aggregation_engine(db: Session = Depends(get_db)) -> AggregationEngine:
    return AggregationEngine(LeadRepository(db), AdSpendLedger(db), SettlementCostBook(db))


@router.get("/dashboard", response_model=DashboardStatsResponse)
async def dashboard_stats(
    caller: CallerRole = Depends(require_role(*ALL_ROLES)),
    engine: AggregationEngine = Depends(get_aggregation_engine),
) -> DashboardStatsResponse:
    """Today/yesterday snapshots, rolling trend matrix and all-time lead count."""
    return DashboardStatsResponse(**engine.dashboard_stats(utc_now()))


@router.post("/roas", response_model=RoasReportResponse)
async def roas_table(
    body: DateRangeRequest,
    caller: CallerRole = Depends(require_role(*ADMIN_ROLES)),
    engine: AggregationEngine = Depends(get_aggregation_engine),
) -> RoasReportResponse:
    """Per-(day, source) cost/leads/revenue/ROAS plus cost-per-lead scalars."""
    return RoasReportResponse(**engine.roas_report(body.start_date, body.end_date, utc_now()))


@router.put("/ad-costs", response_model=Ack)
async def set_ad_cost(
    body: AdCostRequest,
    caller: CallerRole = Depends(require_role(*SUPER_ONLY)),
    db: Session = Depends(get_db),
) -> Ack:
    with transaction(db):
        AdSpendLedger(db).merge(body.day, {body.source: body.cost})
    logger.info(f"{caller.identifier} set {body.source} cost for {body.day} to {body.cost}")
    return Ack()
