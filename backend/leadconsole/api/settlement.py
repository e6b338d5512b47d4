"""
Settlement endpoints.

Endpoints:
- GET  /api/settlement/config     unit costs by year (admin, super)
- PUT  /api/settlement/costs      set a year's unit cost (super)
- POST /api/settlement/calculate  per-day download/defect counts (admin, super)
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import ADMIN_ROLES, SUPER_ONLY, CallerRole, require_role
from ..core.database import get_db
from ..core.transactions import transaction
from ..schemas.analytics import (
    DateRangeRequest,
    SettlementConfigResponse,
    SettlementCostRequest,
    SettlementResponse,
)
from ..schemas.common import ERROR_RESPONSES, Ack
from ..services.ad_spend import SettlementCostBook
from ..services.lead_repository import LeadRepository
from ..services.settlement import SettlementCalculator


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settlement", tags=["Settlement"], responses=ERROR_RESPONSES)


@router.get("/config", response_model=SettlementConfigResponse)
async def get_settlement_config(
    caller: CallerRole = Depends(require_role(*ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> SettlementConfigResponse:
    return SettlementConfigResponse(costs=SettlementCostBook(db).all_costs())


@router.put("/costs", response_model=Ack)
async def set_settlement_cost(
    body: SettlementCostRequest,
    caller: CallerRole = Depends(require_role(*SUPER_ONLY)),
    db: Session = Depends(get_db),
) -> Ack:
    with transaction(db):
        SettlementCostBook(db).set_cost(body.year, body.cost)
    logger.info(f"{caller.identifier} set the {body.year} settlement cost to {body.cost}")
    return Ack()


@router.post("/calculate", response_model=SettlementResponse)
async def calculate_settlement(
    body: DateRangeRequest,
    caller: CallerRole = Depends(require_role(*ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> SettlementResponse:
    calculator = SettlementCalculator(LeadRepository(db), SettlementCostBook(db))
    return SettlementResponse(**calculator.calculate(body.start_date, body.end_date))
