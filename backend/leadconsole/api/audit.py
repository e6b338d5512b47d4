"""
Audit log endpoint.

- GET /api/audit?limit=N  newest entries first (super)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import SUPER_ONLY, CallerRole, require_role
from ..core.database import get_db
from ..schemas.common import ERROR_RESPONSES
from ..schemas.audit import AuditEntryResponse, AuditListResponse
from ..services.audit import AuditLog


router = APIRouter(prefix="/api/audit", tags=["Audit"], responses=ERROR_RESPONSES)


@router.get("", response_model=AuditListResponse)
async def audit_log(
    limit: Optional[int] = Query(default=None, description="1..500, default 100"),
    caller: CallerRole = Depends(require_role(*SUPER_ONLY)),
    db: Session = Depends(get_db),
) -> AuditListResponse:
    entries = AuditLog(db).list(limit)
    return AuditListResponse(entries=[AuditEntryResponse.model_validate(e) for e in entries])
