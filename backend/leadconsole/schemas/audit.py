"""
Audit log response schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from ..models.audit_log import AuditAction


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: AuditAction
    actor: str
    lead_id: str
    lead_name: Optional[str] = None
    lead_phone: Optional[str] = None
    payload: Dict[str, Any]
    recorded_at: datetime


class AuditListResponse(BaseModel):
    entries: List[AuditEntryResponse]
