"""
Audit log database model.

Append-only record of every mutating lead action. Subject name and phone
are copied in at write time so history stays readable after a lead is
deleted, and reads never need a join.
"""

import enum
from datetime import datetime
from typing import Optional, Any

from sqlalchemy import Column, Integer, String, DateTime, JSON, Enum as SQLEnum

from ..core.database import Base


# =============================================================================
# Enum Definitions
# =============================================================================

class AuditAction(str, enum.Enum):
    """Types of auditable actions."""
    DELETE = "DELETE"
    DOWNLOAD = "DOWNLOAD"
    UPDATE_MEMO = "UPDATE_MEMO"
    SET_STATUS = "SET_STATUS"


# =============================================================================
# Audit Entry Model
# =============================================================================

class AuditEntry(Base):
    """
    Immutable audit log entry.

    Attributes:
        id: monotonically increasing key (ties on recorded_at order by id)
        action: Type of action performed
        actor: identifier of the caller who performed it
        lead_id: subject lead
        lead_name / lead_phone: subject identity captured at write time
        payload: action-specific data (old/new memo, toggled field and value)
        recorded_at: server timestamp shared by every entry of one batch
    """

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(
        SQLEnum(AuditAction, name="audit_action", native_enum=False, length=32),
        nullable=False,
        index=True,
    )
    actor = Column(String(255), nullable=False)
    lead_id = Column(String(32), nullable=False, index=True)
    lead_name = Column(String(255), nullable=True)
    lead_phone = Column(String(32), nullable=True)
    payload = Column(JSON, nullable=False, default=dict)
    recorded_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self) -> str:
        return (
            f"<AuditEntry(id={self.id}, "
            f"action={self.action.value}, "
            f"lead_id={self.lead_id})>"
        )

    @classmethod
    def create_entry(
        cls,
        action: AuditAction,
        actor: str,
        lead_id: str,
        recorded_at: datetime,
        lead_name: Optional[str] = None,
        lead_phone: Optional[str] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> "AuditEntry":
        """
        Factory method to create an audit entry (not yet added to a session).
        """
        return cls(
            action=action,
            actor=actor,
            lead_id=lead_id,
            lead_name=lead_name,
            lead_phone=lead_phone,
            payload=dict(payload or {}),
            recorded_at=recorded_at,
        )
