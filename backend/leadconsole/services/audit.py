"""
Audit logging service.

Every mutating lead action goes through ``AuditLog.record`` before the
mutation itself, inside the same transaction, so the history entry and the
change commit or roll back together.
"""

import logging
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import InvalidArgument
from ..models.audit_log import AuditEntry, AuditAction
from ..models.lead import Lead
from ..utils.batching import unique_in_order
from ..utils.dates import utc_now
from .lead_repository import LeadRepository


logger = logging.getLogger(__name__)


class AuditLog:
    """
    Append-only action history.

    Example usage:
        audit = AuditLog(db)
        with transaction(db):
            audit.record(AuditAction.DELETE, caller.identifier, ids)
            LeadRepository(db).delete_many(ids)
    """

    def __init__(self, db: Session, leads: Optional[LeadRepository] = None):
        self.db = db
        self.leads = leads or LeadRepository(db)

    def record(
        self,
        action: AuditAction,
        actor: str,
        subject_ids: Iterable[str],
        payload: Optional[dict[str, Any]] = None,
        subjects: Optional[Mapping[str, Lead]] = None,
    ) -> list[AuditEntry]:
        """
        Stage one entry per distinct subject id.

        Subject name and phone are looked up now, in batches, so they survive
        a later delete. All entries share a single timestamp.

        Args:
            action: kind of mutation
            actor: caller identifier as presented
            subject_ids: affected lead ids (duplicates are collapsed)
            payload: action-specific data copied into every entry
            subjects: leads already fetched by the caller, keyed by id

        Returns:
            The staged entries (not yet committed)
        """
        ids = unique_in_order(subject_ids)
        if not ids:
            return []

        if subjects is None:
            subjects = self.leads.get_many(ids)
        recorded_at = utc_now()
        entries = []
        for lead_id in ids:
            lead = subjects.get(lead_id)
            entries.append(AuditEntry.create_entry(
                action=action,
                actor=actor,
                lead_id=lead_id,
                recorded_at=recorded_at,
                lead_name=lead.name if lead else None,
                lead_phone=lead.phone_raw if lead else None,
                payload=payload,
            ))
        self.db.add_all(entries)
        logger.info(f"Audit {action.value} by {actor}: {len(entries)} entries")
        return entries

    def list(self, limit: Optional[int] = None) -> list[AuditEntry]:
        """
        Newest entries first.

        Raises:
            InvalidArgument: if ``limit`` is outside ``1..audit_list_max_limit``
        """
        if limit is None:
            limit = settings.audit_list_default_limit
        maximum = settings.audit_list_max_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= maximum:
            raise InvalidArgument(
                f"limit must be between 1 and {maximum}.",
                {"limit": limit},
            )
        stmt = (
            select(AuditEntry)
            .order_by(AuditEntry.recorded_at.desc(), AuditEntry.id.desc())
            .limit(limit)
        )
        return list(self.db.scalars(stmt))
