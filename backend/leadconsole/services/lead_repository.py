"""
Query surface over the lead collection.

Read methods return ORM rows; mutation methods only stage changes on the
session, leaving commit/rollback to the caller's ``transaction(db)``.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, or_, select, update, delete
from sqlalchemy.orm import Session

from ..core.exceptions import InvalidArgument, NotFound
from ..models.lead import Lead, TOGGLEABLE_FLAGS
from ..utils.batching import chunked, unique_in_order
from ..utils.dates import to_utc


logger = logging.getLogger(__name__)

# Largest id set the store accepts in one membership ("IN") predicate
MAX_MEMBERSHIP_PREDICATE_SIZE = 30


class LeadRepository:
    """Range, count, and batched id lookups over ``leads``."""

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------------------------------
    # Range queries
    # -------------------------------------------------------------------------

    def created_between(self, start: datetime, end: datetime) -> list[Lead]:
        """Leads with ``start <= created_at < end``."""
        stmt = (
            select(Lead)
            .where(Lead.created_at >= to_utc(start), Lead.created_at < to_utc(end))
            .order_by(Lead.created_at)
        )
        return list(self.db.scalars(stmt))

    def downloaded_between(self, start: datetime, end: datetime) -> list[Lead]:
        """Leads whose last download falls in ``[start, end)``."""
        stmt = (
            select(Lead)
            .where(Lead.downloaded_at >= to_utc(start), Lead.downloaded_at < to_utc(end))
            .order_by(Lead.downloaded_at)
        )
        return list(self.db.scalars(stmt))

    def page(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        source: Optional[str] = None,
        unattributed: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Lead], int]:
        """
        One page of leads, newest first, with the total match count.

        Args:
            start, end: optional half-open ``[start, end)`` creation window
            source: exact ``utm_source`` to match
            unattributed: only leads without a ``utm_source`` (overrides ``source``)
            limit, offset: page size and number of rows skipped
        """
        conditions = []
        if start is not None:
            conditions.append(Lead.created_at >= to_utc(start))
        if end is not None:
            conditions.append(Lead.created_at < to_utc(end))
        if unattributed:
            conditions.append(or_(Lead.utm_source.is_(None), Lead.utm_source == ""))
        elif source:
            conditions.append(Lead.utm_source == source)

        total = self.db.scalar(select(func.count(Lead.id)).where(*conditions)) or 0
        stmt = (
            select(Lead)
            .where(*conditions)
            .order_by(Lead.created_at.desc(), Lead.id)
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.scalars(stmt)), total

    # -------------------------------------------------------------------------
    # Count-only queries
    # -------------------------------------------------------------------------

    def count_all(self) -> int:
        return self.db.scalar(select(func.count(Lead.id))) or 0

    def count_created_between(self, start: datetime, end: datetime) -> int:
        stmt = select(func.count(Lead.id)).where(
            Lead.created_at >= to_utc(start), Lead.created_at < to_utc(end)
        )
        return self.db.scalar(stmt) or 0

    # -------------------------------------------------------------------------
    # Point and batched lookups
    # -------------------------------------------------------------------------

    def exists_by_phone(self, phone_e164: str) -> bool:
        stmt = select(Lead.id).where(Lead.phone_e164 == phone_e164).limit(1)
        return self.db.scalar(stmt) is not None

    def get(self, lead_id: str) -> Lead:
        lead = self.db.get(Lead, lead_id)
        if lead is None:
            raise NotFound(f"Lead '{lead_id}' does not exist.")
        return lead

    def get_many(self, ids: Iterable[str]) -> dict[str, Lead]:
        """
        Fetch leads by id, at most ``MAX_MEMBERSHIP_PREDICATE_SIZE`` per query.

        Unknown ids are simply absent from the returned map.
        """
        wanted = unique_in_order(ids)
        found: dict[str, Lead] = {}
        for chunk in chunked(wanted, MAX_MEMBERSHIP_PREDICATE_SIZE):
            for lead in self.db.scalars(select(Lead).where(Lead.id.in_(chunk))):
                found[lead.id] = lead
        return found

    # -------------------------------------------------------------------------
    # Mutations (staged on the session)
    # -------------------------------------------------------------------------

    def add(self, lead: Lead) -> Lead:
        self.db.add(lead)
        self.db.flush()
        return lead

    def delete_many(self, ids: Iterable[str]) -> int:
        wanted = unique_in_order(ids)
        deleted = 0
        for chunk in chunked(wanted, MAX_MEMBERSHIP_PREDICATE_SIZE):
            result = self.db.execute(
                delete(Lead).where(Lead.id.in_(chunk)).execution_options(synchronize_session=False)
            )
            deleted += result.rowcount or 0
        return deleted

    def increment_downloads(self, ids: Iterable[str], actor: str, at: datetime) -> int:
        wanted = unique_in_order(ids)
        updated = 0
        for chunk in chunked(wanted, MAX_MEMBERSHIP_PREDICATE_SIZE):
            result = self.db.execute(
                update(Lead)
                .where(Lead.id.in_(chunk))
                .values(
                    download_count=Lead.download_count + 1,
                    downloaded_at=to_utc(at),
                    downloaded_by=actor,
                )
                .execution_options(synchronize_session=False)
            )
            updated += result.rowcount or 0
        return updated

    def update_memo(self, lead_id: str, memo: str) -> Lead:
        lead = self.get(lead_id)
        lead.memo = memo
        return lead

    def set_flag(self, lead_id: str, field: str, value: bool) -> Lead:
        if field not in TOGGLEABLE_FLAGS:
            raise InvalidArgument(
                f"Field '{field}' is not updatable.",
                {"allowed": list(TOGGLEABLE_FLAGS)},
            )
        lead = self.get(lead_id)
        setattr(lead, field, value)
        return lead
