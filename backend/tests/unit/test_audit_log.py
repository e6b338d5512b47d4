"""
Unit tests for the audit log service.
"""
import pytest

from leadconsole.core.exceptions import InvalidArgument
from leadconsole.core.transactions import transaction
from leadconsole.models import AuditAction, AuditEntry
from leadconsole.services.audit import AuditLog


class TestAuditRecord:
    """Batch recording with subject snapshots."""

    def test_one_entry_per_distinct_subject(self, db_session, make_lead):
        first = make_lead(name="Alice")
        second = make_lead(name="Bob")
        audit = AuditLog(db_session)

        with transaction(db_session):
            entries = audit.record(
                AuditAction.DOWNLOAD,
                "staff@example.com",
                [first.id, second.id, first.id],
            )

        assert [entry.lead_id for entry in entries] == [first.id, second.id]
        assert [entry.lead_name for entry in entries] == ["Alice", "Bob"]
        assert entries[0].lead_phone == first.phone_raw
        assert db_session.query(AuditEntry).count() == 2

    def test_batch_shares_one_timestamp(self, db_session, make_lead):
        leads = [make_lead() for _ in range(3)]
        with transaction(db_session):
            entries = AuditLog(db_session).record(
                AuditAction.DELETE, "staff@example.com", [lead.id for lead in leads]
            )
        assert len({entry.recorded_at for entry in entries}) == 1

    def test_unknown_subject_recorded_without_snapshot(self, db_session):
        with transaction(db_session):
            entries = AuditLog(db_session).record(AuditAction.DELETE, "staff@example.com", ["ghost"])
        assert entries[0].lead_name is None
        assert entries[0].lead_phone is None

    def test_payload_copied_to_every_entry(self, db_session, make_lead):
        lead = make_lead()
        with transaction(db_session):
            entries = AuditLog(db_session).record(
                AuditAction.SET_STATUS,
                "staff@example.com",
                [lead.id],
                {"field": "visited", "value": True},
            )
        assert entries[0].payload == {"field": "visited", "value": True}

    def test_empty_batch_writes_nothing(self, db_session):
        assert AuditLog(db_session).record(AuditAction.DELETE, "staff@example.com", []) == []


class TestAuditList:
    """Newest-first listing with bounded limits."""

    def _record_batches(self, db_session, make_lead, batches):
        audit = AuditLog(db_session)
        for _ in range(batches):
            lead = make_lead()
            with transaction(db_session):
                audit.record(AuditAction.DOWNLOAD, "staff@example.com", [lead.id])

    def test_newest_first(self, db_session, make_lead):
        self._record_batches(db_session, make_lead, 3)
        entries = AuditLog(db_session).list(10)
        ids = [entry.id for entry in entries]
        assert ids == sorted(ids, reverse=True)

    def test_larger_limit_extends_smaller_one(self, db_session, make_lead):
        """list(10) starts with exactly what list(5) returned."""
        self._record_batches(db_session, make_lead, 12)
        audit = AuditLog(db_session)

        first_five = [entry.id for entry in audit.list(5)]
        first_ten = [entry.id for entry in audit.list(10)]

        assert len(first_five) == 5
        assert first_ten[:5] == first_five

    @pytest.mark.parametrize("limit", [0, -1, 501, True, "10"])
    def test_limit_out_of_bounds(self, db_session, limit):
        with pytest.raises(InvalidArgument):
            AuditLog(db_session).list(limit)

    def test_default_limit(self, db_session, make_lead):
        self._record_batches(db_session, make_lead, 2)
        assert len(AuditLog(db_session).list()) == 2
