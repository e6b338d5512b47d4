"""
Unit tests for the ad spend ledger and the settlement price book.
"""
from datetime import date

import pytest

from leadconsole.core.exceptions import InvalidArgument
from leadconsole.core.transactions import transaction
from leadconsole.models import AdSpendEntry
from leadconsole.services.ad_spend import AdSpendLedger, SettlementCostBook, validate_cost


DAY = date(2024, 5, 1)


def merge(db_session, day, costs):
    with transaction(db_session):
        AdSpendLedger(db_session).merge(day, costs)


class TestValidateCost:
    @pytest.mark.parametrize("value", [0, 12, 12.5])
    def test_accepts_non_negative_numbers(self, value):
        assert validate_cost(value) == float(value)

    @pytest.mark.parametrize("value", [-1, float("nan"), float("inf"), "12", None, True])
    def test_rejects_everything_else(self, value):
        """Negative, non-finite, non-numeric and boolean costs are invalid."""
        with pytest.raises(InvalidArgument):
            validate_cost(value)


class TestAdSpendLedger:
    """Per-day, per-source merge semantics."""

    def test_merge_leaves_sibling_sources(self, db_session):
        """Writing tiktok does not clobber google on the same day."""
        merge(db_session, DAY, {"google": 100.0})
        merge(db_session, DAY, {"tiktok": 40.0})

        entries = AdSpendLedger(db_session).entries_between(DAY, DAY)
        assert {(e.source, e.cost) for e in entries} == {("google", 100.0), ("tiktok", 40.0)}

    def test_merge_is_idempotent(self, db_session):
        """Re-running the same write leaves one row with the same value."""
        merge(db_session, DAY, {"google": 100.0})
        merge(db_session, DAY, {"google": 100.0})

        assert db_session.query(AdSpendEntry).count() == 1
        assert AdSpendLedger(db_session).total_all() == 100.0

    def test_merge_overwrites_same_source(self, db_session):
        merge(db_session, DAY, {"google": 100.0})
        merge(db_session, DAY, {"google": 75.0})
        assert AdSpendLedger(db_session).total_between(DAY, DAY) == 75.0

    def test_negative_cost_rejected_without_writing(self, db_session):
        """A bad value aborts the whole merge."""
        with pytest.raises(InvalidArgument):
            merge(db_session, DAY, {"google": 10.0, "tiktok": -5})
        assert AdSpendLedger(db_session).total_all() == 0.0

    def test_blank_source_rejected(self, db_session):
        with pytest.raises(InvalidArgument):
            merge(db_session, DAY, {"  ": 10.0})

    def test_repeated_merge_in_one_transaction(self, db_session):
        """Two writes of one source before commit still leave a single row."""
        ledger = AdSpendLedger(db_session)
        with transaction(db_session):
            ledger.merge(DAY, {"google": 100.0})
            ledger.merge(DAY, {"google": 80.0, "tiktok": 5.0})

        assert db_session.query(AdSpendEntry).count() == 2
        assert ledger.total_between(DAY, DAY) == 85.0

    def test_entries_reflect_latest_merge(self, db_session):
        """Rows already loaded in the session are refreshed by the next read."""
        ledger = AdSpendLedger(db_session)
        merge(db_session, DAY, {"google": 100.0})
        assert [e.cost for e in ledger.entries_between(DAY, DAY)] == [100.0]

        merge(db_session, DAY, {"google": 60.0})

        assert [e.cost for e in ledger.entries_between(DAY, DAY)] == [60.0]

    def test_totals(self, db_session):
        merge(db_session, date(2024, 4, 30), {"google": 10.0})
        merge(db_session, date(2024, 5, 1), {"google": 20.0, "tiktok": 5.0})
        merge(db_session, date(2024, 5, 2), {"google": 30.0})
        ledger = AdSpendLedger(db_session)

        assert ledger.total_all() == 65.0
        assert ledger.total_between(date(2024, 5, 1), date(2024, 5, 1)) == 25.0
        assert ledger.daily_totals(date(2024, 5, 1), date(2024, 5, 2)) == {
            date(2024, 5, 1): 25.0,
            date(2024, 5, 2): 30.0,
        }
        assert [e.day for e in ledger.entries_between(date(2024, 5, 2), date(2024, 5, 9))] == [date(2024, 5, 2)]


class TestSettlementCostBook:
    def test_unconfigured_year_is_zero(self, db_session):
        assert SettlementCostBook(db_session).unit_cost_for_year(2030) == 0.0

    def test_set_and_read_costs(self, db_session):
        book = SettlementCostBook(db_session)
        with transaction(db_session):
            book.set_cost(2024, 50)
            book.set_cost(2025, 60.5)
        with transaction(db_session):
            book.set_cost(2024, 55)

        assert book.all_costs() == {2024: 55.0, 2025: 60.5}
        assert book.unit_cost_for_year(2025) == 60.5

    @pytest.mark.parametrize("year", [0, -2024, "2024", True])
    def test_invalid_year(self, db_session, year):
        with pytest.raises(InvalidArgument):
            SettlementCostBook(db_session).set_cost(year, 10)
