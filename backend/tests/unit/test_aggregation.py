"""
Unit tests for the pure aggregation reductions.
"""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from leadconsole.models import AdSpendEntry, Lead
from leadconsole.services.aggregation import (
    UNATTRIBUTED_SOURCE,
    build_roas_table,
    build_trend_matrix,
    cost_per_lead,
    roas_percent,
    source_of,
    summarize_funnel,
)
from leadconsole.utils.dates import iter_days


KST = ZoneInfo("Asia/Seoul")


def lead_at(created_at, source="google", is_defect=False):
    return Lead(name="Kim", utm_source=source, created_at=created_at, is_defect=is_defect)


def kst(year, month, day, hour=12):
    return datetime(year, month, day, hour, tzinfo=KST)


class TestScalars:
    """Cost-per-lead and ROAS arithmetic."""

    def test_cost_per_lead(self):
        assert cost_per_lead(300.0, 3) == 100.0

    def test_cost_per_lead_without_leads(self):
        """No leads means zero, never a division error."""
        assert cost_per_lead(300.0, 0) == 0.0

    def test_roas_percent(self):
        assert roas_percent(150.0, 100.0) == 150.0

    def test_roas_without_spend_is_zero(self):
        """Revenue with zero cost reports 0 rather than infinity."""
        assert roas_percent(500.0, 0.0) == 0.0

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_source_is_unattributed(self, value):
        """Leads without a source land in the unattributed bucket."""
        assert source_of(Lead(utm_source=value)) == UNATTRIBUTED_SOURCE


class TestSummarizeFunnel:
    """Funnel snapshot reduction."""

    def test_counts_defects_and_sources(self):
        leads = [
            lead_at(kst(2024, 5, 1), "google"),
            lead_at(kst(2024, 5, 1), "google", is_defect=True),
            lead_at(kst(2024, 5, 1), None),
        ]
        snapshot = summarize_funnel(leads)
        assert snapshot.total == 3
        assert snapshot.defect_count == 1
        assert snapshot.counts_by_source == {"google": 2, UNATTRIBUTED_SOURCE: 1}

    def test_empty_input(self):
        """An empty day is all zeros."""
        assert summarize_funnel([]).to_dict() == {
            "total": 0,
            "defect_count": 0,
            "counts_by_source": {},
        }


class TestTrendMatrix:
    """Day x source grid."""

    def setup_method(self):
        self.today = date(2024, 5, 30)
        self.days = list(iter_days(self.today - timedelta(days=29), self.today))

    def test_window_of_thirty_days(self):
        """Every in-window lead is counted once; out-of-window leads are dropped."""
        leads = [lead_at(kst(2024, 5, 1 + (i % 30)), "google") for i in range(35)]
        leads.append(lead_at(kst(2024, 4, 30), "google"))
        leads.append(lead_at(kst(2024, 5, 31), "google"))

        matrix = build_trend_matrix(leads, self.days, KST)

        assert len(matrix.rows) == 30
        assert matrix.rows[0]["date"] == "2024-05-01"
        assert matrix.rows[-1]["date"] == "2024-05-30"
        assert sum(row["google"] for row in matrix.rows) == 35
        assert matrix.cumulative_by_source == {"google": 35}

    def test_every_row_has_every_column(self):
        """Cells without leads are zero, not missing."""
        leads = [
            lead_at(kst(2024, 5, 3), "google"),
            lead_at(kst(2024, 5, 10), "tiktok"),
            lead_at(kst(2024, 5, 10), None),
        ]
        matrix = build_trend_matrix(leads, self.days, KST)

        assert matrix.sources == sorted(["google", "tiktok", UNATTRIBUTED_SOURCE])
        for row in matrix.rows:
            assert set(row) == {"date", "google", "tiktok", UNATTRIBUTED_SOURCE}
        may_3 = next(row for row in matrix.rows if row["date"] == "2024-05-03")
        assert may_3 == {"date": "2024-05-03", "google": 1, "tiktok": 0, UNATTRIBUTED_SOURCE: 0}

    def test_buckets_by_reporting_timezone(self):
        """A lead at 15:00 UTC belongs to the next day in Seoul."""
        utc_evening = datetime(2024, 5, 4, 15, 0, tzinfo=timezone.utc)
        matrix = build_trend_matrix([lead_at(utc_evening)], self.days, KST)
        may_5 = next(row for row in matrix.rows if row["date"] == "2024-05-05")
        assert may_5["google"] == 1

    def test_first_instant_of_window_included(self):
        """Windows are half-open: local midnight of the first day is inside."""
        first_instant = datetime(2024, 4, 30, 15, 0, tzinfo=timezone.utc)
        just_before = first_instant - timedelta(seconds=1)
        matrix = build_trend_matrix(
            [lead_at(first_instant), lead_at(just_before)], self.days, KST
        )
        assert matrix.cumulative_by_source == {"google": 1}
        assert matrix.rows[0]["google"] == 1

    def test_no_leads_gives_rows_without_columns(self):
        matrix = build_trend_matrix([], self.days, KST)
        assert matrix.sources == []
        assert len(matrix.rows) == 30
        assert matrix.rows[5] == {"date": "2024-05-06"}


class TestRoasTable:
    """Cost / lead / revenue join."""

    def unit_value(self, year):
        return {2024: 50.0}.get(year, 0.0)

    def test_single_day_single_source(self):
        """Two leads at 50 each against 100 spend is 100% ROAS."""
        day = date(2024, 5, 1)
        rows = build_roas_table(
            [lead_at(kst(2024, 5, 1)), lead_at(kst(2024, 5, 1, 20))],
            [AdSpendEntry(day=day, source="google", cost=100.0)],
            day,
            day,
            self.unit_value,
            KST,
        )
        assert rows == [{
            "date": "2024-05-01",
            "source": "google",
            "cost": 100.0,
            "leads": 2,
            "revenue": 100.0,
            "roas": 100.0,
        }]

    def test_missing_combinations_are_zero(self):
        """Sources seen on any day appear on every day."""
        start, end = date(2024, 5, 1), date(2024, 5, 2)
        rows = build_roas_table(
            [lead_at(kst(2024, 5, 2), "tiktok")],
            [AdSpendEntry(day=start, source="google", cost=40.0)],
            start,
            end,
            self.unit_value,
            KST,
        )
        assert [(r["date"], r["source"]) for r in rows] == [
            ("2024-05-01", "google"),
            ("2024-05-01", "tiktok"),
            ("2024-05-02", "google"),
            ("2024-05-02", "tiktok"),
        ]
        tiktok_day_one = rows[1]
        assert tiktok_day_one["cost"] == 0.0
        assert tiktok_day_one["leads"] == 0
        assert tiktok_day_one["roas"] == 0.0

    def test_revenue_without_cost(self):
        """Leads with no spend have revenue but zero ROAS."""
        day = date(2024, 5, 1)
        rows = build_roas_table([lead_at(kst(2024, 5, 1))], [], day, day, self.unit_value, KST)
        assert rows[0]["revenue"] == 50.0
        assert rows[0]["roas"] == 0.0

    def test_unconfigured_year_has_no_revenue(self):
        day = date(2023, 12, 31)
        rows = build_roas_table([lead_at(kst(2023, 12, 31))], [], day, day, self.unit_value, KST)
        assert rows[0]["leads"] == 1
        assert rows[0]["revenue"] == 0.0

    def test_empty_range_uses_unattributed_column(self):
        """With nothing to show, each day still gets one zero row."""
        start, end = date(2024, 5, 1), date(2024, 5, 3)
        rows = build_roas_table([], [], start, end, self.unit_value, KST)
        assert len(rows) == 3
        assert {row["source"] for row in rows} == {UNATTRIBUTED_SOURCE}
        assert all(row["cost"] == 0.0 and row["leads"] == 0 for row in rows)
