"""
Unit tests for SettlementCalculator.
"""
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from leadconsole.core.exceptions import InvalidArgument
from leadconsole.core.transactions import transaction
from leadconsole.services.ad_spend import SettlementCostBook
from leadconsole.services.lead_repository import LeadRepository
from leadconsole.services.settlement import SettlementCalculator


KST = ZoneInfo("Asia/Seoul")


@pytest.fixture
def calculator(db_session):
    return SettlementCalculator(LeadRepository(db_session), SettlementCostBook(db_session), tz=KST)


class TestSettlementCalculator:
    def test_groups_downloads_by_local_day(self, db_session, make_lead, calculator):
        """Rows are per download day in Seoul with defect counts."""
        make_lead(downloaded_at=datetime(2024, 5, 1, 3, tzinfo=timezone.utc))
        make_lead(downloaded_at=datetime(2024, 5, 1, 5, tzinfo=timezone.utc), is_defect=True)
        # 16:00 UTC on May 2 is May 3 in Seoul
        make_lead(downloaded_at=datetime(2024, 5, 2, 16, tzinfo=timezone.utc))
        make_lead()
        with transaction(db_session):
            SettlementCostBook(db_session).set_cost(2024, 50)

        result = calculator.calculate(date(2024, 5, 1), date(2024, 5, 31))

        assert result["unit_cost"] == 50.0
        assert result["daily_rows"] == [
            {"date": "2024-05-01", "downloads": 2, "defects": 1},
            {"date": "2024-05-03", "downloads": 1, "defects": 0},
        ]

    def test_downloads_outside_range_ignored(self, make_lead, calculator):
        make_lead(downloaded_at=datetime(2024, 4, 30, 12, tzinfo=timezone.utc))
        result = calculator.calculate(date(2024, 5, 1), date(2024, 5, 31))
        assert result == {"daily_rows": [], "unit_cost": 0.0}

    def test_reversed_range_rejected(self, calculator):
        with pytest.raises(InvalidArgument):
            calculator.calculate(date(2024, 5, 31), date(2024, 5, 1))
