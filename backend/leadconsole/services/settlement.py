"""
Settlement: per-day download and defect counts with the year's unit price.

Only the raw counts and the unit cost are returned; the caller applies its
own billing rule (typically ``(downloads - defects) * unit_cost``).
"""

import logging
from collections import defaultdict
from datetime import date, tzinfo
from typing import Any, Optional

from ..core.config import settings
from ..utils.dates import format_day, local_day, range_window, validate_range
from .ad_spend import SettlementCostBook
from .lead_repository import LeadRepository


logger = logging.getLogger(__name__)


class SettlementCalculator:
    def __init__(
        self,
        leads: LeadRepository,
        costs: SettlementCostBook,
        tz: Optional[tzinfo] = None,
    ):
        self.leads = leads
        self.costs = costs
        self.tz = tz or settings.reporting_zone

    def calculate(self, start_day: date, end_day: date) -> dict[str, Any]:
        """
        Group leads by the local day of their last download.

        Returns:
            {"daily_rows": [{"date", "downloads", "defects"}, ...], "unit_cost": float}
            with rows in ascending date order; days without downloads are omitted.

        Raises:
            InvalidArgument: if ``start_day`` is after ``end_day``
        """
        validate_range(start_day, end_day)

        downloads: dict[date, int] = defaultdict(int)
        defects: dict[date, int] = defaultdict(int)
        for lead in self.leads.downloaded_between(*range_window(start_day, end_day, self.tz)):
            day = local_day(lead.downloaded_at, self.tz)
            downloads[day] += 1
            if lead.is_defect:
                defects[day] += 1

        rows = [
            {"date": format_day(day), "downloads": downloads[day], "defects": defects[day]}
            for day in sorted(downloads)
        ]
        unit_cost = self.costs.unit_cost_for_year(start_day.year)
        logger.debug(f"Settlement {format_day(start_day)}..{format_day(end_day)}: {len(rows)} days")
        return {"daily_rows": rows, "unit_cost": unit_cost}
