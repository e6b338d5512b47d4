"""
Advertising spend ledger and settlement price book.

Spend is stored per (calendar day, source). Writing one source for a day
never touches the other sources recorded for that day, and writing the same
value twice leaves a single row, so the daily provider pull can be re-run
safely.
"""

import logging
import math
from collections import defaultdict
from datetime import date
from typing import Mapping

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ..core.exceptions import InvalidArgument
from ..models.ad_spend import AdSpendEntry, SettlementCost


logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT DO UPDATE
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def validate_cost(value: object, field: str = "cost") -> float:
    """
    Coerce a caller-supplied cost to a non-negative float.

    Raises:
        InvalidArgument: for non-numeric, NaN/inf, or negative values
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgument(f"{field} must be a number.", {"value": value})
    cost = float(value)
    if not math.isfinite(cost) or cost < 0:
        raise InvalidArgument(f"{field} must be a non-negative number.", {"value": value})
    return cost


class AdSpendLedger:
    """Per-day, per-source cost entries."""

    def __init__(self, db: Session):
        self.db = db

    def merge(self, day: date, costs: Mapping[str, float]) -> None:
        """
        Upsert the given sources for ``day``; other sources are left alone.

        Runs in the caller's transaction; the caller commits. PostgreSQL and
        SQLite write every source in one INSERT ... ON CONFLICT (day, source)
        DO UPDATE.
        """
        if not costs:
            return
        cleaned: dict[str, float] = {}
        for source, value in costs.items():
            name = (source or "").strip()
            if not name:
                raise InvalidArgument("source is required.")
            cleaned[name] = validate_cost(value)

        insert = UPSERT_INSERTS.get(self.db.get_bind().dialect.name)
        if insert is None:
            self._merge_rows(day, cleaned)
        else:
            stmt = insert(AdSpendEntry).values(
                [{"day": day, "source": source, "cost": cost} for source, cost in cleaned.items()]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[AdSpendEntry.day, AdSpendEntry.source],
                set_={"cost": stmt.excluded.cost, "updated_at": func.current_timestamp()},
            )
            self.db.execute(stmt)
        logger.info(f"Ad spend merged for {day}: {cleaned}")

    def _merge_rows(self, day: date, cleaned: Mapping[str, float]) -> None:
        existing = {
            entry.source: entry
            for entry in self.db.scalars(
                select(AdSpendEntry).where(
                    AdSpendEntry.day == day,
                    AdSpendEntry.source.in_(list(cleaned)),
                )
            )
        }
        for source, cost in cleaned.items():
            entry = existing.get(source)
            if entry is None:
                self.db.add(AdSpendEntry(day=day, source=source, cost=cost))
            else:
                entry.cost = cost
        self.db.flush()

    def entries_between(self, start_day: date, end_day: date) -> list[AdSpendEntry]:
        """Entries whose day is within ``[start_day, end_day]``."""
        stmt = (
            select(AdSpendEntry)
            .where(AdSpendEntry.day >= start_day, AdSpendEntry.day <= end_day)
            .order_by(AdSpendEntry.day, AdSpendEntry.source)
            .execution_options(populate_existing=True)
        )
        return list(self.db.scalars(stmt))

    def total_between(self, start_day: date, end_day: date) -> float:
        stmt = select(func.coalesce(func.sum(AdSpendEntry.cost), 0.0)).where(
            AdSpendEntry.day >= start_day, AdSpendEntry.day <= end_day
        )
        return float(self.db.scalar(stmt) or 0.0)

    def total_all(self) -> float:
        stmt = select(func.coalesce(func.sum(AdSpendEntry.cost), 0.0))
        return float(self.db.scalar(stmt) or 0.0)

    def daily_totals(self, start_day: date, end_day: date) -> dict[date, float]:
        """Spend summed across sources for each day that has entries."""
        totals: dict[date, float] = defaultdict(float)
        for entry in self.entries_between(start_day, end_day):
            totals[entry.day] += float(entry.cost or 0)
        return dict(totals)


class SettlementCostBook:
    """Year-keyed unit price used for settlement and per-lead revenue."""

    def __init__(self, db: Session):
        self.db = db

    def all_costs(self) -> dict[int, float]:
        rows = self.db.scalars(select(SettlementCost).order_by(SettlementCost.year))
        return {row.year: float(row.unit_cost) for row in rows}

    def unit_cost_for_year(self, year: int) -> float:
        """Configured unit cost for ``year``; 0 when the year is not configured."""
        row = self.db.get(SettlementCost, year)
        return float(row.unit_cost) if row else 0.0

    def set_cost(self, year: int, cost: object) -> None:
        if isinstance(year, bool) or not isinstance(year, int) or year <= 0:
            raise InvalidArgument("year must be a positive integer.", {"value": year})
        unit_cost = validate_cost(cost)
        row = self.db.get(SettlementCost, year)
        if row is None:
            self.db.add(SettlementCost(year=year, unit_cost=unit_cost))
        else:
            row.unit_cost = unit_cost
        logger.info(f"Settlement cost for {year} set to {unit_cost}")
