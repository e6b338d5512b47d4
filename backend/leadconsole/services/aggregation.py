"""
Lead / ad-spend aggregation.

The reductions at the top of this module are pure functions of the rows
they are given: funnel snapshots, the zero-filled date x source trend
matrix, and the joined cost/lead/revenue/ROAS table. ``AggregationEngine``
does the fetching (through the repositories) and hands the rows to them.

All daily buckets are calendar days in the reporting timezone.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Callable, Iterable, Optional, Sequence

from ..core.config import settings
from ..models.ad_spend import AdSpendEntry
from ..models.lead import Lead
from ..utils.dates import (
    format_day,
    iter_days,
    local_day,
    month_start,
    range_window,
    day_window,
    validate_range,
    week_start,
)
from .ad_spend import AdSpendLedger, SettlementCostBook
from .lead_repository import LeadRepository


logger = logging.getLogger(__name__)

# Bucket for leads that arrived without a source attribute
UNATTRIBUTED_SOURCE = "unattributed"


# =============================================================================
# Result types
# =============================================================================

@dataclass
class FunnelSnapshot:
    total: int = 0
    defect_count: int = 0
    counts_by_source: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "defect_count": self.defect_count,
            "counts_by_source": dict(self.counts_by_source),
        }


@dataclass
class TrendMatrix:
    """
    Day x source grid.

    ``rows`` holds one dict per day in ascending order, each carrying a
    ``date`` key plus a count for every column in ``sources``.
    """
    sources: list[str]
    rows: list[dict[str, Any]]
    cumulative_by_source: dict[str, int]


# =============================================================================
# Pure reductions
# =============================================================================

def source_of(lead: Lead) -> str:
    """Attribution bucket of a lead."""
    source = (lead.utm_source or "").strip()
    return source or UNATTRIBUTED_SOURCE


def cost_per_lead(cost: float, leads: int) -> float:
    return cost / leads if leads > 0 else 0.0


def roas_percent(revenue: float, cost: float) -> float:
    """Return on ad spend as a percentage; 0 when there was no spend."""
    return revenue / cost * 100 if cost > 0 else 0.0


def summarize_funnel(leads: Iterable[Lead]) -> FunnelSnapshot:
    """Reduce a set of leads to totals, defect count and per-source counts."""
    snapshot = FunnelSnapshot()
    by_source: Counter = Counter()
    for lead in leads:
        snapshot.total += 1
        if lead.is_defect:
            snapshot.defect_count += 1
        by_source[source_of(lead)] += 1
    snapshot.counts_by_source = dict(by_source)
    return snapshot


def build_trend_matrix(leads: Iterable[Lead], days: Sequence[date], tz: tzinfo) -> TrendMatrix:
    """
    Count leads per (day, source) over ``days``.

    The column set is taken from the whole window, so every row has the
    same keys, and every cell starts at zero. Leads whose local creation day
    falls outside ``days`` are ignored.
    """
    wanted = set(days)
    bucketed: list[tuple[date, str]] = []
    for lead in leads:
        day = local_day(lead.created_at, tz)
        if day in wanted:
            bucketed.append((day, source_of(lead)))

    sources = sorted({source for _, source in bucketed})
    grid: dict[date, dict[str, int]] = {day: {source: 0 for source in sources} for day in days}
    cumulative = {source: 0 for source in sources}
    for day, source in bucketed:
        grid[day][source] += 1
        cumulative[source] += 1

    rows = [{"date": format_day(day), **grid[day]} for day in sorted(wanted)]
    return TrendMatrix(sources=sources, rows=rows, cumulative_by_source=cumulative)


def build_roas_table(
    leads: Iterable[Lead],
    spend_entries: Iterable[AdSpendEntry],
    start_day: date,
    end_day: date,
    unit_value_for_year: Callable[[int], float],
    tz: tzinfo,
) -> list[dict[str, Any]]:
    """
    Join lead counts/revenue with ad spend on (day, source).

    Emits one row for every day in ``[start_day, end_day]`` and every source
    seen in either input (or a single ``unattributed`` column when neither
    has any). Missing combinations are zero.
    """
    lead_counts: dict[tuple[date, str], int] = defaultdict(int)
    revenue: dict[tuple[date, str], float] = defaultdict(float)
    costs: dict[tuple[date, str], float] = defaultdict(float)
    sources: set[str] = set()

    for lead in leads:
        day = local_day(lead.created_at, tz)
        if not start_day <= day <= end_day:
            continue
        key = (day, source_of(lead))
        lead_counts[key] += 1
        revenue[key] += unit_value_for_year(day.year)
        sources.add(key[1])

    for entry in spend_entries:
        if not start_day <= entry.day <= end_day:
            continue
        key = (entry.day, entry.source)
        costs[key] += float(entry.cost or 0)
        sources.add(entry.source)

    columns = sorted(sources) or [UNATTRIBUTED_SOURCE]

    rows = []
    for day in iter_days(start_day, end_day):
        for source in columns:
            key = (day, source)
            cost = costs.get(key, 0.0)
            cell_revenue = revenue.get(key, 0.0)
            rows.append({
                "date": format_day(day),
                "source": source,
                "cost": cost,
                "leads": lead_counts.get(key, 0),
                "revenue": cell_revenue,
                "roas": roas_percent(cell_revenue, cost),
            })
    return rows


# =============================================================================
# Orchestration
# =============================================================================

class AggregationEngine:
    """
    Fetches leads and spend for a reporting window and reduces them.

    Example usage:
        engine = AggregationEngine(LeadRepository(db), AdSpendLedger(db), SettlementCostBook(db))
        stats = engine.dashboard_stats(utc_now())
    """

    def __init__(
        self,
        leads: LeadRepository,
        ledger: AdSpendLedger,
        costs: SettlementCostBook,
        tz: Optional[tzinfo] = None,
        trend_days: Optional[int] = None,
        week_start_day: Optional[int] = None,
    ):
        self.leads = leads
        self.ledger = ledger
        self.costs = costs
        self.tz = tz or settings.reporting_zone
        self.trend_days = trend_days or settings.trend_days
        self.week_start_day = settings.week_start_day if week_start_day is None else week_start_day

    def _trend_days(self, today: date) -> list[date]:
        first = today - timedelta(days=self.trend_days - 1)
        return list(iter_days(first, today))

    def dashboard_stats(self, now: datetime) -> dict[str, Any]:
        """
        Today / yesterday funnel snapshots, the rolling trend matrix and the
        all-time lead count.
        """
        today = local_day(now, self.tz)
        yesterday = today - timedelta(days=1)

        today_leads = self.leads.created_between(*day_window(today, self.tz))
        yesterday_leads = self.leads.created_between(*day_window(yesterday, self.tz))

        days = self._trend_days(today)
        trend_leads = self.leads.created_between(*range_window(days[0], today, self.tz))
        trend = build_trend_matrix(trend_leads, days, self.tz)

        return {
            "today": summarize_funnel(today_leads).to_dict(),
            "yesterday": summarize_funnel(yesterday_leads).to_dict(),
            "trend": trend.rows,
            "sources": trend.sources,
            "cumulative_by_source": trend.cumulative_by_source,
            "cumulative_total": self.leads.count_all(),
        }

    def window_cost_per_lead(self, start_day: date, end_day: date) -> float:
        """Spend over lead count for ``[start_day, end_day]``."""
        lead_count = self.leads.count_created_between(*range_window(start_day, end_day, self.tz))
        return cost_per_lead(self.ledger.total_between(start_day, end_day), lead_count)

    def cost_trend(self, today: date) -> list[dict[str, Any]]:
        days = self._trend_days(today)
        totals = self.ledger.daily_totals(days[0], today)
        return [{"date": format_day(day), "cost": totals.get(day, 0.0)} for day in days]

    def roas_report(self, start_day: date, end_day: date, now: datetime) -> dict[str, Any]:
        """
        ROAS rows for the requested range plus cost-per-lead scalars.

        ``cumulative_cost_per_lead`` divides the whole ledger by every stored
        lead; it has no date bound and is reported for reference only.

        Raises:
            InvalidArgument: if ``start_day`` is after ``end_day``
        """
        validate_range(start_day, end_day)
        today = local_day(now, self.tz)

        leads = self.leads.created_between(*range_window(start_day, end_day, self.tz))
        spend = self.ledger.entries_between(start_day, end_day)
        unit_values = self.costs.all_costs()
        rows = build_roas_table(
            leads,
            spend,
            start_day,
            end_day,
            lambda year: unit_values.get(year, 0.0),
            self.tz,
        )

        core_metrics = {
            "week_cost_per_lead": self.window_cost_per_lead(
                week_start(today, self.week_start_day), today
            ),
            "month_cost_per_lead": self.window_cost_per_lead(month_start(today), today),
            "range_cost_per_lead": self.window_cost_per_lead(start_day, end_day),
            "cumulative_cost_per_lead": cost_per_lead(
                self.ledger.total_all(), self.leads.count_all()
            ),
        }
        logger.debug(
            f"ROAS report {format_day(start_day)}..{format_day(end_day)}: "
            f"{len(leads)} leads, {len(spend)} spend entries"
        )

        return {
            "rows": rows,
            "cost_trend": self.cost_trend(today),
            "core_metrics": core_metrics,
        }
