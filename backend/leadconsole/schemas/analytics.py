"""
Analytics and settlement request/response schemas.

Request date ranges accept both ``start_date`` and ``startDate`` spellings.
"""

from datetime import date
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Requests
# =============================================================================

class DateRangeRequest(BaseModel):
    """Inclusive calendar-day range in the reporting timezone."""

    model_config = ConfigDict(populate_by_name=True)

    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")


class AdCostRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(..., alias="date")
    source: str = Field(..., min_length=1, max_length=255)
    cost: float = Field(..., ge=0)

    @field_validator("source")
    @classmethod
    def strip_source(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("source must not be blank")
        return v

    @field_validator("cost", mode="before")
    @classmethod
    def cost_is_number(cls, v: Any) -> Any:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("must be a number")
        return v


class SettlementCostRequest(BaseModel):
    year: int = Field(..., ge=1, le=9999)
    cost: float = Field(..., ge=0)

    @field_validator("cost", mode="before")
    @classmethod
    def cost_is_number(cls, v: Any) -> Any:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("must be a number")
        return v


# =============================================================================
# Dashboard
# =============================================================================

class FunnelSnapshotResponse(BaseModel):
    total: int
    defect_count: int
    counts_by_source: Dict[str, int]


class DashboardStatsResponse(BaseModel):
    today: FunnelSnapshotResponse
    yesterday: FunnelSnapshotResponse
    trend: List[Dict[str, Any]] = Field(..., description="One row per day: {date, <source>: count}")
    sources: List[str]
    cumulative_by_source: Dict[str, int]
    cumulative_total: int


# =============================================================================
# ROAS
# =============================================================================

class RoasRow(BaseModel):
    date: str
    source: str
    cost: float
    leads: int
    revenue: float
    roas: float = Field(..., description="revenue / cost * 100, 0 without spend")


class CostTrendPoint(BaseModel):
    date: str
    cost: float


class CoreMetrics(BaseModel):
    """Cost per lead over several windows; 0 wherever the window has no leads."""

    week_cost_per_lead: float = Field(..., description="Reporting week to date (week starts on WEEK_START_DAY)")
    month_cost_per_lead: float = Field(..., description="Calendar month to date")
    range_cost_per_lead: float = Field(..., description="The requested startDate..endDate range")
    cumulative_cost_per_lead: float = Field(
        ...,
        description=(
            "All recorded ad spend divided by all leads ever stored, with no date bound. "
            "Informational only: spend recorded before lead capture began, or leads "
            "deleted later, skew it, so week, month and range figures are the ones to compare."
        ),
    )


class RoasReportResponse(BaseModel):
    rows: List[RoasRow]
    cost_trend: List[CostTrendPoint]
    core_metrics: CoreMetrics


# =============================================================================
# Settlement
# =============================================================================

class SettlementConfigResponse(BaseModel):
    costs: Dict[int, float] = Field(..., description="Unit cost by year")


class SettlementRow(BaseModel):
    date: str
    downloads: int
    defects: int


class SettlementResponse(BaseModel):
    daily_rows: List[SettlementRow]
    unit_cost: float
