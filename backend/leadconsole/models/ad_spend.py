"""
Advertising spend and settlement pricing models.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Date,
    DateTime,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from ..core.database import Base


class AdSpendEntry(Base):
    """
    Cost of one advertising source on one calendar day.

    Keyed by (day, source); sibling sources on the same day are separate
    rows so writing one never clobbers another.
    """

    __tablename__ = "ad_spend"
    __table_args__ = (
        UniqueConstraint("day", "source", name="uq_ad_spend_day_source"),
        CheckConstraint("cost >= 0", name="ck_ad_spend_cost_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    day = Column(Date, nullable=False, index=True)
    source = Column(String(255), nullable=False)
    cost = Column(Float, nullable=False, default=0.0)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    def __repr__(self) -> str:
        return f"<AdSpendEntry(day={self.day}, source={self.source}, cost={self.cost})>"


class SettlementCost(Base):
    """Unit price per valid download (and per-lead revenue value) for one year."""

    __tablename__ = "settlement_costs"

    year = Column(Integer, primary_key=True, autoincrement=False)
    unit_cost = Column(Float, nullable=False, default=0.0)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    def __repr__(self) -> str:
        return f"<SettlementCost(year={self.year}, unit_cost={self.unit_cost})>"
