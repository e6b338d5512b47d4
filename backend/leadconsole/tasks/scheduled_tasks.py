"""
Scheduled jobs: daily lead summary mail and daily ad-cost pull.

The job bodies are plain functions taking a session and ``now`` so they can
be re-run by hand for a given day; the Celery tasks below only open a
session and call them. Both are safe to re-run: the ad-cost pull merges
into the ledger instead of appending.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from celery import shared_task
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.database import SessionLocal
from ..core.transactions import transaction
from ..services.ad_spend import AdSpendLedger
from ..services.ad_spend_providers import AdSpendProvider, default_providers
from ..services.aggregation import source_of
from ..services.lead_repository import LeadRepository
from ..services.notifications import NotificationDispatcher, get_dispatcher
from ..services.role_directory import RoleDirectoryRepository
from ..utils.dates import day_window, format_day, local_day, utc_now


logger = logging.getLogger(__name__)


# =============================================================================
# Database Session Context Manager
# =============================================================================

def get_db_session() -> Session:
    """Create a new database session for task execution."""
    return SessionLocal()


# =============================================================================
# Job bodies
# =============================================================================

def send_daily_summary(
    db: Session,
    now: datetime,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Dict[str, Any]:
    """
    Mail yesterday's leads to everyone subscribed to the daily summary.

    Nothing is sent when yesterday had no leads.
    """
    tz = settings.reporting_zone
    yesterday = local_day(now, tz) - timedelta(days=1)
    leads = LeadRepository(db).created_between(*day_window(yesterday, tz))
    if not leads:
        logger.info(f"No leads on {format_day(yesterday)}; daily summary skipped")
        return {"day": format_day(yesterday), "total": 0, "sent": False}

    recipients = RoleDirectoryRepository(db).get().recipients("notifyOnDailySummary")
    counts = Counter(source_of(lead) for lead in leads)
    payload = {
        "day": format_day(yesterday),
        "total": len(leads),
        "counts_by_source": dict(sorted(counts.items())),
        "leads": [
            {
                "name": lead.name,
                "phone": lead.phone_raw,
                "region": lead.region,
                "source": source_of(lead),
                "created_at": lead.created_at,
            }
            for lead in leads
        ],
    }
    (dispatcher or get_dispatcher()).notify(recipients, "daily_summary", payload)
    logger.info(f"Daily summary for {payload['day']}: {len(leads)} leads, {len(recipients)} recipients")
    return {"day": payload["day"], "total": len(leads), "sent": bool(recipients)}


def pull_ad_costs(
    db: Session,
    now: datetime,
    providers: Optional[Iterable[AdSpendProvider]] = None,
) -> Dict[str, float]:
    """
    Fetch yesterday's spend from every provider and merge positive values.

    Returns:
        {source: cost} as merged (empty when nothing was positive)
    """
    yesterday = local_day(now, settings.reporting_zone) - timedelta(days=1)
    costs: Dict[str, float] = {}
    for provider in providers if providers is not None else default_providers():
        try:
            spend = provider.fetch_daily_spend(yesterday)
        except Exception as e:
            logger.error(f"Ad spend provider {provider.name} failed for {yesterday}: {e}")
            continue
        if spend > 0:
            costs[provider.name] = spend

    if not costs:
        logger.info(f"No ad spend collected for {format_day(yesterday)}")
        return {}

    with transaction(db):
        AdSpendLedger(db).merge(yesterday, costs)
    logger.info(f"Ad spend collected for {format_day(yesterday)}: {costs}")
    return costs


# =============================================================================
# Celery tasks
# =============================================================================

@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    max_retries=3,
)
def send_daily_summary_task(self) -> Dict[str, Any]:
    db = get_db_session()
    try:
        return send_daily_summary(db, utc_now())
    finally:
        db.close()


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    max_retries=3,
)
def pull_ad_costs_task(self) -> Dict[str, float]:
    db = get_db_session()
    try:
        return pull_ad_costs(db, utc_now())
    finally:
        db.close()
