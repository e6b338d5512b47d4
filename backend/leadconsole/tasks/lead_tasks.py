"""
Celery tasks for post-intake lead processing.

Provides:
- GA4 attribution enrichment of freshly stored leads
"""

import logging
from typing import Dict, Optional

from celery import shared_task
from sqlalchemy.orm import Session

from ..core.database import SessionLocal
from ..services.lead_enrichment import LeadAttributionEnricher


logger = logging.getLogger(__name__)


def get_db_session() -> Session:
    """Create a new database session for task execution."""
    return SessionLocal()


@shared_task(bind=True, max_retries=0)
def enrich_lead_attribution_task(self, lead_id: str) -> Optional[Dict[str, str]]:
    """
    Overwrite the lead's utm fields from its latest GA4 session.

    Lookup failures are logged by the enricher and never retried.
    """
    db = get_db_session()
    try:
        return LeadAttributionEnricher(db).enrich(lead_id)
    finally:
        db.close()
