"""
Campaign attribution enrichment from the GA4 BigQuery export.

After a lead with a ``ga_client_id`` is stored, the latest ``session_start``
event of that browser is looked up and its traffic source, medium and
campaign name overwrite the lead's utm fields. Empty values are stored as
``(not set)`` the way GA reports them. Failures are logged and the lead is
left untouched.

Configuration (environment):
- BIGQUERY_GA_EVENTS_TABLE: e.g. my-project.analytics_123456.events_*
- BIGQUERY_PROJECT: billing project (optional)
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.transactions import transaction
from ..models.lead import Lead


logger = logging.getLogger(__name__)

NOT_SET = "(not set)"

LATEST_SESSION_QUERY = """
    SELECT
        traffic_source.source AS source,
        traffic_source.medium AS medium,
        traffic_source.name AS campaign
    FROM `{table}`
    WHERE user_pseudo_id = @user_pseudo_id
      AND event_name = 'session_start'
    ORDER BY event_timestamp DESC
    LIMIT 1
"""


def user_pseudo_id(ga_client_id: str) -> str:
    """
    GA4 ``user_pseudo_id`` for a client id.

    The export keys users by the first two dot-separated parts of the
    client id ("1234567890.1700000000").
    """
    return ".".join(ga_client_id.strip().split(".")[:2])


class BigQueryAttributionSource:
    """Latest session attribution for a browser, read from the GA4 export."""

    def __init__(self, table: Optional[str] = None, project: Optional[str] = None):
        self.table = table if table is not None else settings.bigquery_ga_events_table
        self.project = project if project is not None else settings.bigquery_project
        self._client = None
        self._bigquery = None

    def is_configured(self) -> bool:
        return bool(self.table and self.table.strip())

    def _get_client(self):
        """
        Get or create the BigQuery client.

        Returns:
            bigquery.Client instance or None if unavailable
        """
        if self._client is None:
            try:
                # Import here so the package works without the optional bigquery extra
                from google.cloud import bigquery

                self._bigquery = bigquery
                self._client = bigquery.Client(project=self.project or None)
                logger.info("BigQuery client created successfully")

            except ImportError:
                logger.error("google-cloud-bigquery package not installed. Run: pip install 'leadconsole[bigquery]'")
                return None
            except Exception as e:
                logger.error(f"Failed to create BigQuery client: {e}")
                return None

        return self._client

    def latest_session(self, ga_client_id: str) -> Optional[Dict[str, Any]]:
        """
        Source, medium and campaign of the newest ``session_start``.

        Returns:
            {"source", "medium", "campaign"} or None when the export has no
            session for this browser

        Raises:
            Whatever the BigQuery client raises; callers decide how to fail.
        """
        client = self._get_client()
        if client is None:
            return None

        bigquery = self._bigquery
        job_config = bigquery.QueryJobConfig(
            query_parameters=[
                bigquery.ScalarQueryParameter("user_pseudo_id", "STRING", user_pseudo_id(ga_client_id)),
            ]
        )
        rows = list(client.query(LATEST_SESSION_QUERY.format(table=self.table), job_config=job_config).result())
        if not rows:
            return None
        row = rows[0]
        return {key: row.get(key) for key in ("source", "medium", "campaign")}


class LeadAttributionEnricher:
    """
    Overwrite a stored lead's utm fields with its GA4 session attribution.

    Example usage:
        LeadAttributionEnricher(db).enrich(lead_id)
    """

    def __init__(self, db: Session, source: Optional[BigQueryAttributionSource] = None):
        self.db = db
        self.source = source or BigQueryAttributionSource()

    def enrich(self, lead_id: str) -> Optional[Dict[str, str]]:
        """
        Returns:
            The utm values written, or None when the lead was left as is
        """
        if not self.source.is_configured():
            logger.debug("BigQuery attribution table not configured; enrichment skipped")
            return None

        lead = self.db.get(Lead, lead_id)
        if lead is None:
            logger.warning(f"Lead {lead_id} no longer exists; enrichment skipped")
            return None
        if not lead.ga_client_id:
            logger.info(f"Lead {lead_id} has no ga_client_id; enrichment skipped")
            return None

        try:
            session = self.source.latest_session(lead.ga_client_id)
        except Exception as e:
            logger.error(f"BigQuery attribution lookup failed for lead {lead_id}: {e}")
            return None

        if session is None:
            logger.info(f"No GA session found for ga_client_id {lead.ga_client_id}")
            return None

        update = {
            "utm_source": session.get("source") or NOT_SET,
            "utm_medium": session.get("medium") or NOT_SET,
            "utm_campaign": session.get("campaign") or NOT_SET,
        }
        with transaction(self.db):
            for field, value in update.items():
                setattr(lead, field, value)
        logger.info(f"Lead {lead_id} enriched from GA4 export: {update}")
        return update
