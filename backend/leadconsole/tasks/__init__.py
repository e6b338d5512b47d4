"""
Celery tasks package for the console's background jobs.

Provides:
- Daily lead summary mail
- Daily ad-cost pull from the configured providers
- GA4 attribution enrichment of new leads
"""

from .celery_app import celery_app
from .lead_tasks import enrich_lead_attribution_task
from .scheduled_tasks import (
    send_daily_summary,
    pull_ad_costs,
    send_daily_summary_task,
    pull_ad_costs_task,
)

__all__ = [
    "celery_app",
    "enrich_lead_attribution_task",
    "send_daily_summary",
    "pull_ad_costs",
    "send_daily_summary_task",
    "pull_ad_costs_task",
]
