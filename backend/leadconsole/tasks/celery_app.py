"""
Celery application configuration.

Configures Celery for the console's scheduled jobs and post-intake tasks with:
- Redis as message broker
- Beat schedules in the reporting timezone
- Automatic retry with exponential backoff on the task wrappers
"""

import logging

from celery import Celery
from celery.schedules import crontab

from ..core.config import settings


logger = logging.getLogger(__name__)


# =============================================================================
# Celery Application
# =============================================================================

celery_app = Celery(
    "leadconsole",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "leadconsole.tasks.scheduled_tasks",
        "leadconsole.tasks.lead_tasks",
    ],
)


# =============================================================================
# Celery Configuration
# =============================================================================

celery_app.conf.update(
    # Task execution settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # crontab entries below are read in the reporting timezone
    timezone=settings.reporting_timezone,
    enable_utc=True,

    # Task time limits
    task_time_limit=settings.celery_task_time_limit,  # Hard limit (kill task)
    task_soft_time_limit=max(settings.celery_task_time_limit - 30, 1),  # Soft limit (raise exception)

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    # Broker settings
    broker_connection_retry_on_startup=True,
    broker_connection_max_retries=10,

    # Task acknowledgement
    task_acks_late=True,  # Ack after task completes (more reliable)
    task_reject_on_worker_lost=True,  # Re-queue if worker dies

    task_default_queue="default",

    beat_scheduler="celery.beat:PersistentScheduler",
    beat_schedule_filename="/tmp/celerybeat-schedule",  # Use /tmp for writable location

    # Beat schedule for periodic tasks
    beat_schedule={
        "pull-ad-costs-daily": {
            "task": "leadconsole.tasks.scheduled_tasks.pull_ad_costs_task",
            "schedule": crontab(hour=4, minute=0),
        },
        "send-daily-summary": {
            "task": "leadconsole.tasks.scheduled_tasks.send_daily_summary_task",
            "schedule": crontab(hour=5, minute=0),
        },
    },
)
