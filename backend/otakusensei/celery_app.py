"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from otakusensei.config import settings

celery_app = Celery(
    "otakusensei",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["otakusensei.tasks.subscriptions"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,  # 10 minutes max
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    # Subscription expiry and renewal reminders: daily at midnight UTC
    "subscription-sweep": {
        "task": "otakusensei.tasks.subscriptions.run_subscription_sweep",
        "schedule": crontab(minute=0, hour=0),
    },
    # Expired OTPs, reset tokens and pending signups: hourly
    "credential-purge": {
        "task": "otakusensei.tasks.subscriptions.purge_expired_credentials",
        "schedule": crontab(minute=5),
    },
}
