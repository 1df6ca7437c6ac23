"""
In-process scheduler for single-instance deployments.

Runs the same jobs as the Celery beat schedule:
1. Subscription sweep (daily at ``subscription_sweep_time`` UTC)
2. Expired credential purge (every hour)

Started in a daemon thread by the API lifespan in production, or run
standalone with ``python -m otakusensei.tasks.scheduler``.
"""

import asyncio
import sys
import time

import schedule
import structlog

from otakusensei.config import settings
from otakusensei.tasks.subscriptions import (
    purge_expired_credentials_async,
    run_subscription_sweep_async,
)

logger = structlog.get_logger()


def run_sweep() -> dict:
    """Sync wrapper for the subscription sweep."""
    logger.info("Running subscription sweep...")
    result = asyncio.run(run_subscription_sweep_async())
    logger.info("Subscription sweep finished", **result)
    return result


def run_purge() -> dict:
    """Sync wrapper for the credential purge."""
    logger.info("Running credential purge...")
    result = asyncio.run(purge_expired_credentials_async())
    logger.info("Credential purge finished", **result)
    return result


def configure_schedule(scheduler: schedule.Scheduler | None = None) -> schedule.Scheduler:
    scheduler = scheduler or schedule.default_scheduler
    # Local process time; deployments run in UTC
    scheduler.every().day.at(settings.subscription_sweep_time).do(run_sweep)
    scheduler.every(1).hours.do(run_purge)
    return scheduler


def start_scheduler():
    """Start the scheduler loop."""
    logger.info("Starting subscription scheduler...")
    scheduler = configure_schedule()

    logger.info(
        "Scheduler configured",
        subscription_sweep=f"daily at {settings.subscription_sweep_time} UTC",
        credential_purge="every 1 hour",
    )

    while True:
        scheduler.run_pending()
        time.sleep(60)  # Check every minute


if __name__ == "__main__":
    if len(sys.argv) > 1:
        command = sys.argv[1]
        if command == "sweep":
            run_sweep()
        elif command == "purge":
            run_purge()
        elif command == "daemon":
            start_scheduler()
        else:
            print(f"Unknown command: {command}")
            print("Usage: python -m otakusensei.tasks.scheduler [sweep|purge|daemon]")
    else:
        run_sweep()
