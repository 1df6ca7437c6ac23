"""Subscription sweep and credential purge tasks."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from otakusensei.celery_app import celery_app
from otakusensei.config import settings
from otakusensei.services.credentials import purge_expired_credentials
from otakusensei.services.mailer import Mailer
from otakusensei.services.subscriptions import run_subscription_sweep

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async code in sync Celery task."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@asynccontextmanager
async def _task_session() -> AsyncIterator[AsyncSession]:
    # Each run gets its own event loop, so it cannot share the app's pooled connections
    engine = create_async_engine(settings.async_database_url, poolclass=NullPool)
    try:
        async with async_sessionmaker(engine, expire_on_commit=False)() as session:
            yield session
    finally:
        await engine.dispose()


async def run_subscription_sweep_async() -> dict:
    """Async implementation of the daily subscription sweep."""
    mailer = Mailer.from_settings()
    async with _task_session() as session:
        result = await run_subscription_sweep(session, mailer)
    return {"status": "success", **result.as_dict()}


async def purge_expired_credentials_async() -> dict:
    """Async implementation of the expired OTP / token cleanup."""
    async with _task_session() as session:
        counts = await purge_expired_credentials(session)
    return {"status": "success", **counts}


@celery_app.task(name="otakusensei.tasks.subscriptions.run_subscription_sweep")
def run_subscription_sweep_task() -> dict:
    """
    Daily subscription maintenance.

    Runs at midnight UTC and:
    1. Downgrades premium users whose subscription has ended
    2. Emails a one-time renewal reminder when the end is near
    """
    logger.info("Starting subscription sweep")
    return run_async(run_subscription_sweep_async())


@celery_app.task(name="otakusensei.tasks.subscriptions.purge_expired_credentials")
def purge_expired_credentials_task() -> dict:
    """Hourly removal of expired OTPs, reset tokens and pending signups."""
    logger.info("Starting credential purge")
    return run_async(purge_expired_credentials_async())
