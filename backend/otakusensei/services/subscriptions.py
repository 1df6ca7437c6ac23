"""Subscription lifecycle: premium access, activation and the daily sweep.

The sweep runs once a day outside any request:

1. Users whose premium window ended are downgraded to plan "none".
2. Users whose window ends within ``reminder_window_days`` get a single
   renewal reminder, guarded by ``reminder_sent``.

Running it twice on the same day sends no duplicate reminders, and an
expired subscription is never revived without a new payment.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from otakusensei.config import settings
from otakusensei.models import User
from otakusensei.services.mailer import EmailDeliveryError, Mailer
from otakusensei.timeutil import as_utc, utcnow

logger = structlog.get_logger()


def has_active_premium(user: User, now: datetime | None = None) -> bool:
    """Admins always, otherwise plan premium with start <= now <= end (end optional)."""
    return user.has_active_premium(now or utcnow())


def activate_premium(user: User, duration_days: int, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Open a fresh premium window [now, now + duration_days]."""
    start = now or utcnow()
    end = start + timedelta(days=duration_days)
    user.subscription_plan = "premium"
    user.subscription_start = start
    user.subscription_end = end
    user.reminder_sent = False
    return start, end


@dataclass
class SweepResult:
    checked: int = 0
    downgraded: int = 0
    reminded: int = 0
    errors: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


async def run_subscription_sweep(
    session: AsyncSession,
    mailer: Mailer,
    now: datetime | None = None,
    reminder_window_days: int | None = None,
) -> SweepResult:
    """Expire ended premium subscriptions and send renewal reminders."""
    now = now or utcnow()
    window = reminder_window_days if reminder_window_days is not None else settings.reminder_window_days
    remind_before = now + timedelta(days=window)

    result = await session.execute(
        select(User)
        .where(User.subscription_plan == "premium")
        .where(User.subscription_start <= now)
        .order_by(User.user_id)
    )
    users = result.scalars().all()

    summary = SweepResult()
    for user in users:
        summary.checked += 1
        end = as_utc(user.subscription_end)
        if end is None:
            continue

        if end < now:
            user.reset_subscription()
            await session.commit()
            summary.downgraded += 1
            logger.info("Downgraded expired subscription", user_id=user.user_id, email=user.email)
            continue

        if now < end <= remind_before and not user.reminder_sent:
            try:
                await mailer.send_subscription_reminder_email(user.email, user.subscription_plan, end)
            except EmailDeliveryError as e:
                # Left unflagged so the next run retries
                summary.errors += 1
                logger.error("Reminder email failed", user_id=user.user_id, error=str(e))
                continue
            user.reminder_sent = True
            await session.commit()
            summary.reminded += 1
            logger.info("Sent reminder email", user_id=user.user_id, email=user.email)

    logger.info("Subscription sweep complete", **summary.as_dict())
    return summary


async def count_premium_users(session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count()).select_from(User).where(User.subscription_plan == "premium")
    )
    return int(result.scalar_one())
