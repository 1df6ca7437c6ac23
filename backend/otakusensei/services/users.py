"""User lookups and Google account linking."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otakusensei.models import User
from otakusensei.services.google_oauth import GoogleProfile

logger = structlog.get_logger()


async def get_user_by_id(session: AsyncSession, user_id: str) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_phone(session: AsyncSession, phone: str) -> User | None:
    result = await session.execute(select(User).where(User.phone == phone))
    return result.scalar_one_or_none()


async def link_google_account(session: AsyncSession, profile: GoogleProfile) -> User:
    """Find the user for a Google identity, linking or creating as needed.

    - Known Google id: that user.
    - Known email: attach the Google id; a local account becomes hybrid.
    - Otherwise: a new Google-only account.
    """
    result = await session.execute(select(User).where(User.google_id == profile.google_id))
    user = result.scalar_one_or_none()
    if user is not None:
        return user

    user = await get_user_by_email(session, profile.email)
    if user is not None:
        user.google_id = profile.google_id
        if user.provider == "local":
            user.provider = "hybrid"
        await session.commit()
        logger.info("Linked Google account", user_id=user.user_id)
        return user

    user = User(
        google_id=profile.google_id,
        provider="google",
        email=profile.email,
        first_name=profile.first_name,
        last_name=profile.last_name,
        avatar=profile.avatar,
    )
    session.add(user)
    await session.commit()
    logger.info("Created Google user", user_id=user.user_id)
    return user
