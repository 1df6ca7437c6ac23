"""OTP, password-reset token and pending-signup storage."""

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from otakusensei.config import settings
from otakusensei.models import Otp, PendingSignup, ResetToken
from otakusensei.timeutil import as_utc, utcnow

logger = structlog.get_logger()

RESET_TOKEN_LENGTH = 64
_RESET_TOKEN_RE = re.compile(rf"[0-9a-f]{{{RESET_TOKEN_LENGTH}}}")


class CredentialError(Exception):
    """An OTP or reset token did not verify."""


def generate_otp() -> str:
    """Six-digit numeric code, 100000-999999."""
    return str(100000 + secrets.randbelow(900000))


def generate_reset_token() -> str:
    return secrets.token_hex(RESET_TOKEN_LENGTH // 2)


def is_reset_token(value: str) -> bool:
    """Shape check: exactly 64 lowercase hex characters."""
    return _RESET_TOKEN_RE.fullmatch(value) is not None


def _matches(stored: str, supplied: str) -> bool:
    # compare_digest rejects non-ASCII str, bytes compare any input
    return secrets.compare_digest(stored.encode(), supplied.encode())


def _expired(expires_at: datetime, now: datetime) -> bool:
    return now > as_utc(expires_at)


async def save_otp(session: AsyncSession, email: str, otp: str, now: datetime | None = None) -> Otp:
    """Store (or replace) the OTP for an email."""
    now = now or utcnow()
    expires_at = now + timedelta(minutes=settings.otp_ttl_minutes)
    record = await session.get(Otp, email)
    if record is None:
        record = Otp(email=email, otp=otp, expires_at=expires_at)
        session.add(record)
    else:
        record.otp = otp
        record.expires_at = expires_at
    return record


async def verify_otp(session: AsyncSession, email: str, otp: str, now: datetime | None = None) -> None:
    """Check and consume an OTP. Raises CredentialError if it does not verify."""
    now = now or utcnow()
    record = await session.get(Otp, email)
    if record is None or not _matches(record.otp, otp):
        raise CredentialError("Invalid OTP")
    if _expired(record.expires_at, now):
        raise CredentialError("OTP has expired")
    await session.delete(record)


async def save_reset_token(
    session: AsyncSession, email: str, token: str, now: datetime | None = None
) -> ResetToken:
    now = now or utcnow()
    expires_at = now + timedelta(minutes=settings.reset_token_ttl_minutes)
    record = await session.get(ResetToken, email)
    if record is None:
        record = ResetToken(email=email, token=token, expires_at=expires_at)
        session.add(record)
    else:
        record.token = token
        record.expires_at = expires_at
    return record


async def verify_reset_token(
    session: AsyncSession, email: str, token: str, now: datetime | None = None
) -> None:
    now = now or utcnow()
    record = await session.get(ResetToken, email)
    if record is None or not _matches(record.token, token):
        raise CredentialError("Invalid reset token")
    if _expired(record.expires_at, now):
        raise CredentialError("Reset token has expired")
    await session.delete(record)


@dataclass
class SignupDetails:
    email: str
    hashed_password: str
    first_name: str
    last_name: str = ""
    phone: str | None = None
    avatar: str = ""


async def save_pending_signup(
    session: AsyncSession, details: SignupDetails, now: datetime | None = None
) -> PendingSignup:
    """Hold registration details until the OTP is verified."""
    now = now or utcnow()
    expires_at = now + timedelta(minutes=settings.pending_signup_ttl_minutes)
    record = await session.get(PendingSignup, details.email)
    if record is None:
        record = PendingSignup(email=details.email)
        session.add(record)
    record.hashed_password = details.hashed_password
    record.first_name = details.first_name
    record.last_name = details.last_name
    record.phone = details.phone
    record.avatar = details.avatar
    record.expires_at = expires_at
    return record


async def pop_pending_signup(
    session: AsyncSession, email: str, now: datetime | None = None
) -> SignupDetails | None:
    """Consume the pending signup for an email. Expired records count as missing."""
    now = now or utcnow()
    record = await session.get(PendingSignup, email)
    if record is None:
        return None
    await session.delete(record)
    if _expired(record.expires_at, now):
        return None
    return SignupDetails(
        email=record.email,
        hashed_password=record.hashed_password,
        first_name=record.first_name,
        last_name=record.last_name or "",
        phone=record.phone,
        avatar=record.avatar or "",
    )


async def purge_expired_credentials(session: AsyncSession, now: datetime | None = None) -> dict:
    """Delete expired OTPs, reset tokens and pending signups."""
    now = now or utcnow()
    counts = {}
    for name, model in (("otps", Otp), ("reset_tokens", ResetToken), ("pending_signups", PendingSignup)):
        result = await session.execute(delete(model).where(model.expires_at < now))
        counts[name] = result.rowcount or 0
    await session.commit()

    logger.info("Purged expired credentials", **counts)
    return counts
