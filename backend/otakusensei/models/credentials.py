"""Short-lived credential models.

Each row carries an ``expires_at`` timestamp. Reads treat expired rows as
absent and ``purge_expired_credentials`` deletes them periodically.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from otakusensei.database import Base


class Otp(Base):
    """Signup email verification code."""

    __tablename__ = "otps"

    email: Mapped[str] = mapped_column(String(255), primary_key=True)
    otp: Mapped[str] = mapped_column(String(6), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_otps_expires_at", "expires_at"),)


class ResetToken(Base):
    """Password reset token."""

    __tablename__ = "reset_tokens"

    email: Mapped[str] = mapped_column(String(255), primary_key=True)
    token: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_reset_tokens_expires_at", "expires_at"),)


class PendingSignup(Base):
    """Registration details held until the signup OTP is verified."""

    __tablename__ = "pending_signups"

    email: Mapped[str] = mapped_column(String(255), primary_key=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), default="")
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    avatar: Mapped[str] = mapped_column(String(500), default="")
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_pending_signups_expires_at", "expires_at"),)
