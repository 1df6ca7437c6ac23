"""User database model."""

from datetime import datetime

from sqlalchemy import String, DateTime, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column

from otakusensei.database import Base, new_id
from otakusensei.timeutil import as_utc, utcnow


class User(Base):
    """User account for authentication and subscription."""

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    hashed_password: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Identity provider: local, google, or hybrid (both)
    google_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    provider: Mapped[str] = mapped_column(String(10), default="local")

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), default="")
    avatar: Mapped[str] = mapped_column(String(500), default="")
    role: Mapped[str] = mapped_column(String(10), default="user")

    # Subscription
    subscription_plan: Mapped[str] = mapped_column(String(10), default="none")
    subscription_start: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    subscription_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_users_subscription", "subscription_plan", "subscription_end"),)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def has_active_premium(self, now: datetime | None = None) -> bool:
        """Check if user may read premium content right now."""
        if self.is_admin:
            return True
        if self.subscription_plan != "premium":
            return False
        now = now or utcnow()
        start = as_utc(self.subscription_start)
        end = as_utc(self.subscription_end)
        if start is None or start > now:
            return False
        return end is None or end >= now

    def reset_subscription(self) -> None:
        self.subscription_plan = "none"
        self.subscription_start = None
        self.subscription_end = None
        self.reminder_sent = False
