"""Payment and subscription plan database models."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Integer, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from otakusensei.database import Base, new_id
from otakusensei.timeutil import utcnow

PLAN_TYPES = ("monthly", "quarterly", "yearly")


class SubscriptionPlan(Base):
    """Admin-editable price and duration for a plan type."""

    __tablename__ = "subscription_plans"

    plan_type: Mapped[str] = mapped_column(String(20), primary_key=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    @property
    def price_cents(self) -> int:
        return int(self.price * 100)


class Payment(Base):
    """One checkout attempt. Status moves pending -> success | failed only."""

    __tablename__ = "payments"

    payment_id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    plan_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Stripe PaymentIntent id
    payment_intent_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(10), default="pending")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_payments_user_status", "user_id", "status"),)

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"
