"""SQLAlchemy database models."""

from otakusensei.models.user import User
from otakusensei.models.comic import Comic, ComicGenre, comic_likes, GENRES
from otakusensei.models.chapter import Chapter
from otakusensei.models.review import Review, review_likes
from otakusensei.models.payment import Payment, SubscriptionPlan, PLAN_TYPES
from otakusensei.models.credentials import Otp, ResetToken, PendingSignup

__all__ = [
    # Accounts
    "User",
    "Otp",
    "ResetToken",
    "PendingSignup",
    # Catalog
    "Comic",
    "ComicGenre",
    "comic_likes",
    "GENRES",
    "Chapter",
    "Review",
    "review_likes",
    # Billing
    "Payment",
    "SubscriptionPlan",
    "PLAN_TYPES",
]
