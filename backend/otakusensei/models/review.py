"""Review database model."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from otakusensei.database import Base, new_id
from otakusensei.timeutil import utcnow

if TYPE_CHECKING:
    from otakusensei.models.comic import Comic
    from otakusensei.models.user import User

review_likes = Table(
    "review_likes",
    Base.metadata,
    Column("review_id", String(32), ForeignKey("reviews.review_id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(32), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True),
)


class Review(Base):
    """A user's rating and comment on a comic."""

    __tablename__ = "reviews"

    review_id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    comic_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("comics.comic_id", ondelete="CASCADE"), nullable=False
    )

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    comic: Mapped["Comic"] = relationship("Comic", back_populates="reviews")
    user: Mapped["User"] = relationship("User")
    liked_by: Mapped[list["User"]] = relationship("User", secondary=review_likes)

    __table_args__ = (
        UniqueConstraint("user_id", "comic_id", name="uq_reviews_user_comic"),
    )
