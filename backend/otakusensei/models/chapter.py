"""Chapter database model."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from otakusensei.database import Base, new_id
from otakusensei.timeutil import utcnow

if TYPE_CHECKING:
    from otakusensei.models.comic import Comic


class Chapter(Base):
    """A single chapter of a comic, stored as a PDF URL."""

    __tablename__ = "chapters"

    chapter_id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    comic_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("comics.comic_id", ondelete="CASCADE"), nullable=False
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    chapter_number: Mapped[int] = mapped_column(Integer, nullable=False)
    pdf_url: Mapped[str] = mapped_column(String(1000), nullable=False)

    premium: Mapped[bool] = mapped_column(Boolean, default=False)
    available_offline: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    comic: Mapped["Comic"] = relationship("Comic", back_populates="chapters")

    __table_args__ = (
        UniqueConstraint("comic_id", "chapter_number", name="uq_chapters_comic_number"),
    )
