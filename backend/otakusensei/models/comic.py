"""Comic database model."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from otakusensei.database import Base, new_id
from otakusensei.timeutil import utcnow

if TYPE_CHECKING:
    from otakusensei.models.chapter import Chapter
    from otakusensei.models.review import Review
    from otakusensei.models.user import User

GENRES = (
    "Action",
    "Adventure",
    "Comedy",
    "Drama",
    "Fantasy",
    "Horror",
    "Mystery",
    "Romance",
    "Sci-Fi",
    "Slice of Life",
    "Thriller",
)

comic_likes = Table(
    "comic_likes",
    Base.metadata,
    Column("comic_id", String(32), ForeignKey("comics.comic_id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(32), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True),
)


class ComicGenre(Base):
    """One genre tag on a comic."""

    __tablename__ = "comic_genres"

    comic_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("comics.comic_id", ondelete="CASCADE"), primary_key=True
    )
    genre: Mapped[str] = mapped_column(String(30), primary_key=True)

    __table_args__ = (Index("idx_comic_genres_genre", "genre"),)


class Comic(Base):
    """A comic series in the catalog."""

    __tablename__ = "comics"

    comic_id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    cover_image: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str] = mapped_column(String(50), nullable=False)
    premium: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    genre_rows: Mapped[list["ComicGenre"]] = relationship(
        "ComicGenre", cascade="all, delete-orphan", lazy="selectin"
    )
    chapters: Mapped[list["Chapter"]] = relationship(
        "Chapter", back_populates="comic", cascade="all, delete-orphan",
        order_by="Chapter.chapter_number",
    )
    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="comic", cascade="all, delete-orphan"
    )
    liked_by: Mapped[list["User"]] = relationship("User", secondary=comic_likes)

    __table_args__ = (
        UniqueConstraint("title", "author", name="uq_comics_title_author"),
        Index("idx_comics_created_at", "created_at"),
    )

    @property
    def genres(self) -> list[str]:
        return [row.genre for row in self.genre_rows]

    def set_genres(self, genres: list[str]) -> None:
        # Reuse existing rows so unchanged genres are not deleted and re-inserted
        existing = {row.genre: row for row in self.genre_rows}
        self.genre_rows = [
            existing.get(genre) or ComicGenre(genre=genre)
            for genre in dict.fromkeys(genres)
        ]
