"""Comic, chapter and review Pydantic schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, ConfigDict, Field, field_validator, model_validator

from otakusensei.models import GENRES, Chapter, Review
from otakusensei.schemas.common import APIResponse, CamelModel, Pagination, check_url
from otakusensei.schemas.user import UserSummary
from otakusensei.services.catalog import ComicWithStats
from otakusensei.timeutil import as_utc


def check_genres(values: list[str]) -> list[str]:
    cleaned = [v.strip() for v in values]
    invalid = [v for v in cleaned if v not in GENRES]
    if invalid:
        raise ValueError(f"Invalid genre(s): {', '.join(invalid)}")
    if not cleaned:
        raise ValueError("At least one genre is required")
    return list(dict.fromkeys(cleaned))


def _stripped(min_length: int, max_length: int, label: str):
    def check(value: str) -> str:
        value = value.strip()
        if not min_length <= len(value) <= max_length:
            raise ValueError(f"{label} must be between {min_length} and {max_length} characters")
        return value

    return AfterValidator(check)


def _pdf_url(value: str) -> str:
    return check_url(value, "PDF URL must be a valid URL")


def _non_empty(label: str):
    def check(value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError(f"{label} must be a non-empty string")
        return value

    return AfterValidator(check)


Title = Annotated[str, _stripped(1, 100, "Title")]
Description = Annotated[str, _stripped(10, 1000, "Description")]
Author = Annotated[str, _stripped(2, 50, "Author")]
CoverImage = Annotated[str, _non_empty("Cover image")]
Genres = Annotated[list[str], AfterValidator(check_genres)]
PdfUrl = Annotated[str, AfterValidator(_pdf_url)]
ChapterTitle = Annotated[str, _non_empty("Title")]


# -----------------
# Comics
# -----------------


class ComicCreate(CamelModel):
    title: Title
    description: Description
    cover_image: CoverImage
    genres: Genres
    author: Author
    premium: bool = False


class ComicUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    title: Title | None = None
    description: Description | None = None
    cover_image: CoverImage | None = None
    genres: Genres | None = None
    author: Author | None = None
    premium: bool | None = None

    @model_validator(mode="after")
    def not_empty(self) -> "ComicUpdate":
        if not self.model_fields_set:
            raise ValueError("No updates provided")
        return self


class ChapterSummary(CamelModel):
    """Chapter listing entry. The PDF URL is only served by the gated endpoint."""

    id: str
    title: str
    chapter_number: int
    premium: bool
    available_offline: bool
    created_at: datetime | None = None

    @classmethod
    def from_chapter(cls, chapter: Chapter) -> "ChapterSummary":
        return cls(
            id=chapter.chapter_id,
            title=chapter.title,
            chapter_number=chapter.chapter_number,
            premium=chapter.premium,
            available_offline=chapter.available_offline,
            created_at=as_utc(chapter.created_at),
        )


class ReviewOut(CamelModel):
    id: str
    comic_id: str
    user: UserSummary | None = None
    rating: int
    comment: str
    likes_count: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_review(cls, review: Review, likes_count: int = 0, include_user: bool = True) -> "ReviewOut":
        return cls(
            id=review.review_id,
            comic_id=review.comic_id,
            user=UserSummary.from_user(review.user) if include_user and review.user else None,
            rating=review.rating,
            comment=review.comment,
            likes_count=likes_count,
            created_at=as_utc(review.created_at),
        )


class ComicOut(CamelModel):
    id: str
    title: str
    description: str
    cover_image: str
    genres: list[str]
    author: str
    premium: bool
    average_rating: float = 0
    likes_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Present only when requested via ?populate=
    chapters: list[ChapterSummary] | None = None
    reviews: list[ReviewOut] | None = None
    likes: list[UserSummary] | None = None

    @classmethod
    def from_stats(cls, item: ComicWithStats) -> "ComicOut":
        comic = item.comic
        return cls(
            id=comic.comic_id,
            title=comic.title,
            description=comic.description,
            cover_image=comic.cover_image,
            genres=comic.genres,
            author=comic.author,
            premium=comic.premium,
            average_rating=item.average_rating,
            likes_count=item.likes_count,
            created_at=as_utc(comic.created_at),
            updated_at=as_utc(comic.updated_at),
        )


class ComicResponse(APIResponse):
    comic: ComicOut


class ComicDataResponse(APIResponse):
    data: ComicOut


class ComicListData(CamelModel):
    comics: list[ComicOut]
    pagination: Pagination


class ComicListResponse(APIResponse):
    data: ComicListData


class LikeToggleData(CamelModel):
    likes_count: int
    has_liked: bool


class LikeToggleResponse(APIResponse):
    data: LikeToggleData


# -----------------
# Chapters
# -----------------


class ChapterCreate(CamelModel):
    comic_id: str
    title: ChapterTitle
    chapter_number: int = Field(ge=1)
    pdf_url: PdfUrl
    premium: bool = False
    available_offline: bool = False


class ChapterUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    title: ChapterTitle | None = None
    chapter_number: int | None = Field(default=None, ge=1)
    pdf_url: PdfUrl | None = None
    premium: bool | None = None
    available_offline: bool | None = None

    @model_validator(mode="after")
    def not_empty(self) -> "ChapterUpdate":
        if not self.model_fields_set:
            raise ValueError("No updates provided")
        return self


class ChapterOut(ChapterSummary):
    comic_id: str
    pdf_url: str

    @classmethod
    def from_chapter(cls, chapter: Chapter) -> "ChapterOut":
        summary = ChapterSummary.from_chapter(chapter)
        return cls(**summary.model_dump(), comic_id=chapter.comic_id, pdf_url=chapter.pdf_url)


class ChapterResponse(APIResponse):
    chapter: ChapterOut


class ChapterDataResponse(APIResponse):
    data: ChapterOut


class ChapterPdfData(CamelModel):
    pdf_url: str


class ChapterPdfResponse(APIResponse):
    data: ChapterPdfData


# -----------------
# Reviews
# -----------------


class ReviewCreate(CamelModel):
    rating: int = Field(ge=1, le=5)
    comment: Annotated[str, _non_empty("Comment")]

    @field_validator("rating", mode="before")
    @classmethod
    def whole_number(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value != int(value):
            raise ValueError("Rating must be a number between 1 and 5")
        return int(value)


class ReviewResponse(APIResponse):
    review: ReviewOut


class ReviewListData(CamelModel):
    reviews: list[ReviewOut]
    pagination: Pagination


class ReviewListResponse(APIResponse):
    data: ReviewListData
