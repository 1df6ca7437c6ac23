"""Comic catalog queries with derived rating and like counts.

``average_rating`` and ``likes_count`` are never stored on the comic. They are
computed per query from the reviews and comic_likes tables, so rating and
likes thresholds are applied to the aggregated values.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from otakusensei.models import Comic, ComicGenre, Review, comic_likes, review_likes
from otakusensei.timeutil import as_utc

SortKey = Literal["createdAt", "title", "author", "averageRating", "likesCount"]

MAX_PAGE_SIZE = 100


@dataclass
class ComicQuery:
    """Filters, sort and page for a catalog listing."""

    page: int = 1
    limit: int = 10
    search: str | None = None
    exact_match: bool = False
    genres: list[str] = field(default_factory=list)
    genre_match: Literal["any", "all"] = "any"
    premium: bool | None = None
    min_rating: float | None = None
    min_likes: int | None = None
    created_after: datetime | None = None
    sort_by: SortKey = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("Page must be a positive integer")
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            raise ValueError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class ComicWithStats:
    comic: Comic
    average_rating: float
    likes_count: int


@dataclass
class ComicPage:
    items: list[ComicWithStats]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


def _stats_columns():
    """Subqueries for the derived columns, keyed by comic_id."""
    ratings = (
        select(Review.comic_id.label("comic_id"), func.avg(Review.rating).label("avg_rating"))
        .group_by(Review.comic_id)
        .subquery()
    )
    likes = (
        select(comic_likes.c.comic_id.label("comic_id"), func.count().label("likes_count"))
        .group_by(comic_likes.c.comic_id)
        .subquery()
    )
    average_rating = func.coalesce(ratings.c.avg_rating, 0)
    likes_count = func.coalesce(likes.c.likes_count, 0)
    return ratings, likes, average_rating, likes_count


def _base_query() -> tuple[Select, object, object]:
    ratings, likes, average_rating, likes_count = _stats_columns()
    query = (
        select(Comic, average_rating.label("average_rating"), likes_count.label("likes_count"))
        .outerjoin(ratings, ratings.c.comic_id == Comic.comic_id)
        .outerjoin(likes, likes.c.comic_id == Comic.comic_id)
    )
    return query, average_rating, likes_count


def _genre_filter(genres: list[str], match: str):
    wanted = list(dict.fromkeys(genres))
    tagged = select(ComicGenre.comic_id).where(ComicGenre.genre.in_(wanted))
    if match == "all":
        tagged = tagged.group_by(ComicGenre.comic_id).having(
            func.count(func.distinct(ComicGenre.genre)) == len(wanted)
        )
    return Comic.comic_id.in_(tagged)


def _search_filter(term: str, exact: bool):
    if exact:
        return or_(Comic.title == term, Comic.author == term)
    needle = term.lower()
    return or_(
        func.lower(Comic.title).contains(needle, autoescape=True),
        func.lower(Comic.author).contains(needle, autoescape=True),
    )


def _to_stats(row) -> ComicWithStats:
    comic, average_rating, likes_count = row
    return ComicWithStats(
        comic=comic,
        average_rating=round(float(average_rating or 0), 2),
        likes_count=int(likes_count or 0),
    )


async def list_comics(session: AsyncSession, query: ComicQuery) -> ComicPage:
    """One page of comics matching the query, with derived stats."""
    stmt, average_rating, likes_count = _base_query()

    conditions = []
    if query.search and query.search.strip():
        conditions.append(_search_filter(query.search.strip(), query.exact_match))
    if query.genres:
        conditions.append(_genre_filter(query.genres, query.genre_match))
    if query.premium is not None:
        conditions.append(Comic.premium == query.premium)
    if query.created_after is not None:
        conditions.append(Comic.created_at >= as_utc(query.created_after))
    # Thresholds on derived values
    if query.min_rating is not None:
        conditions.append(average_rating >= query.min_rating)
    if query.min_likes is not None:
        conditions.append(likes_count >= query.min_likes)

    if conditions:
        stmt = stmt.where(and_(*conditions))

    total = await session.scalar(select(func.count()).select_from(stmt.subquery()))

    sort_columns = {
        "createdAt": Comic.created_at,
        "title": Comic.title,
        "author": Comic.author,
        "averageRating": average_rating,
        "likesCount": likes_count,
    }
    column = sort_columns[query.sort_by]
    ordering = column.asc() if query.sort_order == "asc" else column.desc()
    stmt = stmt.order_by(ordering, Comic.comic_id).offset(query.offset).limit(query.limit)

    result = await session.execute(stmt)
    items = [_to_stats(row) for row in result.all()]

    return ComicPage(items=items, total=int(total or 0), page=query.page, limit=query.limit)


async def get_comic_with_stats(session: AsyncSession, comic_id: str) -> ComicWithStats | None:
    stmt, _, _ = _base_query()
    result = await session.execute(stmt.where(Comic.comic_id == comic_id))
    row = result.first()
    return _to_stats(row) if row else None


async def count_comics(session: AsyncSession) -> int:
    return int(await session.scalar(select(func.count()).select_from(Comic)) or 0)


async def get_comic_stats(session: AsyncSession, comic_id: str) -> tuple[float, int]:
    """(average_rating, likes_count) for one comic."""
    item = await get_comic_with_stats(session, comic_id)
    if item is None:
        return 0.0, 0
    return item.average_rating, item.likes_count


async def review_likes_counts(session: AsyncSession, review_ids: list[str]) -> dict[str, int]:
    """Likes per review id; reviews without likes are absent."""
    if not review_ids:
        return {}
    result = await session.execute(
        select(review_likes.c.review_id, func.count())
        .where(review_likes.c.review_id.in_(review_ids))
        .group_by(review_likes.c.review_id)
    )
    return {review_id: int(count) for review_id, count in result.all()}
