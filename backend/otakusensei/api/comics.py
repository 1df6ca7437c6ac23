"""Comics catalog API."""

from datetime import datetime
from typing import Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import and_, delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from otakusensei.api.deps import ensure_id
from otakusensei.auth import get_current_user, require_admin
from otakusensei.database import get_db
from otakusensei.models import Chapter, Comic, Review, User, comic_likes
from otakusensei.schemas.comic import (
    ChapterSummary,
    ComicCreate,
    ComicDataResponse,
    ComicListData,
    ComicListResponse,
    ComicOut,
    ComicResponse,
    ComicUpdate,
    LikeToggleData,
    LikeToggleResponse,
    ReviewOut,
    check_genres,
)
from otakusensei.schemas.common import CountResponse, Pagination
from otakusensei.schemas.user import UserSummary
from otakusensei.services.catalog import (
    ComicQuery,
    ComicWithStats,
    SortKey,
    count_comics,
    get_comic_with_stats,
    list_comics,
    review_likes_counts,
)

logger = structlog.get_logger()

router = APIRouter(tags=["Comics"])

POPULATE_FIELDS = ("chapters", "reviews", "likes")


async def _title_author_taken(
    db: AsyncSession, title: str, author: str, exclude_id: str | None = None
) -> bool:
    query = select(Comic.comic_id).where(and_(Comic.title == title, Comic.author == author))
    if exclude_id:
        query = query.where(Comic.comic_id != exclude_id)
    return (await db.execute(query.limit(1))).first() is not None


async def _get_comic_or_404(db: AsyncSession, comic_id: str) -> Comic:
    comic = await db.get(Comic, ensure_id(comic_id, "Comic"))
    if comic is None:
        raise HTTPException(status_code=404, detail="Comic not found")
    return comic


async def _comic_out(db: AsyncSession, comic_id: str) -> ComicOut:
    item = await get_comic_with_stats(db, comic_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Comic not found")
    return ComicOut.from_stats(item)


def _parse_populate(populate: str | None) -> set[str]:
    if not populate:
        return set()
    fields = {part.strip() for part in populate.split(",") if part.strip()}
    unknown = fields - set(POPULATE_FIELDS)
    if unknown:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid populate field(s): {', '.join(sorted(unknown))}",
        )
    return fields


@router.post("/comic/add", response_model=ComicResponse, status_code=201)
async def add_comic(
    body: ComicCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ComicResponse:
    if await _title_author_taken(db, body.title, body.author):
        raise HTTPException(status_code=400, detail="Comic already exists")

    comic = Comic(
        title=body.title,
        description=body.description,
        cover_image=body.cover_image,
        author=body.author,
        premium=body.premium,
    )
    comic.set_genres(body.genres)
    db.add(comic)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Comic already exists")

    logger.info("Comic added", comic_id=comic.comic_id, admin_id=admin.user_id)
    return ComicResponse(
        message="Comic added successfully",
        comic=ComicOut.from_stats(ComicWithStats(comic=comic, average_rating=0, likes_count=0)),
    )


@router.get("/comics", response_model=ComicListResponse)
async def get_comics(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Comics per page"),
    search: str | None = Query(None, description="Title or author substring"),
    exact_match: bool = Query(False, alias="exactMatch"),
    genres: str | None = Query(None, description="Comma separated genres"),
    genre_match: Literal["any", "all"] = Query("any", alias="genreMatch"),
    premium: bool | None = Query(None),
    min_rating: float | None = Query(None, alias="minRating", ge=0, le=5),
    min_likes: int | None = Query(None, alias="minLikes", ge=0),
    created_after: datetime | None = Query(None, alias="createdAfter"),
    sort_by: SortKey = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
) -> ComicListResponse:
    """
    Browse the catalog.

    Filters combine with AND. Rating and likes thresholds apply to the
    derived averageRating and likesCount.
    """
    genre_list: list[str] = []
    if genres:
        try:
            genre_list = check_genres([g for g in genres.split(",") if g.strip()])
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    try:
        query = ComicQuery(
            page=page,
            limit=limit,
            search=search,
            exact_match=exact_match,
            genres=genre_list,
            genre_match=genre_match,
            premium=premium,
            min_rating=min_rating,
            min_likes=min_likes,
            created_after=created_after,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = await list_comics(db, query)
    return ComicListResponse(
        message="Comics retrieved successfully",
        data=ComicListData(
            comics=[ComicOut.from_stats(item) for item in result.items],
            pagination=Pagination.build(result.total, result.page, result.limit),
        ),
    )


@router.get("/comic/total", response_model=CountResponse)
async def total_comics(db: AsyncSession = Depends(get_db)) -> CountResponse:
    return CountResponse(message="Total comics retrieved successfully", data=await count_comics(db))


@router.get("/comic/{comic_id}", response_model=ComicDataResponse)
async def get_comic_by_id(
    comic_id: str,
    populate: str | None = Query(None, description="Comma separated: chapters, reviews, likes"),
    db: AsyncSession = Depends(get_db),
) -> ComicDataResponse:
    ensure_id(comic_id, "Comic")
    fields = _parse_populate(populate)
    comic = await _comic_out(db, comic_id)

    if "chapters" in fields:
        result = await db.execute(
            select(Chapter).where(Chapter.comic_id == comic_id).order_by(Chapter.chapter_number)
        )
        comic.chapters = [ChapterSummary.from_chapter(c) for c in result.scalars().all()]

    if "reviews" in fields:
        result = await db.execute(
            select(Review)
            .where(Review.comic_id == comic_id)
            .options(selectinload(Review.user))
            .order_by(Review.created_at.desc())
        )
        reviews = result.scalars().all()
        counts = await review_likes_counts(db, [r.review_id for r in reviews])
        comic.reviews = [ReviewOut.from_review(r, counts.get(r.review_id, 0)) for r in reviews]

    if "likes" in fields:
        result = await db.execute(
            select(User)
            .join(comic_likes, comic_likes.c.user_id == User.user_id)
            .where(comic_likes.c.comic_id == comic_id)
        )
        comic.likes = [UserSummary.from_user(u) for u in result.scalars().all()]

    return ComicDataResponse(message="Comic retrieved successfully", data=comic)


@router.post("/comic/like/{comic_id}", response_model=LikeToggleResponse)
async def like_comic(
    comic_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> LikeToggleResponse:
    """Toggle the current user's like on a comic."""
    comic = await _get_comic_or_404(db, comic_id)

    link = and_(comic_likes.c.comic_id == comic.comic_id, comic_likes.c.user_id == user.user_id)
    already_liked = (await db.execute(select(comic_likes.c.user_id).where(link))).first() is not None
    if already_liked:
        await db.execute(delete(comic_likes).where(link))
    else:
        await db.execute(insert(comic_likes).values(comic_id=comic.comic_id, user_id=user.user_id))
    await db.commit()

    likes_count = await db.scalar(
        select(func.count()).select_from(comic_likes).where(comic_likes.c.comic_id == comic.comic_id)
    )
    return LikeToggleResponse(
        message="Comic unliked successfully" if already_liked else "Comic liked successfully",
        data=LikeToggleData(likes_count=int(likes_count or 0), has_liked=not already_liked),
    )


@router.put("/comic/edit/{comic_id}", response_model=ComicResponse)
async def edit_comic(
    comic_id: str,
    body: ComicUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ComicResponse:
    comic = await _get_comic_or_404(db, comic_id)
    updates = body.model_dump(exclude_unset=True)

    # Explicit nulls carry no update
    updates = {key: value for key, value in updates.items() if value is not None}
    if not updates:
        raise HTTPException(status_code=400, detail="No updates provided")

    title = updates.get("title", comic.title)
    author = updates.get("author", comic.author)
    if (title, author) != (comic.title, comic.author):
        if await _title_author_taken(db, title, author, exclude_id=comic.comic_id):
            raise HTTPException(status_code=400, detail="Comic with this title and author already exists")

    genres = updates.pop("genres", None)
    for key, value in updates.items():
        setattr(comic, key, value)
    if genres is not None:
        comic.set_genres(genres)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Comic with this title and author already exists")

    logger.info("Comic updated", comic_id=comic.comic_id, admin_id=admin.user_id)
    return ComicResponse(message="Comic updated successfully", comic=await _comic_out(db, comic.comic_id))


@router.delete("/comic/delete/{comic_id}", response_model=ComicResponse)
async def delete_comic(
    comic_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ComicResponse:
    """Delete a comic together with its chapters, reviews and likes."""
    comic = await _get_comic_or_404(db, comic_id)
    removed = await _comic_out(db, comic.comic_id)

    await db.delete(comic)
    await db.commit()

    logger.info("Comic deleted", comic_id=removed.id, admin_id=admin.user_id)
    return ComicResponse(message="Comic deleted successfully", comic=removed)
