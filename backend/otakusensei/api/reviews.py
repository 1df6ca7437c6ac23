"""Review endpoints."""

from typing import Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import and_, delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from otakusensei.api.deps import ensure_id
from otakusensei.auth import get_current_user
from otakusensei.database import get_db
from otakusensei.models import Comic, Review, User, review_likes
from otakusensei.schemas.comic import (
    LikeToggleData,
    LikeToggleResponse,
    ReviewCreate,
    ReviewListData,
    ReviewListResponse,
    ReviewOut,
    ReviewResponse,
)
from otakusensei.schemas.common import Pagination
from otakusensei.services.catalog import review_likes_counts

logger = structlog.get_logger()

router = APIRouter(tags=["Reviews"])


async def _get_comic_or_404(db: AsyncSession, comic_id: str) -> Comic:
    comic = await db.get(Comic, ensure_id(comic_id, "Comic"))
    if comic is None:
        raise HTTPException(status_code=404, detail="Comic not found")
    return comic


@router.post("/review/create/{comic_id}", response_model=ReviewResponse, status_code=201)
async def create_review(
    comic_id: str,
    body: ReviewCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    comic = await _get_comic_or_404(db, comic_id)

    existing = await db.execute(
        select(Review.review_id).where(Review.user_id == user.user_id, Review.comic_id == comic.comic_id)
    )
    if existing.first() is not None:
        raise HTTPException(status_code=400, detail="You have already reviewed this comic")

    review = Review(user_id=user.user_id, comic_id=comic.comic_id, rating=body.rating, comment=body.comment)
    db.add(review)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="You have already reviewed this comic")

    logger.info("Review created", review_id=review.review_id, comic_id=comic.comic_id, user_id=user.user_id)
    return ReviewResponse(
        message="Review created successfully",
        review=ReviewOut.from_review(review, include_user=False),
    )


@router.get("/reviews/all/{comic_id}", response_model=ReviewListResponse)
async def get_all_reviews(
    comic_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: Literal["createdAt", "rating"] = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ReviewListResponse:
    """Paginated reviews of a comic with each reviewer's public profile."""
    comic = await _get_comic_or_404(db, comic_id)

    column = Review.created_at if sort_by == "createdAt" else Review.rating
    ordering = column.asc() if sort_order == "asc" else column.desc()
    result = await db.execute(
        select(Review)
        .where(Review.comic_id == comic.comic_id)
        .options(selectinload(Review.user))
        .order_by(ordering, Review.review_id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    reviews = result.scalars().all()
    if not reviews:
        raise HTTPException(status_code=404, detail="No reviews found")

    total = await db.scalar(select(func.count()).select_from(Review).where(Review.comic_id == comic.comic_id))
    counts = await review_likes_counts(db, [r.review_id for r in reviews])

    return ReviewListResponse(
        message="Reviews retrieved successfully",
        data=ReviewListData(
            reviews=[ReviewOut.from_review(r, counts.get(r.review_id, 0)) for r in reviews],
            pagination=Pagination.build(int(total or 0), page, limit),
        ),
    )


@router.post("/review/like/{review_id}", response_model=LikeToggleResponse)
async def like_review(
    review_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> LikeToggleResponse:
    """Toggle the current user's like on someone else's review."""
    review = await db.get(Review, ensure_id(review_id, "Review"))
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    if review.user_id == user.user_id:
        raise HTTPException(status_code=400, detail="You cannot like your own review")

    link = and_(review_likes.c.review_id == review.review_id, review_likes.c.user_id == user.user_id)
    already_liked = (await db.execute(select(review_likes.c.user_id).where(link))).first() is not None
    if already_liked:
        await db.execute(delete(review_likes).where(link))
    else:
        await db.execute(insert(review_likes).values(review_id=review.review_id, user_id=user.user_id))
    await db.commit()

    counts = await review_likes_counts(db, [review.review_id])
    return LikeToggleResponse(
        message="Review unliked successfully" if already_liked else "Review liked successfully",
        data=LikeToggleData(likes_count=counts.get(review.review_id, 0), has_liked=not already_liked),
    )
