"""Chapter endpoints, including premium-gated PDF access."""

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from otakusensei.api.deps import ensure_id
from otakusensei.auth import get_optional_user, require_admin
from otakusensei.database import get_db
from otakusensei.models import Chapter, Comic, User
from otakusensei.schemas.common import APIResponse
from otakusensei.schemas.comic import (
    ChapterCreate,
    ChapterDataResponse,
    ChapterOut,
    ChapterPdfData,
    ChapterPdfResponse,
    ChapterResponse,
    ChapterUpdate,
)
from otakusensei.services.subscriptions import has_active_premium

logger = structlog.get_logger()

router = APIRouter(tags=["Chapters"])


async def _get_chapter_or_404(db: AsyncSession, chapter_id: str) -> Chapter:
    chapter = await db.get(Chapter, ensure_id(chapter_id, "Chapter"))
    if chapter is None:
        raise HTTPException(status_code=404, detail="Chapter not found")
    return chapter


async def _number_taken(
    db: AsyncSession, comic_id: str, chapter_number: int, exclude_id: str | None = None
) -> bool:
    query = select(Chapter.chapter_id).where(
        Chapter.comic_id == comic_id, Chapter.chapter_number == chapter_number
    )
    if exclude_id:
        query = query.where(Chapter.chapter_id != exclude_id)
    return (await db.execute(query.limit(1))).first() is not None


def can_read(user: User | None, comic: Comic, chapter: Chapter) -> bool:
    """Free content is open to everyone; premium content needs an active subscription."""
    if not (comic.premium or chapter.premium):
        return True
    return user is not None and has_active_premium(user)


@router.post("/chapter/add", response_model=ChapterResponse, status_code=201)
async def add_chapter(
    body: ChapterCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ChapterResponse:
    comic = await db.get(Comic, ensure_id(body.comic_id, "Comic"))
    if comic is None:
        raise HTTPException(status_code=404, detail="Comic not found")

    if await _number_taken(db, comic.comic_id, body.chapter_number):
        raise HTTPException(status_code=400, detail="A chapter with this number already exists")

    chapter = Chapter(
        comic_id=comic.comic_id,
        title=body.title,
        chapter_number=body.chapter_number,
        pdf_url=body.pdf_url,
        premium=body.premium,
        available_offline=body.available_offline,
    )
    db.add(chapter)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent insert of the same number
        await db.rollback()
        raise HTTPException(status_code=400, detail="A chapter with this number already exists")

    logger.info("Chapter added", chapter_id=chapter.chapter_id, comic_id=comic.comic_id, admin_id=admin.user_id)
    return ChapterResponse(message="Chapter added successfully", chapter=ChapterOut.from_chapter(chapter))


@router.get("/chapter/{chapter_id}/pdf", response_model=ChapterPdfResponse)
async def get_chapter_pdf(
    chapter_id: str,
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> ChapterPdfResponse:
    """
    Return the chapter's PDF URL.

    Anonymous callers may read free chapters. Premium chapters, or any chapter
    of a premium comic, require an admin or an active premium subscription.
    """
    chapter = await _get_chapter_or_404(db, chapter_id)
    comic = await db.get(Comic, chapter.comic_id)
    if comic is None:
        raise HTTPException(status_code=404, detail="Associated comic not found")

    if not can_read(user, comic, chapter):
        raise HTTPException(status_code=403, detail="Premium content requires an active subscription")

    return ChapterPdfResponse(
        message="PDF URL retrieved successfully",
        data=ChapterPdfData(pdf_url=chapter.pdf_url),
    )


@router.put("/chapter/update/{chapter_id}", response_model=ChapterDataResponse)
async def update_chapter(
    chapter_id: str,
    body: ChapterUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ChapterDataResponse:
    chapter = await _get_chapter_or_404(db, chapter_id)
    updates = {key: value for key, value in body.model_dump(exclude_unset=True).items() if value is not None}
    if not updates:
        raise HTTPException(status_code=400, detail="No updates provided")

    number = updates.get("chapter_number")
    if number is not None and number != chapter.chapter_number:
        if await _number_taken(db, chapter.comic_id, number, exclude_id=chapter.chapter_id):
            raise HTTPException(status_code=400, detail="Chapter number already exists for this comic")

    for key, value in updates.items():
        setattr(chapter, key, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Chapter number already exists for this comic")

    logger.info("Chapter updated", chapter_id=chapter.chapter_id, admin_id=admin.user_id)
    return ChapterDataResponse(message="Chapter updated successfully", data=ChapterOut.from_chapter(chapter))


@router.delete("/chapter/delete/{chapter_id}", response_model=APIResponse)
async def delete_chapter(
    chapter_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> APIResponse:
    chapter = await _get_chapter_or_404(db, chapter_id)
    await db.delete(chapter)
    await db.commit()

    logger.info("Chapter deleted", chapter_id=chapter_id, admin_id=admin.user_id)
    return APIResponse(message="Chapter deleted successfully")
