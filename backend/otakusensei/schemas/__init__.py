"""Pydantic schemas for API request/response models."""

from otakusensei.schemas.common import APIResponse, CountResponse, ErrorResponse, Pagination
from otakusensei.schemas.user import UserOut, UserResponse, UserSummary
from otakusensei.schemas.comic import ChapterOut, ComicOut, ReviewOut
from otakusensei.schemas.payment import PlanOut

__all__ = [
    "APIResponse",
    "CountResponse",
    "ErrorResponse",
    "Pagination",
    "UserOut",
    "UserResponse",
    "UserSummary",
    "ComicOut",
    "ChapterOut",
    "ReviewOut",
    "PlanOut",
]
