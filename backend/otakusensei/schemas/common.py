"""Shared schema base classes, envelopes and field checks."""

import math
import re
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
URL_RE = re.compile(r"^(https?://[^\s$.?#].[^\s]*)$")
PHONE_RE = re.compile(r"^\d{10}$")


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, while Python code uses snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class APIResponse(CamelModel):
    """Standard success envelope."""

    success: bool = True
    message: str


class ErrorResponse(CamelModel):
    """Standard error envelope."""

    success: bool = False
    status_code: int
    message: str


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(total=total, page=page, limit=limit, total_pages=math.ceil(total / limit) if total else 0)


class CountResponse(APIResponse):
    data: int


def check_email(value: str) -> str:
    value = value.strip()
    if not EMAIL_RE.match(value):
        raise ValueError("Invalid email format")
    return value


def check_url(value: str, message: str = "Invalid URL") -> str:
    if not URL_RE.match(value):
        raise ValueError(message)
    return value


def check_phone(value: str) -> str:
    if not PHONE_RE.match(value):
        raise ValueError("Invalid phone number")
    return value


Email = Annotated[str, AfterValidator(check_email)]
