"""User and authentication Pydantic schemas."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, field_validator, model_validator

from otakusensei.auth.security import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH
from otakusensei.models import User
from otakusensei.schemas.common import (
    APIResponse,
    CamelModel,
    Email,
    Pagination,
    check_phone,
    check_url,
)
from otakusensei.timeutil import as_utc


def check_password(value: str) -> str:
    if not PASSWORD_MIN_LENGTH <= len(value) <= PASSWORD_MAX_LENGTH:
        raise ValueError(
            f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters"
        )
    return value


def check_first_name(value: str) -> str:
    value = value.strip()
    if len(value) < 3:
        raise ValueError("First name must be at least 3 characters")
    return value


def check_last_name(value: str) -> str:
    value = value.strip()
    if 0 < len(value) < 3:
        raise ValueError("Last name must be at least 3 characters if provided")
    return value


Password = Annotated[str, AfterValidator(check_password)]
FirstName = Annotated[str, AfterValidator(check_first_name)]
LastName = Annotated[str, AfterValidator(check_last_name)]


def _optional_phone(value: str | None) -> str | None:
    return check_phone(value) if value else None


def _optional_avatar(value: str | None) -> str | None:
    return check_url(value, "Invalid avatar URL") if value else None


Phone = Annotated[str | None, AfterValidator(_optional_phone)]
Avatar = Annotated[str | None, AfterValidator(_optional_avatar)]


# -----------------
# Requests
# -----------------


class SignupRequest(CamelModel):
    email: Email
    password: Password
    first_name: FirstName
    last_name: LastName = ""
    phone: Phone = None
    avatar: Avatar = None


class VerifyOtpRequest(CamelModel):
    email: str
    otp: str

    @field_validator("otp")
    @classmethod
    def otp_digits(cls, value: str) -> str:
        value = value.strip()
        if not (len(value) == 6 and value.isascii() and value.isdigit()):
            raise ValueError("Invalid OTP")
        return value


class LoginRequest(CamelModel):
    email: str
    password: str


class GoogleTokenRequest(CamelModel):
    token: str


class UpdateProfileRequest(CamelModel):
    first_name: FirstName | None = None
    last_name: LastName | None = None
    phone: Phone = None
    avatar: Avatar = None

    @model_validator(mode="after")
    def not_empty(self) -> "UpdateProfileRequest":
        if not (self.first_name or self.last_name is not None or self.phone or self.avatar):
            raise ValueError("No fields to update")
        return self


class UpdatePasswordRequest(CamelModel):
    old_password: str
    new_password: Password


class ForgotPasswordRequest(CamelModel):
    email: Email


class ResetPasswordRequest(CamelModel):
    email: Email
    new_password: Password
    confirm_new_password: str

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        if self.new_password != self.confirm_new_password:
            raise ValueError("Passwords do not match")
        return self


class UpdateRoleRequest(CamelModel):
    role: Literal["user", "admin"]


# -----------------
# Responses
# -----------------


class SubscriptionOut(CamelModel):
    plan: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    reminder_sent: bool = False


class UserOut(CamelModel):
    """Public view of a user; never includes the password hash or Google id."""

    id: str
    email: str
    phone: str | None = None
    first_name: str
    last_name: str = ""
    avatar: str = ""
    role: str
    provider: str
    subscription: SubscriptionOut
    has_active_premium: bool
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            id=user.user_id,
            email=user.email,
            phone=user.phone,
            first_name=user.first_name,
            last_name=user.last_name or "",
            avatar=user.avatar or "",
            role=user.role,
            provider=user.provider,
            subscription=SubscriptionOut(
                plan=user.subscription_plan,
                start_date=as_utc(user.subscription_start),
                end_date=as_utc(user.subscription_end),
                reminder_sent=bool(user.reminder_sent),
            ),
            has_active_premium=user.has_active_premium(),
            created_at=as_utc(user.created_at),
        )


class UserSummary(CamelModel):
    """Minimal author info shown next to reviews and likes."""

    id: str
    first_name: str
    last_name: str = ""
    avatar: str = ""

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.user_id,
            first_name=user.first_name,
            last_name=user.last_name or "",
            avatar=user.avatar or "",
        )


class UserResponse(APIResponse):
    user: UserOut
    token: str | None = None


class UserDataResponse(APIResponse):
    data: UserOut


class UserListData(CamelModel):
    users: list[UserOut]
    pagination: Pagination


class UserListResponse(APIResponse):
    data: UserListData
