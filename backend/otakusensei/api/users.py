"""User account endpoints: signup, login, profile, password reset, Google sign-in."""

import httpx
import structlog
from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from otakusensei.api.deps import get_google_oauth, get_mailer
from otakusensei.auth import create_access_token, get_current_user, hash_password, verify_password
from otakusensei.config import settings
from otakusensei.database import get_db
from otakusensei.models import User
from otakusensei.schemas.common import APIResponse
from otakusensei.schemas.user import (
    ForgotPasswordRequest,
    GoogleTokenRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdatePasswordRequest,
    UpdateProfileRequest,
    UserDataResponse,
    UserOut,
    UserResponse,
    VerifyOtpRequest,
)
from otakusensei.services.credentials import (
    CredentialError,
    SignupDetails,
    generate_otp,
    generate_reset_token,
    is_reset_token,
    pop_pending_signup,
    save_otp,
    save_pending_signup,
    save_reset_token,
    verify_otp,
    verify_reset_token,
)
from otakusensei.services.google_oauth import GoogleAuthError, GoogleOAuthClient
from otakusensei.services.mailer import EmailDeliveryError, Mailer
from otakusensei.services.users import get_user_by_email, get_user_by_phone, link_google_account

logger = structlog.get_logger()

router = APIRouter(tags=["Users"])


def _cookie_secure() -> bool:
    # Browsers require Secure when SameSite=None
    return settings.auth_cookie_secure or settings.is_production or settings.auth_cookie_samesite == "none"


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        samesite=settings.auth_cookie_samesite,
        secure=_cookie_secure(),
        max_age=settings.jwt_expire_minutes * 60,
        path="/",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        samesite=settings.auth_cookie_samesite,
        secure=_cookie_secure(),
    )


def _login_response(user: User, response: Response, message: str) -> UserResponse:
    token = create_access_token(user_id=user.user_id, role=user.role)
    set_auth_cookie(response, token)
    return UserResponse(message=message, user=UserOut.from_user(user), token=token)


# -----------------
# Signup
# -----------------


@router.post("/user/signup", response_model=APIResponse)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> APIResponse:
    """
    Start a local signup.

    Stores the OTP and the pending registration, then emails the OTP. The
    account is only created once the OTP is verified.
    """
    if await get_user_by_email(db, body.email):
        raise HTTPException(status_code=400, detail="User already exists")
    if body.phone and await get_user_by_phone(db, body.phone):
        raise HTTPException(status_code=400, detail="Phone number already in use")

    otp = generate_otp()
    await save_otp(db, body.email, otp)
    await save_pending_signup(
        db,
        SignupDetails(
            email=body.email,
            hashed_password=hash_password(body.password),
            first_name=body.first_name,
            last_name=body.last_name,
            phone=body.phone,
            avatar=body.avatar or "",
        ),
    )
    await db.commit()

    try:
        await mailer.send_otp_email(body.email, otp, settings.otp_ttl_minutes)
    except EmailDeliveryError as e:
        raise HTTPException(status_code=500, detail=f"User signup failed: {e}")

    logger.info("Signup OTP issued", email=body.email)
    return APIResponse(message="OTP sent to your email")


@router.post("/user/verify-otp", response_model=UserResponse)
async def verify_signup_otp(
    body: VerifyOtpRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Verify the signup OTP and create the account."""
    try:
        await verify_otp(db, body.email, body.otp)
    except CredentialError as e:
        raise HTTPException(status_code=400, detail=f"OTP verification failed: {e}")

    details = await pop_pending_signup(db, body.email)
    if details is None:
        await db.commit()
        raise HTTPException(status_code=400, detail="OTP verification failed: Session expired or invalid")

    user = User(
        email=details.email,
        hashed_password=details.hashed_password,
        first_name=details.first_name,
        last_name=details.last_name,
        phone=details.phone,
        avatar=details.avatar,
        provider="local",
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="OTP verification failed: User already exists")

    logger.info("User registered", user_id=user.user_id)
    return _login_response(user, response, "User registered successfully")


# -----------------
# Session
# -----------------


@router.post("/user/login", response_model=UserResponse)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    user = await get_user_by_email(db, body.email.strip())
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid email or password")
    if not user.hashed_password:
        raise HTTPException(status_code=400, detail="Use Google login for this account")
    if not verify_password(body.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Invalid email or password")

    return _login_response(user, response, "User logged in successfully")


@router.get("/user/logout", response_model=APIResponse)
async def logout(response: Response) -> APIResponse:
    clear_auth_cookie(response)
    return APIResponse(message="Logged out successfully")


@router.get("/user", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse(message="User data retrieved successfully", user=UserOut.from_user(user))


# -----------------
# Profile
# -----------------


@router.patch("/user/update-profile", response_model=UserDataResponse)
async def update_profile(
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserDataResponse:
    if body.phone and body.phone != user.phone:
        other = await get_user_by_phone(db, body.phone)
        if other is not None and other.user_id != user.user_id:
            raise HTTPException(status_code=400, detail="Phone number already in use")

    if body.first_name:
        user.first_name = body.first_name
    if body.last_name is not None:
        user.last_name = body.last_name
    if body.phone:
        user.phone = body.phone
    if body.avatar:
        user.avatar = body.avatar

    await db.commit()
    return UserDataResponse(message="Profile updated successfully", data=UserOut.from_user(user))


@router.patch("/user/update-password", response_model=APIResponse)
async def update_password(
    body: UpdatePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> APIResponse:
    if not user.hashed_password:
        raise HTTPException(
            status_code=400,
            detail="Use forgot password to set a password for Google accounts",
        )
    if not verify_password(body.old_password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Invalid old password")

    user.hashed_password = hash_password(body.new_password)
    await db.commit()
    return APIResponse(message="Password updated successfully")


# -----------------
# Password reset
# -----------------


@router.post("/user/forgot-password", response_model=APIResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> APIResponse:
    user = await get_user_by_email(db, body.email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    token = generate_reset_token()
    await save_reset_token(db, body.email, token)
    await db.commit()

    try:
        await mailer.send_reset_password_email(body.email, token, settings.reset_token_ttl_minutes)
    except EmailDeliveryError as e:
        raise HTTPException(status_code=500, detail=f"Failed to send reset link: {e}")

    return APIResponse(message="Password reset link sent to your email")


@router.post("/user/reset-password/{token}", response_model=APIResponse)
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> APIResponse:
    if not is_reset_token(token):
        raise HTTPException(status_code=400, detail="Invalid reset token format")

    try:
        await verify_reset_token(db, body.email, token)
    except CredentialError as e:
        raise HTTPException(status_code=400, detail=f"Failed to reset password: {e}")

    user = await get_user_by_email(db, body.email)
    if user is None:
        await db.commit()
        raise HTTPException(status_code=404, detail="User not found")

    user.hashed_password = hash_password(body.new_password)
    if user.provider == "google":
        user.provider = "hybrid"
    await db.commit()

    logger.info("Password reset", user_id=user.user_id)
    return APIResponse(message="Password updated successfully")


# -----------------
# Google sign-in
# -----------------


def _google_failure_redirect() -> RedirectResponse:
    return RedirectResponse(f"{settings.frontend_login_url}?error=google_login_failed", status_code=302)


@router.get("/auth/google")
async def google_login(oauth: GoogleOAuthClient = Depends(get_google_oauth)) -> RedirectResponse:
    """Redirect the browser to Google's consent screen."""
    return RedirectResponse(oauth.authorization_url(), status_code=302)


@router.get("/auth/google/callback")
async def google_callback(
    code: str | None = None,
    db: AsyncSession = Depends(get_db),
    oauth: GoogleOAuthClient = Depends(get_google_oauth),
) -> RedirectResponse:
    """Complete the browser flow: sign the user in and return to the frontend."""
    if not code:
        return _google_failure_redirect()

    try:
        profile = await oauth.exchange_code(code)
    except (GoogleAuthError, httpx.HTTPError) as e:
        logger.warning("Google callback failed", error=str(e))
        return _google_failure_redirect()

    user = await link_google_account(db, profile)
    redirect = RedirectResponse(settings.frontend_base_url, status_code=302)
    set_auth_cookie(redirect, create_access_token(user_id=user.user_id, role=user.role))
    return redirect


@router.post("/auth/google", response_model=UserResponse)
async def google_token_login(
    body: GoogleTokenRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    oauth: GoogleOAuthClient = Depends(get_google_oauth),
) -> UserResponse:
    """Sign in with a Google ID token obtained by the frontend."""
    try:
        profile = await oauth.verify_id_token(body.token)
    except GoogleAuthError as e:
        raise HTTPException(status_code=400, detail=f"Google login failed: {e}")
    except httpx.HTTPError as e:
        raise HTTPException(status_code=500, detail=f"Google login failed: {e}")

    user = await link_google_account(db, profile)
    return _login_response(user, response, "User logged in successfully")
