"""FastAPI dependencies for authenticated routes."""

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from otakusensei.auth.security import decode_access_token
from otakusensei.config import settings
from otakusensei.database import get_db
from otakusensei.models import User

logger = structlog.get_logger()

_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def _extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    # Prefer an explicit Bearer token, fall back to the session cookie.
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name)


async def _load_user(db: AsyncSession, token: str) -> User | None:
    try:
        payload = decode_access_token(token)
    except jwt.InvalidTokenError as e:
        logger.info("Token verification failed", error=str(e))
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None
    return await db.get(User, user_id)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Authenticate a request via Bearer header or the httpOnly cookie."""
    token = _extract_token(request, credentials)
    if not token:
        raise _unauthorized("Unauthorized: No token provided")

    try:
        payload = decode_access_token(token)
    except jwt.InvalidTokenError as e:
        logger.info("Token verification failed", error=str(e))
        raise _unauthorized("Forbidden: Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    user = await db.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Like get_current_user, but anonymous or invalid tokens yield None."""
    token = _extract_token(request, credentials)
    if not token:
        return None
    return await _load_user(db, token)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Unauthorized: Admin access required")
    return user
