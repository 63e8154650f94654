"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from wadzzo.auth.jwt import verify_token
from wadzzo.auth.service import get_user_by_id
from wadzzo.config import get_settings
from wadzzo.database import get_session
from wadzzo.db.models import User
from wadzzo.errors import AppError, ErrorKind

_bearer = HTTPBearer(auto_error=False)


def _extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(get_settings().session_cookie_name)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Resolve the session token (bearer header first, then session cookie) to a User.

    Raises 401 for a missing/invalid token or unknown user, 403 for banned accounts.
    """
    token = _extract_token(request, credentials)
    if not token:
        raise AppError(ErrorKind.UNAUTHENTICATED, "User is not authenticated")

    try:
        payload = verify_token(token)
    except jwt.InvalidTokenError as e:
        raise AppError(ErrorKind.UNAUTHENTICATED, str(e)) from e

    user = await get_user_by_id(db, payload["sub"])
    if user is None:
        raise AppError(ErrorKind.UNAUTHENTICATED, "User not found")
    if user.is_banned:
        raise AppError(ErrorKind.FORBIDDEN, "Account is banned")
    return user
