# dentconnect/dependencies.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from dentconnect.core.config import settings
from dentconnect.core.security import InvalidTokenError, as_utc, decode_token, utcnow
from dentconnect.db.sql import get_session
from dentconnect.modules.users.models import User
from dentconnect.modules.users.repository import get_by_id, get_session_row

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_user(request: Request, token: str, session: AsyncSession) -> User:
    try:
        payload = decode_token(token)
    except InvalidTokenError:
        raise _unauthorized("invalid_token")

    # The token is only as good as its session row: logout deletes it
    row = await get_session_row(session, payload["jti"])
    if not row or str(row.user_id) != payload["sub"]:
        raise _unauthorized("session_not_found")
    if as_utc(row.expires_at) <= utcnow():
        raise _unauthorized("session_expired")

    user = await get_by_id(session, row.user_id)
    if not user:
        raise _unauthorized("user_not_found")

    request.state.session_id = row.id
    return user


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    if not token:
        raise _unauthorized("not_authenticated")
    return await _resolve_user(request, token, session)


async def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> Optional[User]:
    """Like get_current_user, but anonymous callers get None (guest booking)."""
    if not token:
        return None
    return await _resolve_user(request, token, session)


def require_user_type(*user_types: str):
    """
    Guard factory. Example: Depends(require_user_type("dentist"))
    """
    async def _guard(user: User = Depends(get_current_user)) -> User:
        if user.user_type not in user_types:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="insufficient_user_type",
            )
        return user

    return _guard
