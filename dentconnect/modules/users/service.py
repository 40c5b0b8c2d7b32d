# dentconnect/modules/users/service.py
from __future__ import annotations

import logging
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from dentconnect.core.config import settings
from dentconnect.core.errors import AlreadyExistsError, ValidationError
from dentconnect.core.security import (
    create_access_token,
    hash_password,
    new_session_id,
    session_expiry,
    verify_password,
)
from dentconnect.db.sql import transaction
from dentconnect.modules.notifications.events import WelcomeEvent
from dentconnect.modules.practices import service as practices_svc
from dentconnect.modules.users import repository as users_repo
from dentconnect.modules.users.models import User, UserType
from dentconnect.modules.users.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserPublic,
)

logger = logging.getLogger(__name__)


# Service-level error (mapped to 401 in the router)
class InvalidCredentials(Exception):
    pass


def to_public(user: User) -> UserPublic:
    """
    Convert ORM model to public DTO.
    """
    return UserPublic.model_validate(user)


async def register_user(
    session: AsyncSession, payload: RegisterRequest
) -> Tuple[UserPublic, WelcomeEvent]:
    """
    Business flow for registration:
      1) Check email uniqueness (early 409).
      2) Dentists: resolve the practice from its tag.
      3) Hash password and persist.
      4) Return public DTO plus the welcome email event.
    """
    email = payload.email.strip().lower()

    if await users_repo.get_by_email(session, email):
        raise AlreadyExistsError("email_already_exists")

    practice = None
    if payload.user_type.value == UserType.DENTIST.value:
        if not payload.practice_tag:
            raise ValidationError("practice_tag_required")
        practice = await practices_svc.verify_practice_tag_svc(session, payload.practice_tag)

    password_hash = hash_password(payload.password.get_secret_value())

    async with transaction(session, action="REGISTER", entity_type="user"):
        user = await users_repo.create_user(
            session,
            email=email,
            password_hash=password_hash,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            user_type=payload.user_type.value,
            practice_id=practice.id if practice else None,
        )
        public = to_public(user)

    event = WelcomeEvent(
        recipient=public.email,
        first_name=public.first_name,
        user_type=public.user_type.value,
        practice_name=practice.name if practice else None,
        practice_tag=practice.practice_tag if practice else None,
    )
    logger.info("Registered %s account %s", public.user_type.value, public.id)
    return public, event


async def login_user(session: AsyncSession, payload: LoginRequest) -> LoginResponse:
    """
    1) Fetch user by email
    2) Verify password (guest accounts never match)
    3) Enforce the requested login type
    4) Open a server-side session and issue a token bound to it
    """
    user = await users_repo.get_by_email(session, payload.email)
    if not user:
        raise InvalidCredentials("invalid_credentials")

    if not verify_password(payload.password.get_secret_value(), user.password_hash):
        raise InvalidCredentials("invalid_credentials")

    if payload.user_type is not None and user.user_type != payload.user_type.value:
        raise InvalidCredentials("invalid_credentials")

    user_id = user.id
    session_id = new_session_id()
    expires_at = session_expiry()

    async with transaction(session, action="LOGIN", user_id=user_id, entity_type="session"):
        await users_repo.create_session_row(
            session, session_id=session_id, user_id=user_id, expires_at=expires_at
        )
        public = to_public(user)

    access = create_access_token(
        subject=str(user_id),
        session_id=session_id,
        expires_at=expires_at,
        email=public.email,
        user_type=public.user_type.value,
    )
    return LoginResponse(
        user=public,
        access_token=access,
        expires_in=settings.ACCESS_EXPIRES_MIN * 60,
    )


async def logout_user(session: AsyncSession, user: User, session_id: Optional[str]) -> None:
    user_id = user.id
    if not session_id:
        return
    async with transaction(session, action="LOGOUT", user_id=user_id, entity_type="session"):
        await users_repo.delete_session_row(session, session_id)
