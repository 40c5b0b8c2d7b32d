# dentconnect/modules/users/repository.py
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dentconnect.core.errors import AlreadyExistsError, ValidationError
from dentconnect.modules.users.models import Session, User, UserType


async def get_by_id(session: AsyncSession, user_id: UUID) -> Optional[User]:
    """
    Returns a User by primary key or None if not found.
    """
    return await session.get(User, user_id)


async def get_by_email(session: AsyncSession, email: str) -> Optional[User]:
    """
    Returns a User by email (normalized to lowercase) or None.
    """
    email = email.strip().lower()
    stmt = select(User).where(User.email == email)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    password_hash: str,
    first_name: str,
    last_name: str,
    phone: Optional[str] = None,
    user_type: UserType | str = UserType.PATIENT,
    practice_id: Optional[UUID] = None,
    verified: bool = False,
) -> User:
    """
    Inserts a new user row and returns the persisted ORM instance.

    Notes:
    - Expects a *hashed* password; never pass plain text.
    - Unique email and CHECK violations surface here as domain errors.
    """
    type_value = user_type.value if isinstance(user_type, UserType) else str(user_type)

    user = User(
        email=email.strip().lower(),
        password_hash=password_hash,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone=phone,
        user_type=type_value,
        practice_id=practice_id,
        verified=verified,
    )

    session.add(user)
    try:
        # Flush to force INSERT and surface constraint violations here
        await session.flush()
    except IntegrityError as exc:
        message = str(exc.orig).lower() if exc.orig else str(exc).lower()

        if "uq_users_email" in message or "unique" in message:
            raise AlreadyExistsError("email_already_exists") from exc

        raise ValidationError("user_violates_constraints") from exc

    return user


# --- Sessions ---

async def create_session_row(
    session: AsyncSession, *, session_id: str, user_id: UUID, expires_at: datetime
) -> Session:
    row = Session(id=session_id, user_id=user_id, expires_at=expires_at)
    session.add(row)
    await session.flush()
    return row


async def get_session_row(session: AsyncSession, session_id: str) -> Optional[Session]:
    return await session.get(Session, session_id)


async def delete_session_row(session: AsyncSession, session_id: str) -> bool:
    result = await session.execute(delete(Session).where(Session.id == session_id))
    return result.rowcount > 0
