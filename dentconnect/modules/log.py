from __future__ import annotations

import uuid

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from dentconnect.modules.users.models import AuditLog


async def write_audit_log(
    session: AsyncSession,
    user_id: uuid.UUID | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: str | None = None,
):
    """
    Write an audit log entry.

    action:
        "CREATE_BOOKING_COMMIT"
        "CANCEL_BOOKING_ROLLBACK"
        "SET_APPROVAL_COMMIT"
        "REGISTER_COMMIT"
    """
    stmt = insert(AuditLog).values(
        id=uuid.uuid4(),
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    await session.execute(stmt)
