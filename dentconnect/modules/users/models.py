# dentconnect/modules/users/models.py
from __future__ import annotations

import uuid
from typing import Optional
from enum import Enum as PyEnum
import datetime as dt

from sqlalchemy import (
    String,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from dentconnect.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin, _utcnow


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    action: Mapped[str] = mapped_column(String(120), nullable=False)
    entity_type: Mapped[str | None] = mapped_column(String(50))
    entity_id: Mapped[str | None] = mapped_column(String(64))
    details: Mapped[str | None] = mapped_column()
    timestamp: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("ix_audit_logs_timestamp", "timestamp"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )


class UserType(PyEnum):
    PATIENT = "patient"
    DENTIST = "dentist"


class User(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    user_type: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=UserType.PATIENT.value
    )
    # Set iff user_type == 'dentist'
    practice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("practices.id", ondelete="RESTRICT"), nullable=True
    )

    verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    verification_token: Mapped[Optional[str]] = mapped_column(String(128))
    reset_token: Mapped[Optional[str]] = mapped_column(String(128))
    reset_token_expiry: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        CheckConstraint("email = lower(email)", name="ck_users_email_lowercase"),
        CheckConstraint(
            "user_type IN ('patient', 'dentist')", name="ck_users_user_type_valid"
        ),
        CheckConstraint(
            "(user_type = 'dentist' AND practice_id IS NOT NULL)"
            " OR (user_type = 'patient' AND practice_id IS NULL)",
            name="ck_users_dentist_practice",
        ),
        Index("ix_users_practice", "practice_id"),
    )

    @property
    def is_dentist(self) -> bool:
        return self.user_type == UserType.DENTIST.value


class Session(Base):
    """
    Server-side login session. The id travels as the JWT `jti`;
    deleting the row logs the token out.
    """

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    expires_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
