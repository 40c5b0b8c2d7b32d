# dentconnect/modules/appointments/models.py
from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    DateTime,
    Integer,
    String,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dentconnect.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin
from dentconnect.modules.practices.models import Dentist, Practice, Treatment


class AppointmentStatus(PyEnum):
    AVAILABLE = "available"
    BOOKED = "booked"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Appointment(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    A bookable slot published by a practice. user_id is filled when booked.
    """

    __tablename__ = "appointments"

    practice_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("practices.id", ondelete="RESTRICT"), nullable=False
    )
    dentist_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("dentists.id", ondelete="RESTRICT"), nullable=False
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    treatment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("treatments.id", ondelete="RESTRICT"), nullable=False
    )

    appointment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=30)  # minutes

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AppointmentStatus.AVAILABLE.value,
        server_default=AppointmentStatus.AVAILABLE.value,
    )

    practice: Mapped[Practice] = relationship(lazy="selectin")
    dentist: Mapped[Dentist] = relationship(lazy="selectin")
    treatment: Mapped[Treatment] = relationship(lazy="selectin")

    __table_args__ = (
        CheckConstraint(
            "status IN ('available', 'booked', 'cancelled', 'completed')",
            name="ck_appt_status_valid",
        ),
        # A booked slot always has a patient
        CheckConstraint(
            "status <> 'booked' OR user_id IS NOT NULL",
            name="ck_appt_booked_has_user",
        ),
        Index("ix_appt_practice_status_date", "practice_id", "status", "appointment_date"),
        Index("ix_appt_dentist_date", "dentist_id", "appointment_date"),
    )
