# dentconnect/modules/bookings/models.py
from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dentconnect.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin
from dentconnect.modules.appointments.models import Appointment
from dentconnect.modules.practices.models import Practice, Treatment


class BookingStatus(PyEnum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(PyEnum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class ApprovalStatus(PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AnxietyLevel(PyEnum):
    COMFORTABLE = "comfortable"
    NERVOUS = "nervous"
    ANXIOUS = "anxious"


TERMINAL_BOOKING_STATUSES = frozenset(
    {BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value}
)


class Booking(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    A patient's claim on one Appointment. practice/dentist/treatment and
    appointment_date are copied from the appointment when the booking is
    created and are not kept in sync afterwards.
    """

    __tablename__ = "bookings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    appointment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("appointments.id", ondelete="RESTRICT"), nullable=False
    )

    # Snapshot of the appointment
    practice_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("practices.id", ondelete="RESTRICT"), nullable=False
    )
    dentist_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("dentists.id", ondelete="RESTRICT"), nullable=False
    )
    treatment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("treatments.id", ondelete="RESTRICT"), nullable=False
    )
    appointment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BookingStatus.CONFIRMED.value
    )
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.PENDING.value
    )
    approval_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalStatus.PENDING.value
    )
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Patient answers from the booking flow
    treatment_category: Mapped[str] = mapped_column(String(20), nullable=False)
    accessibility_needs: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    medications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allergies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_dental_visit: Mapped[Optional[str]] = mapped_column(String(50))
    anxiety_level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AnxietyLevel.COMFORTABLE.value
    )
    special_requests: Mapped[Optional[str]] = mapped_column(Text)
    contact_email: Mapped[Optional[str]] = mapped_column(String(320))
    contact_phone: Mapped[Optional[str]] = mapped_column(String(32))

    appointment: Mapped[Appointment] = relationship(lazy="raise")
    practice: Mapped[Practice] = relationship(lazy="raise")
    treatment: Mapped[Treatment] = relationship(lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "status IN ('confirmed', 'cancelled', 'completed')",
            name="ck_bookings_status_valid",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded')",
            name="ck_bookings_payment_status_valid",
        ),
        CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected')",
            name="ck_bookings_approval_status_valid",
        ),
        CheckConstraint(
            "anxiety_level IN ('comfortable', 'nervous', 'anxious')",
            name="ck_bookings_anxiety_level_valid",
        ),
        # At most one live booking per appointment
        Index(
            "uq_bookings_active_appointment",
            "appointment_id",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
        Index("ix_bookings_user_created", "user_id", "created_at"),
        Index("ix_bookings_practice_approval", "practice_id", "approval_status"),
    )
