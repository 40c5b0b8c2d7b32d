# dentconnect/modules/bookings/service.py
"""
Booking lifecycle.

Appointment: available -> booked -> {completed, cancelled}; a cancelled
booking with a future date puts its slot back to available.
Booking: confirmed -> {completed, cancelled}, with approval_status
pending -> {approved, rejected} while confirmed.

Every write runs inside `transaction()`, so the appointment and booking rows
change together or not at all. Errors are DomainError subclasses and are
rendered by the app-level handler.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from dentconnect.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from dentconnect.core.security import as_utc, unusable_password_hash, utcnow
from dentconnect.db.sql import transaction
from dentconnect.modules.appointments.models import Appointment, AppointmentStatus
from dentconnect.modules.bookings.models import (
    ApprovalStatus,
    Booking,
    BookingStatus,
    PaymentStatus,
    TERMINAL_BOOKING_STATUSES,
)
from dentconnect.modules.bookings.schemas import BookingCreate, GuestContact
from dentconnect.modules.notifications.events import ApprovalStatusChanged, BookingCreated
from dentconnect.modules.practices.models import TreatmentCategory
from dentconnect.modules.users import repository as users_repo
from dentconnect.modules.users.models import User, UserType

logger = logging.getLogger(__name__)

_CATEGORIES = {c.value for c in TreatmentCategory}
_DECISIONS = {ApprovalStatus.APPROVED.value, ApprovalStatus.REJECTED.value}


def _with_details(stmt):
    return stmt.options(
        selectinload(Booking.practice),
        selectinload(Booking.appointment),
        selectinload(Booking.treatment),
    )


async def _lock_booking(session: AsyncSession, booking_id: UUID) -> Booking:
    stmt = _with_details(select(Booking).where(Booking.id == booking_id).with_for_update())
    booking = (await session.execute(stmt)).scalar_one_or_none()
    if not booking:
        raise NotFoundError("booking_not_found")
    return booking


async def _lock_appointment(session: AsyncSession, appointment_id: UUID) -> Appointment:
    stmt = (
        select(Appointment)
        .where(Appointment.id == appointment_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one()


def _ensure_can_act(booking: Booking, actor_id: UUID, actor_type: str, actor_practice: Optional[UUID]) -> None:
    """Patients act on their own bookings, dentists on their practice's."""
    if actor_type == UserType.DENTIST.value:
        if booking.practice_id != actor_practice:
            raise ForbiddenError("not_practice_booking")
    elif booking.user_id != actor_id:
        raise ForbiddenError("not_owner")


async def _create_guest(session: AsyncSession, guest: GuestContact) -> User:
    if await users_repo.get_by_email(session, guest.email):
        raise ValidationError("email_registered_login_required")
    return await users_repo.create_user(
        session,
        email=guest.email,
        password_hash=unusable_password_hash(),
        first_name=guest.first_name,
        last_name=guest.last_name,
        phone=guest.phone,
        user_type=UserType.PATIENT.value,
    )


# CREATE
async def create_booking_svc(
    session: AsyncSession,
    payload: BookingCreate,
    patient: Optional[User],
) -> Tuple[Booking, BookingCreated]:
    """
    Claim an available appointment for a patient.

    Logic:
    - patient is the logged-in user, or a guest account created from
      payload.guest inside the same transaction.
    - The slot is claimed with a conditional UPDATE (status = 'available'),
      so of two racing requests exactly one sees rowcount 1.
    - Booking copies practice/dentist/treatment/date from the appointment.
    """
    if payload.treatment_category not in _CATEGORIES:
        raise ValidationError("unknown_treatment_category")

    if patient is not None:
        if patient.is_dentist:
            raise ForbiddenError("only_patients_can_book")
        patient_id: Optional[UUID] = patient.id
    elif payload.guest is None:
        raise ValidationError("login_or_guest_details_required")
    else:
        patient_id = None

    async with transaction(
        session,
        action="CREATE_BOOKING",
        user_id=patient_id,
        entity_type="appointment",
        entity_id=payload.appointment_id,
    ):
        appt = (
            await session.execute(select(Appointment).where(Appointment.id == payload.appointment_id))
        ).scalar_one_or_none()
        if not appt:
            raise NotFoundError("appointment_not_found")
        if appt.status != AppointmentStatus.AVAILABLE.value:
            raise ConflictError("appointment_not_available")
        if as_utc(appt.appointment_date) <= utcnow():
            raise ValidationError("appointment_in_past")

        if patient is None:
            patient = await _create_guest(session, payload.guest)
            patient_id = patient.id

        claimed = await session.execute(
            update(Appointment)
            .where(
                Appointment.id == appt.id,
                Appointment.status == AppointmentStatus.AVAILABLE.value,
            )
            .values(status=AppointmentStatus.BOOKED.value, user_id=patient_id)
        )
        if claimed.rowcount != 1:
            raise ConflictError("appointment_not_available")

        booking = Booking(
            user_id=patient_id,
            appointment_id=appt.id,
            practice_id=appt.practice_id,
            dentist_id=appt.dentist_id,
            treatment_id=appt.treatment_id,
            appointment_date=appt.appointment_date,
            status=BookingStatus.CONFIRMED.value,
            payment_status=PaymentStatus.PENDING.value,
            approval_status=ApprovalStatus.PENDING.value,
            treatment_category=payload.treatment_category,
            accessibility_needs=list(payload.accessibility_needs),
            medications=payload.medications,
            allergies=payload.allergies,
            last_dental_visit=payload.last_dental_visit,
            anxiety_level=payload.anxiety_level.value,
            special_requests=payload.special_requests,
            contact_email=payload.contact_email or patient.email,
            contact_phone=payload.contact_phone or patient.phone,
        )
        session.add(booking)
        await session.flush()

        practice, dentist, treatment = appt.practice, appt.dentist, appt.treatment
        event = BookingCreated(
            recipient=practice.email,
            booking_id=booking.id,
            patient_name=f"{patient.first_name} {patient.last_name}",
            patient_email=booking.contact_email,
            patient_phone=booking.contact_phone,
            practice_name=practice.name,
            practice_address=practice.address,
            practice_phone=practice.phone,
            dentist_name=f"{dentist.title} {dentist.name}",
            treatment_name=treatment.name,
            treatment_category=booking.treatment_category,
            appointment_date=as_utc(booking.appointment_date),
            accessibility_needs=booking.accessibility_needs,
            medications=booking.medications,
            allergies=booking.allergies,
            anxiety_level=booking.anxiety_level,
            special_requests=booking.special_requests,
        )

    logger.info("Booking %s created for appointment %s", booking.id, booking.appointment_id)
    return booking, event


# APPROVAL
async def set_approval_status_svc(
    session: AsyncSession,
    booking_id: UUID,
    new_status: str,
    actor: User,
) -> Tuple[Booking, ApprovalStatusChanged]:
    """
    Practice decides on a booking: pending -> approved | rejected.
    A decision is final; booking.status is left as it is.
    """
    new_status = getattr(new_status, "value", new_status)
    if new_status not in _DECISIONS:
        raise ValidationError("invalid_approval_status")

    actor_id, actor_type, actor_practice = actor.id, actor.user_type, actor.practice_id
    if not actor.is_dentist:
        raise ForbiddenError("only_dentists_can_approve")

    async with transaction(
        session,
        action="SET_APPROVAL",
        user_id=actor_id,
        entity_type="booking",
        entity_id=booking_id,
    ):
        booking = await _lock_booking(session, booking_id)
        _ensure_can_act(booking, actor_id, actor_type, actor_practice)

        if booking.status != BookingStatus.CONFIRMED.value:
            raise InvalidStateError(f"booking_{booking.status}")
        if booking.approval_status != ApprovalStatus.PENDING.value:
            raise InvalidTransitionError(f"approval_already_{booking.approval_status}")

        booking.approval_status = new_status
        booking.approved_by = actor_id
        booking.approved_at = utcnow()
        await session.flush()

        patient = await users_repo.get_by_id(session, booking.user_id)
        event = ApprovalStatusChanged(
            recipient=booking.contact_email or patient.email,
            booking_id=booking.id,
            patient_first_name=patient.first_name,
            practice_name=booking.practice.name,
            practice_phone=booking.practice.phone,
            treatment_name=booking.treatment.name,
            appointment_date=as_utc(booking.appointment_date),
            approval_status=new_status,
        )

    logger.info("Booking %s %s by %s", booking.id, new_status, actor_id)
    return booking, event


# CANCEL
async def cancel_booking_svc(
    session: AsyncSession,
    booking_id: UUID,
    actor: User,
) -> Booking:
    """
    Patient or practice cancels a booking.
    - Future slot: released back to 'available' with no patient.
    - Past slot: appointment becomes 'cancelled'.
    - A paid booking is marked refunded.
    """
    actor_id, actor_type, actor_practice = actor.id, actor.user_type, actor.practice_id

    async with transaction(
        session,
        action="CANCEL_BOOKING",
        user_id=actor_id,
        entity_type="booking",
        entity_id=booking_id,
    ):
        booking = await _lock_booking(session, booking_id)
        _ensure_can_act(booking, actor_id, actor_type, actor_practice)

        if booking.status in TERMINAL_BOOKING_STATUSES:
            raise InvalidStateError(f"booking_already_{booking.status}")

        now = utcnow()
        appt = await _lock_appointment(session, booking.appointment_id)

        booking.status = BookingStatus.CANCELLED.value
        booking.cancelled_by = actor_id
        booking.cancelled_at = now
        if booking.payment_status == PaymentStatus.PAID.value:
            booking.payment_status = PaymentStatus.REFUNDED.value

        if as_utc(appt.appointment_date) > now:
            appt.status = AppointmentStatus.AVAILABLE.value
            appt.user_id = None
        else:
            appt.status = AppointmentStatus.CANCELLED.value
        await session.flush()

    logger.info("Booking %s cancelled by %s", booking.id, actor_id)
    return booking


# COMPLETE
async def complete_booking_svc(
    session: AsyncSession,
    booking_id: UUID,
    actor: User,
) -> Booking:
    actor_id, actor_type, actor_practice = actor.id, actor.user_type, actor.practice_id
    if not actor.is_dentist:
        raise ForbiddenError("only_dentists_can_complete")

    async with transaction(
        session,
        action="COMPLETE_BOOKING",
        user_id=actor_id,
        entity_type="booking",
        entity_id=booking_id,
    ):
        booking = await _lock_booking(session, booking_id)
        _ensure_can_act(booking, actor_id, actor_type, actor_practice)

        if booking.status != BookingStatus.CONFIRMED.value:
            raise InvalidStateError(f"booking_{booking.status}")
        if booking.approval_status != ApprovalStatus.APPROVED.value:
            raise InvalidStateError("booking_not_approved")

        appt = await _lock_appointment(session, booking.appointment_id)
        booking.status = BookingStatus.COMPLETED.value
        booking.completed_at = utcnow()
        appt.status = AppointmentStatus.COMPLETED.value
        await session.flush()

    logger.info("Booking %s completed", booking.id)
    return booking


# READ
async def get_booking_svc(session: AsyncSession, booking_id: UUID, actor: User) -> Booking:
    stmt = _with_details(select(Booking).where(Booking.id == booking_id))
    booking = (await session.execute(stmt)).scalar_one_or_none()
    if not booking:
        raise NotFoundError("booking_not_found")
    _ensure_can_act(booking, actor.id, actor.user_type, actor.practice_id)
    return booking


async def list_bookings_for_user_svc(session: AsyncSession, user_id: UUID) -> List[Booking]:
    """Oldest first; the last element is the patient's latest booking."""
    stmt = _with_details(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.asc(), Booking.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def list_bookings_for_practice_svc(
    session: AsyncSession,
    practice_id: UUID,
    approval_status: Optional[str] = None,
) -> List[Booking]:
    conditions = [Booking.practice_id == practice_id]
    if approval_status is not None:
        if approval_status not in {a.value for a in ApprovalStatus}:
            raise ValidationError("invalid_approval_status")
        conditions.append(Booking.approval_status == approval_status)

    stmt = _with_details(
        select(Booking)
        .where(*conditions)
        .order_by(Booking.created_at.asc(), Booking.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())
