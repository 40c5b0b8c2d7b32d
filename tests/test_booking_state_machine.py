import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from dentconnect.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from dentconnect.core.security import utcnow
from dentconnect.modules.appointments.models import Appointment
from dentconnect.modules.bookings.models import Booking
from dentconnect.modules.bookings.schemas import BookingCreate, GuestContact
from dentconnect.modules.bookings.service import (
    cancel_booking_svc,
    complete_booking_svc,
    create_booking_svc,
    list_bookings_for_practice_svc,
    list_bookings_for_user_svc,
    set_approval_status_svc,
)
from dentconnect.modules.notifications.events import ApprovalStatusChanged, BookingCreated
from dentconnect.modules.users.models import AuditLog, User


def booking_payload(appointment_id, **overrides):
    data = {
        "appointment_id": appointment_id,
        "treatment_category": "routine",
        "accessibility_needs": ["wheelchair"],
        "medications": True,
        "anxiety_level": "nervous",
    }
    data.update(overrides)
    return BookingCreate(**data)


@pytest.fixture
def book(sessionmaker, load_user, catalog):
    async def _book(appointment_id, patient_id=None, **overrides):
        patient = await load_user(patient_id or catalog.patient_id)
        async with sessionmaker() as s:
            return await create_booking_svc(s, booking_payload(appointment_id, **overrides), patient)

    return _book


@pytest.fixture
def act(sessionmaker, load_user):
    """Run a state-machine operation on a fresh session as the given user."""

    async def _act(fn, booking_id, user_id, *args):
        actor = await load_user(user_id)
        async with sessionmaker() as s:
            return await fn(s, booking_id, *args, actor) if args else await fn(s, booking_id, actor)

    return _act


async def fetch(sessionmaker, model, obj_id):
    async with sessionmaker() as s:
        return await s.get(model, obj_id)


async def test_booking_lifecycle_scenario(sessionmaker, catalog, make_slot, book, act):
    appt_id = await make_slot(days=1)

    booking, event = await book(appt_id)

    appt = await fetch(sessionmaker, Appointment, appt_id)
    assert appt.status == "booked"
    assert appt.user_id == catalog.patient_id
    assert booking.status == "confirmed"
    assert booking.approval_status == "pending"
    assert booking.payment_status == "pending"
    # snapshot of the appointment
    assert booking.practice_id == appt.practice_id
    assert booking.dentist_id == appt.dentist_id
    assert booking.treatment_id == appt.treatment_id
    assert isinstance(event, BookingCreated)
    assert event.recipient == catalog.practice_email
    assert event.patient_name == "Pat Jones"
    assert event.dentist_name == "Dr. Sarah Patel"

    approved, approval_event = await act(
        set_approval_status_svc, booking.id, catalog.dentist_user_id, "approved"
    )
    assert approved.approval_status == "approved"
    assert approved.status == "confirmed"
    assert approved.approved_by == catalog.dentist_user_id
    assert isinstance(approval_event, ApprovalStatusChanged)
    assert approval_event.recipient == "pat.jones@example.com"

    completed = await act(complete_booking_svc, booking.id, catalog.dentist_user_id)
    assert completed.status == "completed"
    assert completed.completed_at is not None

    appt = await fetch(sessionmaker, Appointment, appt_id)
    assert appt.status == "completed"


async def test_concurrent_bookings_exactly_one_wins(sessionmaker, catalog, make_slot, load_user):
    appt_id = await make_slot(days=2)
    first = await load_user(catalog.patient_id)
    second = await load_user(catalog.other_patient_id)

    async def attempt(patient):
        async with sessionmaker() as s:
            booking, _ = await create_booking_svc(s, booking_payload(appt_id), patient)
            return booking.id

    results = await asyncio.gather(attempt(first), attempt(second), return_exceptions=True)

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], ConflictError)

    async with sessionmaker() as s:
        appt = await s.get(Appointment, appt_id)
        count = await s.scalar(
            select(func.count()).select_from(Booking).where(Booking.appointment_id == appt_id)
        )
    assert appt.status == "booked"
    assert count == 1


async def test_cancel_before_date_releases_slot(sessionmaker, catalog, make_slot, book, act):
    appt_id = await make_slot(days=3)
    booking, _ = await book(appt_id)

    cancelled = await act(cancel_booking_svc, booking.id, catalog.patient_id)

    assert cancelled.status == "cancelled"
    assert cancelled.cancelled_by == catalog.patient_id
    appt = await fetch(sessionmaker, Appointment, appt_id)
    assert appt.status == "available"
    assert appt.user_id is None


async def test_cancel_after_date_marks_appointment_cancelled(sessionmaker, catalog, make_slot, book, act):
    appt_id = await make_slot(days=1)
    booking, _ = await book(appt_id)

    async with sessionmaker() as s:
        await s.execute(
            update(Appointment)
            .where(Appointment.id == appt_id)
            .values(appointment_date=utcnow() - timedelta(hours=2))
        )
        await s.commit()

    await act(cancel_booking_svc, booking.id, catalog.dentist_user_id)

    appt = await fetch(sessionmaker, Appointment, appt_id)
    assert appt.status == "cancelled"


async def test_released_slot_can_be_booked_again(sessionmaker, catalog, make_slot, book, act):
    appt_id = await make_slot(days=1)
    first, _ = await book(appt_id)
    await act(cancel_booking_svc, first.id, catalog.patient_id)

    second, _ = await book(appt_id, patient_id=catalog.other_patient_id)

    appt = await fetch(sessionmaker, Appointment, appt_id)
    assert appt.status == "booked"
    assert appt.user_id == catalog.other_patient_id
    assert second.id != first.id


async def test_paid_booking_is_refunded_on_cancel(sessionmaker, catalog, make_slot, book, act):
    appt_id = await make_slot(days=1)
    booking, _ = await book(appt_id)
    async with sessionmaker() as s:
        await s.execute(update(Booking).where(Booking.id == booking.id).values(payment_status="paid"))
        await s.commit()

    cancelled = await act(cancel_booking_svc, booking.id, catalog.patient_id)

    assert cancelled.payment_status == "refunded"


async def test_second_approval_decision_is_rejected(catalog, make_slot, book, act):
    appt_id = await make_slot(days=1)
    booking, _ = await book(appt_id)

    await act(set_approval_status_svc, booking.id, catalog.dentist_user_id, "approved")
    with pytest.raises(InvalidTransitionError):
        await act(set_approval_status_svc, booking.id, catalog.dentist_user_id, "approved")
    with pytest.raises(InvalidTransitionError):
        await act(set_approval_status_svc, booking.id, catalog.dentist_user_id, "rejected")


async def test_rejection_keeps_booking_confirmed_until_cancelled(sessionmaker, catalog, make_slot, book, act):
    appt_id = await make_slot(days=1)
    booking, _ = await book(appt_id)

    rejected, event = await act(set_approval_status_svc, booking.id, catalog.dentist_user_id, "rejected")
    assert rejected.status == "confirmed"
    assert event.approval_status == "rejected"

    await act(cancel_booking_svc, booking.id, catalog.dentist_user_id)
    stored = await fetch(sessionmaker, Booking, booking.id)
    assert stored.status == "cancelled"
    assert stored.approval_status == "rejected"


async def test_approval_frozen_once_booking_is_terminal(catalog, make_slot, book, act):
    appt_id = await make_slot(days=1)
    booking, _ = await book(appt_id)
    await act(cancel_booking_svc, booking.id, catalog.patient_id)

    with pytest.raises(InvalidStateError):
        await act(set_approval_status_svc, booking.id, catalog.dentist_user_id, "approved")


async def test_terminal_bookings_cannot_be_cancelled_or_completed(catalog, make_slot, book, act):
    appt_id = await make_slot(days=1)
    booking, _ = await book(appt_id)
    await act(cancel_booking_svc, booking.id, catalog.patient_id)

    with pytest.raises(InvalidStateError):
        await act(cancel_booking_svc, booking.id, catalog.patient_id)
    with pytest.raises(InvalidStateError):
        await act(complete_booking_svc, booking.id, catalog.dentist_user_id)


async def test_complete_requires_approval(catalog, make_slot, book, act):
    appt_id = await make_slot(days=1)
    booking, _ = await book(appt_id)

    with pytest.raises(InvalidStateError):
        await act(complete_booking_svc, booking.id, catalog.dentist_user_id)


async def test_create_booking_errors(sessionmaker, catalog, make_slot, book):
    import uuid

    with pytest.raises(NotFoundError):
        await book(uuid.uuid4())

    booked = await make_slot(days=1, status="booked", user_id=catalog.other_patient_id)
    with pytest.raises(ConflictError):
        await book(booked)

    past = await make_slot(days=-1)
    with pytest.raises(ValidationError):
        await book(past)

    fresh = await make_slot(days=1)
    with pytest.raises(ValidationError):
        await book(fresh, treatment_category="orthodontics")

    appt = await fetch(sessionmaker, Appointment, fresh)
    assert appt.status == "available"


async def test_failed_insert_rolls_back_appointment_claim(sessionmaker, catalog, make_slot, book):
    appt_id = await make_slot(days=1)
    await book(appt_id)

    # Put the slot back to available behind the state machine's back; the
    # live booking still holds the partial unique index.
    async with sessionmaker() as s:
        await s.execute(
            update(Appointment)
            .where(Appointment.id == appt_id)
            .values(status="available", user_id=None)
        )
        await s.commit()

    with pytest.raises(IntegrityError):
        await book(appt_id, patient_id=catalog.other_patient_id)

    appt = await fetch(sessionmaker, Appointment, appt_id)
    assert appt.status == "available"
    assert appt.user_id is None

    async with sessionmaker() as s:
        actions = (await s.scalars(select(AuditLog.action))).all()
    assert "CREATE_BOOKING_COMMIT" in actions
    assert "CREATE_BOOKING_ROLLBACK" in actions


async def test_booked_iff_one_active_booking(sessionmaker, catalog, make_slot, book, act):
    slots = [await make_slot(days=d) for d in (1, 2, 3, 4)]
    b1, _ = await book(slots[0])
    b2, _ = await book(slots[1])
    await act(cancel_booking_svc, b2.id, catalog.patient_id)
    b3, _ = await book(slots[2], patient_id=catalog.other_patient_id)
    await act(set_approval_status_svc, b3.id, catalog.dentist_user_id, "approved")
    await act(complete_booking_svc, b3.id, catalog.dentist_user_id)
    await book(slots[1], patient_id=catalog.other_patient_id)

    async with sessionmaker() as s:
        appointments = (await s.scalars(select(Appointment))).all()
        assert len(appointments) == 4
        for appt in appointments:
            live = await s.scalar(
                select(func.count())
                .select_from(Booking)
                .where(Booking.appointment_id == appt.id, Booking.status == "confirmed")
            )
            not_cancelled = await s.scalar(
                select(func.count())
                .select_from(Booking)
                .where(Booking.appointment_id == appt.id, Booking.status != "cancelled")
            )
            assert (appt.status == "booked") == (live == 1)
            assert not_cancelled <= 1


async def test_authorization_rules(catalog, make_slot, book, act):
    appt_id = await make_slot(days=1)
    booking, _ = await book(appt_id)

    with pytest.raises(ForbiddenError):
        await act(cancel_booking_svc, booking.id, catalog.other_patient_id)
    with pytest.raises(ForbiddenError):
        await act(set_approval_status_svc, booking.id, catalog.other_dentist_user_id, "approved")
    with pytest.raises(ForbiddenError):
        await act(set_approval_status_svc, booking.id, catalog.patient_id, "approved")
    with pytest.raises(ForbiddenError):
        await act(complete_booking_svc, booking.id, catalog.patient_id)


async def test_guest_booking_creates_patient(sessionmaker, catalog, make_slot):
    appt_id = await make_slot(days=1)
    guest = GuestContact(first_name="Alex", last_name="Morgan", email="Alex.Morgan@Example.com")

    async with sessionmaker() as s:
        booking, event = await create_booking_svc(s, booking_payload(appt_id, guest=guest), None)

    assert event.patient_email == "alex.morgan@example.com"
    async with sessionmaker() as s:
        user = await s.get(User, booking.user_id)
    assert user.user_type == "patient"
    assert user.email == "alex.morgan@example.com"


async def test_guest_with_registered_email_must_log_in(sessionmaker, catalog, make_slot):
    appt_id = await make_slot(days=1)
    guest = GuestContact(first_name="Pat", last_name="Jones", email="pat.jones@example.com")

    with pytest.raises(ValidationError):
        async with sessionmaker() as s:
            await create_booking_svc(s, booking_payload(appt_id, guest=guest), None)

    appt = await fetch(sessionmaker, Appointment, appt_id)
    assert appt.status == "available"


async def test_lists_are_oldest_first(sessionmaker, catalog, make_slot, book, act):
    first, _ = await book(await make_slot(days=5))
    second, _ = await book(await make_slot(days=1))
    await act(set_approval_status_svc, second.id, catalog.dentist_user_id, "approved")

    async with sessionmaker() as s:
        mine = await list_bookings_for_user_svc(s, catalog.patient_id)
        pending = await list_bookings_for_practice_svc(s, catalog.practice_id, "pending")
        everything = await list_bookings_for_practice_svc(s, catalog.practice_id)

    assert [b.id for b in mine] == [first.id, second.id]
    assert mine[-1].treatment.name == "Check-up & Clean"
    assert [b.id for b in pending] == [first.id]
    assert len(everything) == 2

    with pytest.raises(ValidationError):
        async with sessionmaker() as s:
            await list_bookings_for_practice_svc(s, catalog.practice_id, "maybe")
