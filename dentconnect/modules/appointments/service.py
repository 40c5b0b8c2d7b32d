# dentconnect/modules/appointments/service.py
from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dentconnect.core.errors import ForbiddenError, NotFoundError, ValidationError
from dentconnect.core.security import as_utc, utcnow
from dentconnect.db.sql import transaction
from dentconnect.modules.appointments.models import Appointment, AppointmentStatus
from dentconnect.modules.appointments.schemas import AppointmentCreate
from dentconnect.modules.practices.models import Dentist, Treatment, TreatmentCategory
from dentconnect.modules.practices.service import get_practice_svc
from dentconnect.modules.users.models import User

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dp = p2 - p1
    dl = math.radians(lng2 - lng1)
    a = math.sin(dp / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def _open_slots():
    return select(Appointment).where(
        Appointment.status == AppointmentStatus.AVAILABLE.value,
        Appointment.appointment_date > utcnow(),
    )


async def list_practice_slots_svc(
    session: AsyncSession,
    practice_id: UUID,
    on_date: Optional[date] = None,
) -> List[Appointment]:
    """Future available slots of one practice, optionally for a single day (UTC)."""
    await get_practice_svc(session, practice_id)

    stmt = _open_slots().where(Appointment.practice_id == practice_id)
    if on_date is not None:
        start = datetime.combine(on_date, time.min, tzinfo=timezone.utc)
        stmt = stmt.where(
            Appointment.appointment_date >= start,
            Appointment.appointment_date < start + timedelta(days=1),
        )
    stmt = stmt.order_by(Appointment.appointment_date.asc())
    return list((await session.execute(stmt)).scalars().all())


async def open_slots_by_practice(
    session: AsyncSession, practice_ids: Iterable[UUID]
) -> Dict[UUID, List[Appointment]]:
    ids = list(practice_ids)
    grouped: Dict[UUID, List[Appointment]] = {pid: [] for pid in ids}
    if not ids:
        return grouped
    stmt = (
        _open_slots()
        .where(Appointment.practice_id.in_(ids))
        .order_by(Appointment.appointment_date.asc())
    )
    for appt in (await session.execute(stmt)).scalars().all():
        grouped[appt.practice_id].append(appt)
    return grouped


async def create_slot_svc(
    session: AsyncSession,
    practice_id: UUID,
    payload: AppointmentCreate,
    actor: User,
) -> Appointment:
    """
    A dentist publishes a slot for their own practice.
    Dentist and treatment must exist; the dentist must work at the practice.
    """
    actor_id = actor.id
    if not actor.is_dentist or actor.practice_id != practice_id:
        raise ForbiddenError("not_practice_member")

    when = as_utc(payload.appointment_date)
    if when <= utcnow():
        raise ValidationError("appointment_in_past")

    async with transaction(
        session,
        action="CREATE_APPOINTMENT",
        user_id=actor_id,
        entity_type="practice",
        entity_id=practice_id,
    ):
        await get_practice_svc(session, practice_id)
        dentist = await session.get(Dentist, payload.dentist_id)
        if not dentist:
            raise NotFoundError("dentist_not_found")
        if dentist.practice_id != practice_id:
            raise ValidationError("dentist_not_in_practice")
        if not await session.get(Treatment, payload.treatment_id):
            raise NotFoundError("treatment_not_found")

        appt = Appointment(
            practice_id=practice_id,
            dentist_id=payload.dentist_id,
            treatment_id=payload.treatment_id,
            appointment_date=when,
            duration=payload.duration,
            status=AppointmentStatus.AVAILABLE.value,
        )
        session.add(appt)
        await session.flush()

    return appt


async def list_available_svc(
    session: AsyncSession,
    category: Optional[str] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius_km: Optional[float] = None,
) -> List[Tuple[Appointment, Optional[float]]]:
    """
    Future available slots, optionally for one treatment category and
    within radius_km of (lat, lng). Ordered by appointment date; distance is
    reported but not used for ranking.
    """
    if (lat is None) != (lng is None):
        raise ValidationError("lat_and_lng_required_together")
    if radius_km is not None and lat is None:
        raise ValidationError("lat_and_lng_required_for_radius")

    stmt = _open_slots()
    if category is not None:
        if category not in {c.value for c in TreatmentCategory}:
            raise ValidationError("unknown_treatment_category")
        stmt = stmt.join(Treatment, Treatment.id == Appointment.treatment_id).where(
            Treatment.category == category
        )
    stmt = stmt.order_by(Appointment.appointment_date.asc(), Appointment.id.asc())
    rows = (await session.execute(stmt)).scalars().all()

    if lat is None:
        return [(appt, None) for appt in rows]

    results: List[Tuple[Appointment, Optional[float]]] = []
    for appt in rows:
        distance = haversine_km(lat, lng, appt.practice.latitude, appt.practice.longitude)
        if radius_km is None or distance <= radius_km:
            results.append((appt, round(distance, 2)))
    return results
