# dentconnect/routers/catalog.py
from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dentconnect.db.sql import get_session
from dentconnect.dependencies import require_user_type
from dentconnect.modules.appointments.schemas import (
    AppointmentCreate,
    AppointmentDetail,
    AppointmentPublic,
    PracticeWithSlots,
)
from dentconnect.modules.appointments.service import (
    create_slot_svc,
    list_available_svc,
    list_practice_slots_svc,
    open_slots_by_practice,
)
from dentconnect.modules.practices.schemas import DentistPublic, PracticePublic, TreatmentPublic
from dentconnect.modules.practices.service import (
    get_dentist_svc,
    get_practice_svc,
    list_dentists_svc,
    list_practices_svc,
    list_treatments_svc,
)
from dentconnect.modules.users.models import User
from dentconnect.modules.users.schemas import ErrorResponse

router = APIRouter(tags=["catalog"])


def _with_slots(practice, slots) -> PracticeWithSlots:
    data = PracticePublic.model_validate(practice).model_dump()
    data["available_appointments"] = [AppointmentPublic.model_validate(a) for a in slots]
    return PracticeWithSlots.model_validate(data)


# Practices
@router.get(
    "/practices",
    response_model=List[PracticeWithSlots],
    summary="Practices with their open slots, optionally by postcode prefix",
)
async def practices_list(
    postcode: Optional[str] = Query(None, max_length=10),
    session: AsyncSession = Depends(get_session),
):
    practices = await list_practices_svc(session, postcode)
    slots = await open_slots_by_practice(session, [p.id for p in practices])
    return [_with_slots(p, slots[p.id]) for p in practices]


@router.get(
    "/practices/{practice_id}",
    response_model=PracticeWithSlots,
    responses={404: {"model": ErrorResponse}},
)
async def practices_get(practice_id: UUID, session: AsyncSession = Depends(get_session)):
    practice = await get_practice_svc(session, practice_id)
    slots = await open_slots_by_practice(session, [practice.id])
    return _with_slots(practice, slots[practice.id])


@router.get("/practices/{practice_id}/dentists", response_model=List[DentistPublic])
async def practices_dentists(practice_id: UUID, session: AsyncSession = Depends(get_session)):
    return await list_dentists_svc(session, practice_id)


@router.get(
    "/practices/{practice_id}/appointments",
    response_model=List[AppointmentPublic],
    summary="Open slots of one practice",
)
async def practices_slots(
    practice_id: UUID,
    on_date: Optional[date] = Query(None, alias="date"),
    session: AsyncSession = Depends(get_session),
):
    return await list_practice_slots_svc(session, practice_id, on_date)


@router.post(
    "/practices/{practice_id}/appointments",
    response_model=AppointmentPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a bookable slot (dentists of the practice only)",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def practices_create_slot(
    practice_id: UUID,
    payload: AppointmentCreate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_user_type("dentist")),
):
    return await create_slot_svc(session, practice_id, payload, current_user)


# Treatments & dentists
@router.get("/treatments", response_model=List[TreatmentPublic])
async def treatments_list(
    category: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session),
):
    return await list_treatments_svc(session, category)


@router.get("/dentists", response_model=List[DentistPublic])
async def dentists_list(session: AsyncSession = Depends(get_session)):
    return await list_dentists_svc(session)


@router.get(
    "/dentists/{dentist_id}",
    response_model=DentistPublic,
    responses={404: {"model": ErrorResponse}},
)
async def dentists_get(dentist_id: UUID, session: AsyncSession = Depends(get_session)):
    return await get_dentist_svc(session, dentist_id)


# Availability search
@router.get(
    "/appointments/available",
    response_model=List[AppointmentDetail],
    summary="Open slots by treatment category and distance",
)
async def appointments_available(
    category: Optional[str] = Query(None),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: Optional[float] = Query(None, gt=0, le=500),
    session: AsyncSession = Depends(get_session),
):
    rows = await list_available_svc(session, category, lat, lng, radius_km)
    results = []
    for appt, distance in rows:
        item = AppointmentDetail.model_validate(appt)
        item.distance_km = distance
        results.append(item)
    return results
