# dentconnect/routers/bookings.py
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dentconnect.core.errors import ForbiddenError
from dentconnect.db.sql import get_session
from dentconnect.dependencies import get_current_user, get_optional_user, require_user_type
from dentconnect.modules.bookings.schemas import (
    ApprovalUpdate,
    BookingCreate,
    BookingDetail,
    BookingPublic,
)
from dentconnect.modules.bookings.service import (
    cancel_booking_svc,
    complete_booking_svc,
    create_booking_svc,
    get_booking_svc,
    list_bookings_for_practice_svc,
    list_bookings_for_user_svc,
    set_approval_status_svc,
)
from dentconnect.modules.notifications.dispatcher import NotificationDispatcher, get_dispatcher
from dentconnect.modules.users.models import User
from dentconnect.modules.users.schemas import ErrorResponse

router = APIRouter(tags=["bookings"])

STATE_ERRORS = {
    403: {"model": ErrorResponse, "description": "Not your booking"},
    404: {"model": ErrorResponse, "description": "Booking not found"},
    409: {"model": ErrorResponse, "description": "invalid_state / invalid_transition"},
}


@router.post(
    "/bookings",
    response_model=BookingPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Book an available appointment (logged in or as a guest)",
    responses={
        404: {"model": ErrorResponse, "description": "Appointment not found"},
        409: {"model": ErrorResponse, "description": "Appointment no longer available"},
        422: {"model": ErrorResponse, "description": "Validation error"},
    },
)
async def bookings_create(
    payload: BookingCreate,
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    booking, event = await create_booking_svc(session, payload, current_user)
    # Runs after the response is sent; email problems never reach the caller
    background.add_task(dispatcher.notify, event)
    return booking


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingDetail,
    responses={403: STATE_ERRORS[403], 404: STATE_ERRORS[404]},
)
async def bookings_get(
    booking_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await get_booking_svc(session, booking_id, current_user)


@router.put(
    "/bookings/{booking_id}/approval",
    response_model=BookingPublic,
    summary="Approve or reject a pending booking (practice side)",
    responses=STATE_ERRORS,
)
async def bookings_set_approval(
    booking_id: UUID,
    payload: ApprovalUpdate,
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_user_type("dentist")),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    booking, event = await set_approval_status_svc(
        session, booking_id, payload.approval_status.value, current_user
    )
    background.add_task(dispatcher.notify, event)
    return booking


@router.put(
    "/bookings/{booking_id}/cancel",
    response_model=BookingPublic,
    summary="Cancel a booking and release its slot",
    responses=STATE_ERRORS,
)
async def bookings_cancel(
    booking_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await cancel_booking_svc(session, booking_id, current_user)


@router.put(
    "/bookings/{booking_id}/complete",
    response_model=BookingPublic,
    summary="Mark an approved booking as completed",
    responses=STATE_ERRORS,
)
async def bookings_complete(
    booking_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_user_type("dentist")),
):
    return await complete_booking_svc(session, booking_id, current_user)


@router.get(
    "/users/{user_id}/bookings",
    response_model=List[BookingDetail],
    summary="A patient's bookings, oldest first",
    responses={403: {"model": ErrorResponse}},
)
async def users_bookings(
    user_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if current_user.id != user_id:
        raise ForbiddenError("cannot_view_other_user_bookings")
    return await list_bookings_for_user_svc(session, user_id)


@router.get(
    "/practices/{practice_id}/bookings",
    response_model=List[BookingDetail],
    summary="Practice dashboard: bookings, optionally by approval status",
    responses={403: {"model": ErrorResponse}},
)
async def practices_bookings(
    practice_id: UUID,
    approval_status: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_user_type("dentist")),
):
    if current_user.practice_id != practice_id:
        raise ForbiddenError("not_practice_member")
    return await list_bookings_for_practice_svc(session, practice_id, approval_status)
