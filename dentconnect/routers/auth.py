# dentconnect/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from dentconnect.db.sql import get_session
from dentconnect.dependencies import get_current_user
from dentconnect.modules.notifications.dispatcher import NotificationDispatcher, get_dispatcher
from dentconnect.modules.practices.schemas import (
    PracticeSummary,
    PracticeTagRequest,
    PracticeTagResponse,
)
from dentconnect.modules.practices.service import verify_practice_tag_svc
from dentconnect.modules.users.models import User
from dentconnect.modules.users.schemas import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    RegisterRequest,
    UserPublic,
)
from dentconnect.modules.users.service import (
    InvalidCredentials,
    login_user,
    logout_user,
    register_user,
    to_public,
)

router = APIRouter(tags=["auth"])


@router.post(
    "/auth/register",
    response_model=UserPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Create a patient or dentist account",
    responses={
        201: {"description": "User created"},
        404: {"model": ErrorResponse, "description": "Unknown practice tag"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Invalid payload or missing practice tag"},
    },
)
async def auth_register(
    payload: RegisterRequest,
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """
    Register a new user.

    Notes:
    - Email is normalized to lowercase.
    - Password must pass strength checks (8–64 chars, ≥1 letter, ≥1 digit).
    - Dentists must supply their practice tag.
    """
    user_public, welcome = await register_user(session, payload)
    background.add_task(dispatcher.notify, welcome)
    return user_public


@router.post(
    "/auth/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Obtain a Bearer token with email and password",
    responses={
        200: {"description": "Authenticated"},
        401: {"description": "Invalid credentials"},
    },
)
async def auth_login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_session),
):
    """
    Expects:
    {
        "email": "user@example.com",
        "password": "secret",
        "user_type": "patient"      # optional
    }
    """
    try:
        return await login_user(session, payload)
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_credentials",
        )


@router.post(
    "/auth/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="End the current session",
)
async def auth_logout(
    request: Request,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    await logout_user(session, current_user, getattr(request.state, "session_id", None))


@router.get(
    "/auth/me",
    response_model=MeResponse,
    status_code=status.HTTP_200_OK,
    summary="Return the current user's profile",
)
async def auth_me(current_user: User = Depends(get_current_user)):
    return to_public(current_user)


@router.post(
    "/auth/verify-practice-tag",
    response_model=PracticeTagResponse,
    summary="Check a practice tag (PIN gate)",
    responses={404: {"model": ErrorResponse, "description": "Unknown practice tag"}},
)
async def auth_verify_practice_tag(
    payload: PracticeTagRequest,
    session: AsyncSession = Depends(get_session),
):
    practice = await verify_practice_tag_svc(session, payload.practice_tag)
    return PracticeTagResponse(practice=PracticeSummary.model_validate(practice))
