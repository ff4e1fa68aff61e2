"""
Riddle Server — Authentication Routes
======================================

What:  POST /auth/register, POST /auth/login, GET /auth/me.
How:   The auth service returns an AuthOutcome; `unwrap()` raises the
       carried domain error so the boundary handler renders it.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from riddle_server.database import get_db_session
from riddle_server.middleware.auth import require_auth
from riddle_server.schemas.auth import (
    AuthResponse,
    CurrentUser,
    LoginRequest,
    RegisterRequest,
)
from riddle_server.schemas.common import ErrorResponse
from riddle_server.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={
        400: {"description": "Username or password too short", "model": ErrorResponse},
        409: {"description": "Username already exists", "model": ErrorResponse},
    },
    summary="Create an account and receive a session token",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    outcome = await auth_service.register(
        db,
        username=body.username,
        password=body.password,
        admin_code=body.admin_code,
    )
    return outcome.unwrap()


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        400: {"description": "Missing username or password", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Exchange username and password for a session token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    outcome = await auth_service.login(db, username=body.username, password=body.password)
    return outcome.unwrap()


@router.get(
    "/me",
    response_model=CurrentUser,
    responses={401: {"description": "Missing or rejected token", "model": ErrorResponse}},
    summary="Return the identity behind the presented token",
)
async def me(user: CurrentUser = Depends(require_auth)) -> CurrentUser:
    return user
