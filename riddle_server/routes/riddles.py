"""
Riddle Server — Riddle Routes
==============================

What:  Public riddle reads and admin-only riddle management.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from riddle_server.database import get_db_session
from riddle_server.middleware.auth import require_admin
from riddle_server.schemas.common import ErrorResponse
from riddle_server.schemas.riddle import (
    RiddleBulkLoad,
    RiddleBulkLoadResponse,
    RiddleCreate,
    RiddleDeleteResponse,
    RiddleLevel,
    RiddleResponse,
    RiddleUpdate,
)
from riddle_server.services.riddle_service import riddle_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/riddles", tags=["Riddles"])

_ADMIN_ERRORS = {
    401: {"description": "Missing or rejected token", "model": ErrorResponse},
    403: {"description": "Caller is not an admin", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=List[RiddleResponse],
    responses={500: {"description": "Store failure", "model": ErrorResponse}},
    summary="List riddles, newest first",
)
async def list_riddles(
    limit: int = Query(default=50, ge=1, le=200),
    skip: int = Query(default=0, ge=0),
    level: Optional[RiddleLevel] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> List[RiddleResponse]:
    return await riddle_service.list_riddles(db, limit=limit, skip=skip, level=level)


@router.get(
    "/random",
    response_model=RiddleResponse,
    responses={404: {"description": "No riddles stored", "model": ErrorResponse}},
    summary="One riddle chosen at random",
)
async def random_riddle(db: AsyncSession = Depends(get_db_session)) -> RiddleResponse:
    return await riddle_service.random_riddle(db)


@router.post(
    "/bulk",
    status_code=201,
    response_model=RiddleBulkLoadResponse,
    dependencies=[Depends(require_admin)],
    responses={400: {"description": "Empty batch", "model": ErrorResponse}, **_ADMIN_ERRORS},
    summary="Load an initial batch of riddles (admin)",
)
async def load_riddles(
    body: RiddleBulkLoad,
    db: AsyncSession = Depends(get_db_session),
) -> RiddleBulkLoadResponse:
    return await riddle_service.load_initial(db, body.riddles)


@router.get(
    "/{riddle_id}",
    response_model=RiddleResponse,
    responses={
        400: {"description": "Malformed riddle id", "model": ErrorResponse},
        404: {"description": "Riddle not found", "model": ErrorResponse},
    },
    summary="Get one riddle",
)
async def get_riddle(
    riddle_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> RiddleResponse:
    return await riddle_service.get_riddle(db, riddle_id)


@router.post(
    "",
    status_code=201,
    response_model=RiddleResponse,
    dependencies=[Depends(require_admin)],
    responses=_ADMIN_ERRORS,
    summary="Create a riddle (admin)",
)
async def create_riddle(
    body: RiddleCreate,
    db: AsyncSession = Depends(get_db_session),
) -> RiddleResponse:
    return await riddle_service.create_riddle(db, body)


@router.put(
    "/{riddle_id}",
    response_model=RiddleResponse,
    dependencies=[Depends(require_admin)],
    responses={404: {"description": "Riddle not found", "model": ErrorResponse}, **_ADMIN_ERRORS},
    summary="Update a riddle (admin)",
)
async def update_riddle(
    riddle_id: str,
    body: RiddleUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> RiddleResponse:
    return await riddle_service.update_riddle(db, riddle_id, body)


@router.delete(
    "/{riddle_id}",
    response_model=RiddleDeleteResponse,
    dependencies=[Depends(require_admin)],
    responses={404: {"description": "Riddle not found", "model": ErrorResponse}, **_ADMIN_ERRORS},
    summary="Delete a riddle (admin)",
)
async def delete_riddle(
    riddle_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> RiddleDeleteResponse:
    return await riddle_service.delete_riddle(db, riddle_id)
