"""
Riddle Server — Player Routes
==============================

What:  Player records, leaderboard, score submission and stats.

Access:
    GET  /players                       admin only
    GET  /players/leaderboard           public
    POST /players                       public
    POST /players/submit-score          public (anyone can play)
    GET  /players/{username}            optional auth (adds is_self)
    GET  /players/{username}/stats      public

Static paths are declared before /{username} so "leaderboard" is never
captured as a username.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from riddle_server.database import get_db_session
from riddle_server.middleware.auth import optional_auth, require_admin
from riddle_server.schemas.auth import CurrentUser
from riddle_server.schemas.common import ErrorResponse
from riddle_server.schemas.player import (
    LeaderboardEntry,
    PlayerCreate,
    PlayerDetailResponse,
    PlayerResponse,
    PlayerStatsResponse,
    SubmitScoreRequest,
    SubmitScoreResponse,
)
from riddle_server.services.player_service import player_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/players", tags=["Players"])


@router.get(
    "",
    response_model=List[PlayerResponse],
    dependencies=[Depends(require_admin)],
    responses={
        401: {"description": "Missing or rejected token", "model": ErrorResponse},
        403: {"description": "Caller is not an admin", "model": ErrorResponse},
    },
    summary="List all players (admin)",
)
async def list_players(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
) -> List[PlayerResponse]:
    return await player_service.list_players(db, limit=limit, offset=offset)


@router.get(
    "/leaderboard",
    response_model=List[LeaderboardEntry],
    summary="Fastest players first",
)
async def leaderboard(
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> List[LeaderboardEntry]:
    return await player_service.leaderboard(db, limit=limit)


@router.post(
    "",
    status_code=201,
    response_model=PlayerResponse,
    responses={409: {"description": "Username already exists", "model": ErrorResponse}},
    summary="Create a player record",
)
async def create_player(
    body: PlayerCreate,
    db: AsyncSession = Depends(get_db_session),
) -> PlayerResponse:
    return await player_service.create_player(db, body.username)


@router.post(
    "/submit-score",
    response_model=SubmitScoreResponse,
    responses={404: {"description": "Unknown player", "model": ErrorResponse}},
    summary="Record a solve time",
)
async def submit_score(
    body: SubmitScoreRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SubmitScoreResponse:
    return await player_service.submit_score(
        db,
        player_id=body.player_id,
        riddle_id=body.riddle_id,
        time_to_solve=body.time_to_solve,
    )


@router.get(
    "/{username}",
    response_model=PlayerDetailResponse,
    responses={404: {"description": "Player not found", "model": ErrorResponse}},
    summary="Get one player",
)
async def get_player(
    username: str,
    user: CurrentUser = Depends(optional_auth),
    db: AsyncSession = Depends(get_db_session),
) -> PlayerDetailResponse:
    player = await player_service.get_player(db, username)
    return PlayerDetailResponse(
        **player.model_dump(),
        is_self=not user.is_guest and user.id == player.id,
    )


@router.get(
    "/{username}/stats",
    response_model=PlayerStatsResponse,
    responses={404: {"description": "Player not found", "model": ErrorResponse}},
    summary="Aggregate stats and solve history",
)
async def player_stats(
    username: str,
    db: AsyncSession = Depends(get_db_session),
) -> PlayerStatsResponse:
    return await player_service.player_stats(db, username)
