"""
Riddle Server — Player & Score Schemas
=======================================

What:  API contracts for player records, score submission, leaderboard and stats.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from riddle_server.models.player import Role


class PlayerCreate(BaseModel):
    username: str = Field(min_length=1, max_length=64)


class PlayerResponse(BaseModel):
    """
    What:  Public representation of a player row.
    Who:   Returned by POST /players, GET /players and GET /players/{username}.
    """
    id: int
    username: str
    role: Role
    created_at: datetime
    best_time: int = Field(description="Fastest solve in ms; 0 when the player has not solved yet")

    model_config = {"from_attributes": True}


class PlayerDetailResponse(PlayerResponse):
    """PlayerResponse plus whether the (optionally) authenticated caller is this player."""
    is_self: bool = False


class SubmitScoreRequest(BaseModel):
    player_id: int = Field(gt=0)
    riddle_id: str = Field(min_length=1, max_length=64)
    time_to_solve: int = Field(gt=0, description="Milliseconds taken to solve the riddle")


class SubmitScoreResponse(BaseModel):
    success: bool = True
    best_time: int = Field(description="The player's best time after this submission")
    improved: bool = Field(description="Whether this submission lowered best_time")


class LeaderboardEntry(BaseModel):
    id: int
    username: str
    best_time: int
    riddles_solved: int


class ScoreHistoryItem(BaseModel):
    riddle_id: str
    time_to_solve: int
    solved_at: datetime

    model_config = {"from_attributes": True}


class PlayerStats(BaseModel):
    total_solved: int
    avg_time: int = Field(description="Mean solve time in ms, rounded half-up")
    best_time: int


class PlayerStatsResponse(BaseModel):
    """
    What:  A player's aggregate stats plus their full solve history (newest first).
    Who:   Returned by GET /players/{username}/stats.
    """
    player: PlayerResponse
    stats: PlayerStats
    history: List[ScoreHistoryItem]
