"""
Riddle Server — Player/Score Service
=====================================

What:  Player records, score submissions, best-time tracking, leaderboard
       and per-player statistics.
Who:   Called by the /players route handlers.

Best-time update (submit_score):
    1. INSERT the score row (always; the score log is append-only)
    2. UPDATE players SET best_time = :t
         WHERE id = :id AND (best_time = 0 OR best_time > :t)

    Step 2 is a single conditional statement, so the database evaluates the
    comparison and the write under the row lock. Two concurrent
    submissions for the same player can no longer overwrite a lower time
    with a higher one: whichever commits last can only lower best_time.

Leaderboard:
    Players with best_time = 0 have never solved anything and are excluded.
    riddles_solved is a correlated COUNT over player_scores, evaluated in
    the same statement as the ranking query.
"""

import logging
import math
from typing import List

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from riddle_server.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
)
from riddle_server.models.player import Player, PlayerScore
from riddle_server.schemas.player import (
    LeaderboardEntry,
    PlayerResponse,
    PlayerStats,
    PlayerStatsResponse,
    ScoreHistoryItem,
    SubmitScoreResponse,
)

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 upwards (2.5 → 3), unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


class PlayerService:
    """
    Business logic for players and scores.

    Error Handling Strategy:
        NotFoundError / ConflictError are raised where they are detected and
        propagate unchanged. Any other SQLAlchemy failure is logged and
        wrapped in DatabaseError so no SQL reaches the client.
    """

    async def _get_by_username(self, db: AsyncSession, username: str) -> Player:
        result = await db.execute(select(Player).where(Player.username == username))
        player = result.scalar_one_or_none()
        if player is None:
            raise NotFoundError(resource="player", message="Player not found")
        return player

    async def create_player(self, db: AsyncSession, username: str) -> PlayerResponse:
        """
        Create a password-less (legacy-style) player record.

        Raises:
            ConflictError: username already taken
            DatabaseError: unexpected store failure
        """
        try:
            existing = await db.execute(select(Player.id).where(Player.username == username))
            if existing.scalar_one_or_none() is not None:
                raise ConflictError("Username already exists")

            player = Player(username=username)
            db.add(player)
            await db.flush()
            await db.refresh(player)
        except IntegrityError:
            await db.rollback()
            raise ConflictError("Username already exists")
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to create player: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create player",
                context={"error_type": type(e).__name__},
            )

        logger.info("Player created: %s (id=%s)", player.username, player.id)
        return PlayerResponse.model_validate(player)

    async def get_player(self, db: AsyncSession, username: str) -> PlayerResponse:
        """Raises NotFoundError for an unknown username."""
        try:
            player = await self._get_by_username(db, username)
        except SQLAlchemyError as e:
            logger.error("Failed to find player %s: %s", username, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to find player",
                context={"error_type": type(e).__name__},
            )
        return PlayerResponse.model_validate(player)

    async def list_players(
        self,
        db: AsyncSession,
        limit: int = 50,
        offset: int = 0,
    ) -> List[PlayerResponse]:
        """All players, fastest best_time first (unset times sort first as 0)."""
        try:
            result = await db.execute(
                select(Player)
                .order_by(Player.best_time.asc(), Player.id.asc())
                .offset(offset)
                .limit(limit)
            )
            players = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to list players: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to get players",
                context={"error_type": type(e).__name__},
            )
        return [PlayerResponse.model_validate(p) for p in players]

    async def submit_score(
        self,
        db: AsyncSession,
        player_id: int,
        riddle_id: str,
        time_to_solve: int,
    ) -> SubmitScoreResponse:
        """
        Record a solve and lower the player's best_time if it improved.

        Raises:
            NotFoundError: unknown player_id
            DatabaseError: unexpected store failure
        """
        try:
            player = await db.get(Player, player_id)
            if player is None:
                raise NotFoundError(resource="player", resource_id=str(player_id))

            db.add(
                PlayerScore(
                    player_id=player_id,
                    riddle_id=riddle_id,
                    time_to_solve=time_to_solve,
                )
            )
            await db.flush()

            result = await db.execute(
                update(Player)
                .where(
                    Player.id == player_id,
                    or_(Player.best_time == 0, Player.best_time > time_to_solve),
                )
                .values(best_time=time_to_solve)
                .execution_options(synchronize_session=False)
            )
            improved = result.rowcount == 1
            await db.refresh(player)
        except SQLAlchemyError as e:
            logger.error("Failed to submit score: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to submit score",
                context={"error_type": type(e).__name__},
            )

        logger.info(
            "Score recorded: player=%s riddle=%s time=%dms best=%dms%s",
            player_id,
            riddle_id,
            time_to_solve,
            player.best_time,
            " (new best)" if improved else "",
        )
        return SubmitScoreResponse(success=True, best_time=player.best_time, improved=improved)

    async def leaderboard(self, db: AsyncSession, limit: int = 10) -> List[LeaderboardEntry]:
        """Top `limit` players by ascending best_time, with their solve counts."""
        solved_count = (
            select(func.count(PlayerScore.id))
            .where(PlayerScore.player_id == Player.id)
            .correlate(Player)
            .scalar_subquery()
        )
        try:
            result = await db.execute(
                select(
                    Player.id,
                    Player.username,
                    Player.best_time,
                    solved_count.label("riddles_solved"),
                )
                .where(Player.best_time != 0)
                .order_by(Player.best_time.asc(), Player.id.asc())
                .limit(limit)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Failed to get leaderboard: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to get leaderboard",
                context={"error_type": type(e).__name__},
            )

        return [
            LeaderboardEntry(
                id=row.id,
                username=row.username,
                best_time=row.best_time,
                riddles_solved=row.riddles_solved or 0,
            )
            for row in rows
        ]

    async def player_stats(self, db: AsyncSession, username: str) -> PlayerStatsResponse:
        """
        Aggregate stats plus full history for one player.

        Raises:
            NotFoundError: unknown username
        """
        try:
            player = await self._get_by_username(db, username)
            result = await db.execute(
                select(PlayerScore)
                .where(PlayerScore.player_id == player.id)
                .order_by(PlayerScore.solved_at.desc(), PlayerScore.id.desc())
            )
            scores = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to get stats for %s: %s", username, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to get player stats",
                context={"error_type": type(e).__name__},
            )

        total_solved = len(scores)
        avg_time = 0
        if total_solved:
            avg_time = round_half_up(sum(s.time_to_solve for s in scores) / total_solved)

        return PlayerStatsResponse(
            player=PlayerResponse.model_validate(player),
            stats=PlayerStats(
                total_solved=total_solved,
                avg_time=avg_time,
                best_time=player.best_time,
            ),
            history=[ScoreHistoryItem.model_validate(s) for s in scores],
        )


player_service = PlayerService()
