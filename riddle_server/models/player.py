"""
Riddle Server — Player & Score SQLAlchemy Models
=================================================

What:  ORM models for the `players` and `player_scores` tables.
How:   Inherit from the shared DeclarativeBase; Alembic reads these for migrations.
Who:   Used by the auth service, player service and access-control dependencies.

Table Design:
    players
        - id: integer identity, embedded in session tokens
        - username: globally unique (the unique index is the last line of defence
          against concurrent duplicate registrations)
        - password_hash: nullable; rows created before password auth
          ("legacy records") have none
        - role: guest | user | admin, enforced by a CHECK constraint
        - best_time: fastest solve in milliseconds, 0 = no solve yet
    player_scores
        - append-only log of every solve; never updated or deleted
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from riddle_server.database import Base


class Role(str, Enum):
    """Roles a caller can hold. Guests are never persisted."""

    GUEST = "guest"
    USER = "user"
    ADMIN = "admin"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Player(Base):
    """
    A registered player (or a legacy, password-less player row).

    Lifecycle:
        1. Created at registration or via POST /players
        2. best_time lowered by score submissions
        3. Never deleted by the API
    """

    __tablename__ = "players"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    username: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="Globally unique login / display name",
    )

    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        default=None,
        comment="bcrypt hash; NULL for legacy records",
    )

    role: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=Role.USER.value,
        server_default=text("'user'"),
        comment="guest, user or admin",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    best_time: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Fastest solve in milliseconds; 0 means unset",
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('guest', 'user', 'admin')",
            name="ck_players_role",
        ),
        Index("idx_players_best_time", "best_time"),
    )

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, username='{self.username}', role='{self.role}')>"


class PlayerScore(Base):
    """One score submission. Append-only."""

    __tablename__ = "player_scores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    player_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("players.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Opaque reference; riddles may live in another store
    riddle_id: Mapped[str] = mapped_column(String(64), nullable=False)

    time_to_solve: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Milliseconds taken to solve the riddle",
    )

    solved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("time_to_solve > 0", name="ck_player_scores_time_positive"),
        Index("idx_player_scores_player_id", "player_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PlayerScore(player_id={self.player_id}, riddle_id='{self.riddle_id}', "
            f"time_to_solve={self.time_to_solve})>"
        )
