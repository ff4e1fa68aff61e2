"""Create players, player_scores and riddles tables

Revision ID: 001
Revises: None
Create Date: 2026-10-16 00:00:00.000000+00:00

What:  Initial schema for accounts, the solve log and the riddle store.
How:   Portable column types (Integer identity, Uuid, TIMESTAMP WITH TIME
       ZONE) so the same migration runs on PostgreSQL and SQLite.

Rollback: downgrade() drops all three tables (all game data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the three tables with their constraints and indexes."""
    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "username",
            sa.String(64),
            nullable=False,
            comment="Globally unique login / display name",
        ),
        # NULL for legacy records created before password auth
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=True,
            comment="bcrypt hash; NULL for legacy records",
        ),
        sa.Column(
            "role",
            sa.String(16),
            nullable=False,
            server_default=sa.text("'user'"),
            comment="guest, user or admin",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "best_time",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Fastest solve in milliseconds; 0 means unset",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_players_username"),
        sa.CheckConstraint("role IN ('guest', 'user', 'admin')", name="ck_players_role"),
    )
    # Leaderboard: WHERE best_time != 0 ORDER BY best_time ASC
    op.create_index("idx_players_best_time", "players", ["best_time"])

    op.create_table(
        "player_scores",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("riddle_id", sa.String(64), nullable=False),
        sa.Column(
            "time_to_solve",
            sa.Integer(),
            nullable=False,
            comment="Milliseconds taken to solve the riddle",
        ),
        sa.Column(
            "solved_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"], ondelete="CASCADE"),
        sa.CheckConstraint("time_to_solve > 0", name="ck_player_scores_time_positive"),
    )
    op.create_index("idx_player_scores_player_id", "player_scores", ["player_id"])

    op.create_table(
        "riddles",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column(
            "level",
            sa.String(16),
            nullable=False,
            server_default=sa.text("'medium'"),
            comment="easy, medium or hard",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("level IN ('easy', 'medium', 'hard')", name="ck_riddles_level"),
    )
    op.create_index("idx_riddles_created_at", "riddles", ["created_at"])


def downgrade() -> None:
    """Drop all game tables. Destructive."""
    op.drop_index("idx_riddles_created_at", table_name="riddles")
    op.drop_table("riddles")
    op.drop_index("idx_player_scores_player_id", table_name="player_scores")
    op.drop_table("player_scores")
    op.drop_index("idx_players_best_time", table_name="players")
    op.drop_table("players")
