"""
Riddle Server — Riddle SQLAlchemy Model
========================================

What:  ORM model representing the `riddles` table.
Who:   Used by RiddleService for CRUD, random selection and bulk loading.

Query Patterns:
    - List newest first: ORDER BY created_at DESC → idx_riddles_created_at
    - Filter by difficulty: WHERE level = :level
    - Random pick: COUNT(*) then OFFSET random() LIMIT 1
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from riddle_server.database import Base


class Riddle(Base):
    """
    A riddle with its answer and difficulty level.

    Immutable once created except via the explicit admin update.
    """

    __tablename__ = "riddles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    question: Mapped[str] = mapped_column(Text, nullable=False)

    answer: Mapped[str] = mapped_column(Text, nullable=False)

    level: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="medium",
        server_default=text("'medium'"),
        comment="easy, medium or hard",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("level IN ('easy', 'medium', 'hard')", name="ck_riddles_level"),
        Index("idx_riddles_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Riddle(id={self.id}, level='{self.level}')>"
