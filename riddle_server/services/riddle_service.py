"""
Riddle Server — Riddle Service
===============================

What:  CRUD, random selection and bulk loading of riddles.
Who:   Called by the /riddles route handlers.

Riddle ids are UUIDs. Ids arrive from the URL as strings and are parsed
here, so a malformed id is reported as a 400 "Invalid riddle ID format"
instead of a framework-level 422.
"""

import logging
import random
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from riddle_server.exceptions import DatabaseError, InvalidInputError, NotFoundError
from riddle_server.models.riddle import Riddle
from riddle_server.schemas.riddle import (
    RiddleBulkLoadResponse,
    RiddleCreate,
    RiddleDeleteResponse,
    RiddleResponse,
    RiddleUpdate,
)

logger = logging.getLogger(__name__)


def parse_riddle_id(riddle_id: str) -> uuid.UUID:
    """Raises InvalidInputError unless riddle_id is a UUID string."""
    try:
        return uuid.UUID(str(riddle_id))
    except (TypeError, ValueError):
        raise InvalidInputError("Invalid riddle ID format", field="riddle_id")


class RiddleService:
    """Stateless riddle operations; the session is passed per call."""

    async def _load(self, db: AsyncSession, riddle_id: str) -> Riddle:
        key = parse_riddle_id(riddle_id)
        try:
            riddle = await db.get(Riddle, key)
        except SQLAlchemyError as e:
            logger.error("Failed to load riddle %s: %s", riddle_id, str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})
        if riddle is None:
            raise NotFoundError(resource="riddle", message="Riddle not found")
        return riddle

    async def list_riddles(
        self,
        db: AsyncSession,
        limit: int = 50,
        skip: int = 0,
        level: Optional[str] = None,
    ) -> List[RiddleResponse]:
        """Newest first, optionally filtered by difficulty level."""
        query = select(Riddle)
        if level:
            query = query.where(Riddle.level == level)
        query = query.order_by(Riddle.created_at.desc()).offset(skip).limit(limit)

        try:
            result = await db.execute(query)
            riddles = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Error fetching riddles: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve riddles. Please try again.",
                context={"error_type": type(e).__name__},
            )
        return [RiddleResponse.model_validate(r) for r in riddles]

    async def get_riddle(self, db: AsyncSession, riddle_id: str) -> RiddleResponse:
        return RiddleResponse.model_validate(await self._load(db, riddle_id))

    async def random_riddle(self, db: AsyncSession) -> RiddleResponse:
        """
        Pick one riddle uniformly at random.

        Raises:
            NotFoundError: the table is empty
        """
        try:
            count = (await db.execute(select(func.count(Riddle.id)))).scalar() or 0
            if count == 0:
                raise NotFoundError(resource="riddle", message="No riddles found in database")
            offset = random.randrange(count)
            result = await db.execute(
                select(Riddle).order_by(Riddle.created_at, Riddle.id).offset(offset).limit(1)
            )
            riddle = result.scalar_one()
        except SQLAlchemyError as e:
            logger.error("Failed to pick a random riddle: %s", str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})
        return RiddleResponse.model_validate(riddle)

    async def create_riddle(self, db: AsyncSession, data: RiddleCreate) -> RiddleResponse:
        riddle = Riddle(question=data.question, answer=data.answer, level=data.level)
        db.add(riddle)
        try:
            await db.flush()
            await db.refresh(riddle)
        except SQLAlchemyError as e:
            logger.error("Failed to create riddle: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create riddle",
                context={"error_type": type(e).__name__},
            )
        logger.info("Riddle created: %s (level=%s)", riddle.id, riddle.level)
        return RiddleResponse.model_validate(riddle)

    async def update_riddle(
        self,
        db: AsyncSession,
        riddle_id: str,
        data: RiddleUpdate,
    ) -> RiddleResponse:
        """Apply the fields present in `data`; raises NotFoundError for an unknown id."""
        riddle = await self._load(db, riddle_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(riddle, field, value)
        try:
            await db.flush()
            await db.refresh(riddle)
        except SQLAlchemyError as e:
            logger.error("Failed to update riddle %s: %s", riddle_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to update riddle",
                context={"error_type": type(e).__name__},
            )
        return RiddleResponse.model_validate(riddle)

    async def delete_riddle(self, db: AsyncSession, riddle_id: str) -> RiddleDeleteResponse:
        riddle = await self._load(db, riddle_id)
        try:
            await db.delete(riddle)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete riddle %s: %s", riddle_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to delete riddle",
                context={"error_type": type(e).__name__},
            )
        logger.info("Riddle deleted: %s", riddle.id)
        return RiddleDeleteResponse(deleted_id=riddle.id)

    async def load_initial(
        self,
        db: AsyncSession,
        riddles: List[RiddleCreate],
    ) -> RiddleBulkLoadResponse:
        """
        Insert a batch of riddles in one flush.

        Raises:
            InvalidInputError: empty batch
        """
        if not riddles:
            raise InvalidInputError("Invalid riddles data. Expected non-empty array", field="riddles")

        rows = [Riddle(question=r.question, answer=r.answer, level=r.level) for r in riddles]
        db.add_all(rows)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Bulk riddle load failed: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to load riddles",
                context={"error_type": type(e).__name__},
            )
        logger.info("Loaded %d riddles", len(rows))
        return RiddleBulkLoadResponse(
            success=True,
            inserted=len(rows),
            ids=[row.id for row in rows],
        )


riddle_service = RiddleService()
