"""
Riddle Server — Riddle Schemas
===============================

What:  Request/response contracts for the riddle endpoints.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


RiddleLevel = Literal["easy", "medium", "hard"]


class RiddleCreate(BaseModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    level: RiddleLevel = "medium"


class RiddleUpdate(BaseModel):
    """Partial update; only the provided fields change."""
    question: Optional[str] = Field(default=None, min_length=1)
    answer: Optional[str] = Field(default=None, min_length=1)
    level: Optional[RiddleLevel] = None


class RiddleResponse(BaseModel):
    id: uuid.UUID
    question: str
    answer: str
    level: RiddleLevel
    created_at: datetime

    model_config = {"from_attributes": True}


class RiddleBulkLoad(BaseModel):
    # Emptiness is checked by the service so it reports a 400 with its own message
    riddles: List[RiddleCreate]


class RiddleBulkLoadResponse(BaseModel):
    success: bool = True
    inserted: int
    ids: List[uuid.UUID]


class RiddleDeleteResponse(BaseModel):
    deleted_id: uuid.UUID
