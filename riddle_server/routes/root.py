"""
Riddle Server — Root Route
===========================
"""

from fastapi import APIRouter

from riddle_server.schemas.common import MessageResponse

router = APIRouter(tags=["Root"])


@router.get("/", response_model=MessageResponse, summary="Welcome message")
async def root() -> MessageResponse:
    return MessageResponse(message="Welcome to the Riddle Server!")
