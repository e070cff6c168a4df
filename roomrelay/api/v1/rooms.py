from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from roomrelay.core import get_db
from roomrelay.core.errors import StorageError
from roomrelay.schemas.room import RoomOut, RoomListOut
from roomrelay.schemas.ws import AllEvent
from roomrelay.services.room_service import RoomService
from roomrelay.runtime.rooms import registry

router = APIRouter()


def _build_room_out(room) -> RoomOut:
    """Helper to build RoomOut with the live participant count."""
    return RoomOut(
        room_id=room.id,
        created_at=room.created_at,
        participant_count=registry.participant_count(room.id),
    )


@router.get("", response_model=RoomListOut)
async def list_rooms(
    db: AsyncSession = Depends(get_db),
) -> RoomListOut:
    svc = RoomService(db)
    rooms = await svc.list_rooms()
    return RoomListOut(rooms=[_build_room_out(room) for room in rooms])


@router.get("/{room_id}/messages", response_model=AllEvent, response_model_exclude_none=True)
async def get_room_messages(
    room_id: str,
    db: AsyncSession = Depends(get_db),
) -> AllEvent:
    """
    The same snapshot a joining connection receives.
    Only rooms that have been joined before are served; a stored room that
    is not in memory is loaded.
    """
    room = registry.peek(room_id)
    if room is None:
        svc = RoomService(db)
        if await svc.get_room(room_id) is None:
            raise HTTPException(status_code=404, detail="room not found")
        room = registry.get(room_id)
    try:
        return await room.snapshot()
    except StorageError as e:
        raise HTTPException(status_code=503, detail=str(e))
