from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from roomrelay.repos.room_repo import RoomRepo


class RoomService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.rooms = RoomRepo(db)

    async def list_rooms(self) -> list:
        """List every room that has ever been activated, newest first."""
        return await self.rooms.list_rooms()

    async def get_room(self, room_id: str):
        """Get a specific room by ID."""
        return await self.rooms.get_room(room_id)
