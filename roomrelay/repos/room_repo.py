from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomrelay.models import Room
from roomrelay.repos.sql import dialect_insert


class RoomRepo:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_room(self, room_id: str) -> Room | None:
        res = await self.db.execute(select(Room).where(Room.id == room_id))
        return res.scalar_one_or_none()

    async def ensure_room(self, room_id: str) -> None:
        insert = dialect_insert(self.db)
        stmt = insert(Room).values(id=room_id).on_conflict_do_nothing(index_elements=[Room.id])
        await self.db.execute(stmt)

    async def list_rooms(self) -> list[Room]:
        stmt = select(Room).order_by(Room.created_at.desc())
        res = await self.db.execute(stmt)
        return list(res.scalars().all())
