from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession

from roomrelay.models import RoomMessage
from roomrelay.repos.sql import dialect_insert
from roomrelay.schemas.ws import LEGACY_TIMESTAMP, ChatMessage


class MessageRepo:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_room(self, room_id: str) -> list[RowMapping]:
        stmt = (
            select(
                RoomMessage.id,
                RoomMessage.user,
                RoomMessage.role,
                func.coalesce(RoomMessage.content, "").label("content"),
                func.coalesce(RoomMessage.timestamp, LEGACY_TIMESTAMP).label("timestamp"),
                RoomMessage.color,
            )
            .where(RoomMessage.room_id == room_id)
            .order_by(RoomMessage.seq)
        )
        res = await self.db.execute(stmt)
        return list(res.mappings().all())

    async def upsert(self, room_id: str, message: ChatMessage) -> None:
        """
        Insert the message, or overwrite content/timestamp/color of the row
        already stored under its id. user, role and seq keep their first values.
        """
        next_seq = (
            select(func.coalesce(func.max(RoomMessage.seq), 0) + 1)
            .where(RoomMessage.room_id == room_id)
            .correlate(None)
            .scalar_subquery()
        )
        insert = dialect_insert(self.db)
        stmt = insert(RoomMessage).values(
            room_id=room_id,
            id=message.id,
            seq=next_seq,
            user=message.user,
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
            color=message.color,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[RoomMessage.room_id, RoomMessage.id],
            set_={
                "content": stmt.excluded["content"],
                "timestamp": stmt.excluded["timestamp"],
                "color": stmt.excluded["color"],
            },
        )
        await self.db.execute(stmt)
