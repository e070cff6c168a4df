"""
Durable per-room message table.

Every operation runs in its own session and transaction. Errors from the
database surface as StorageError, except the "column already exists" error
the late-column migration expects on a database that already has them.
"""
from __future__ import annotations

import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from roomrelay.core.errors import StorageError
from roomrelay.models import Base
from roomrelay.repos.message_repo import MessageRepo
from roomrelay.repos.room_repo import RoomRepo
from roomrelay.schemas.ws import ChatMessage

logger = logging.getLogger(__name__)

# columns introduced after the first release of the table
_LATE_COLUMNS = ("timestamp", "color")


def _is_duplicate_column(exc: DBAPIError) -> bool:
    msg = str(exc.orig).lower()
    return "duplicate column" in msg or "already exists" in msg


class MessageStore:
    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.sessions = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    async def ensure_schema(self) -> None:
        """
        Create missing tables and add late columns to an older room_messages.
        Runs once per store: ALTER TABLE locks the table every room writes to.
        """
        if self._schema_ready:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            try:
                async with self.engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
            except SQLAlchemyError as exc:
                raise StorageError(f"schema creation failed: {exc}") from exc
            await self._add_late_columns()
            self._schema_ready = True

    async def _add_late_columns(self) -> None:
        for column in _LATE_COLUMNS:
            try:
                async with self.engine.begin() as conn:
                    await conn.execute(text(f'ALTER TABLE room_messages ADD COLUMN "{column}" TEXT'))
                logger.info("added column room_messages.%s", column)
            except DBAPIError as exc:
                if not _is_duplicate_column(exc):
                    raise StorageError(f"adding column {column} failed: {exc}") from exc

    async def initialize(self, room_id: str) -> None:
        """Make sure the schema exists and register the room. Safe to repeat."""
        await self.ensure_schema()
        try:
            async with self.sessions() as db:
                async with db.begin():
                    await RoomRepo(db).ensure_room(room_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"registering room {room_id} failed: {exc}") from exc

    async def load_all(self, room_id: str) -> list[ChatMessage]:
        """All stored messages for the room, in first-insert order."""
        try:
            async with self.sessions() as db:
                rows = await MessageRepo(db).list_for_room(room_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"loading room {room_id} failed: {exc}") from exc
        return [ChatMessage.model_validate(dict(row)) for row in rows]

    async def upsert(self, room_id: str, message: ChatMessage) -> None:
        try:
            async with self.sessions() as db:
                async with db.begin():
                    await MessageRepo(db).upsert(room_id, message)
        except SQLAlchemyError as exc:
            raise StorageError(f"saving message {message.id} in room {room_id} failed: {exc}") from exc
