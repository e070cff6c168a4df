"""
Room session coordination.

A RoomCoordinator owns the RoomLog and the live connections of one room.
Every join, event and leave runs under the room's lock, so a room handles one
of them at a time in arrival order. Rooms share nothing and proceed
independently of each other.

Inbound frames are relayed to the other participants before they are merged
and persisted. A failed write leaves the relay in place and the log ahead of
storage until the next successful write or reload.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum

from pydantic import ValidationError

from roomrelay.core.config import settings
from roomrelay.core.errors import ProtocolError
from roomrelay.runtime.fanout import Connection, Frame, broadcast
from roomrelay.runtime.room_log import RoomLog
from roomrelay.schemas.ws import (
    AddEvent,
    AllEvent,
    ChatEvent,
    UpdateEvent,
    chat_event_adapter,
    to_message,
)
from roomrelay.services.message_store import MessageStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RoomState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


def parse_event(frame: Frame) -> ChatEvent | None:
    """Decode a tagged event, or None when the frame is not one we know."""
    try:
        return chat_event_adapter.validate_json(frame)
    except ValidationError as exc:
        logger.debug("unparsed frame passed through: %s", exc.errors(include_url=False)[:1])
        return None


class RoomCoordinator:
    def __init__(self, room_id: str, store: MessageStore, *, max_frame_bytes: int | None = None):
        self.room_id = room_id
        self.store = store
        self.max_frame_bytes = max_frame_bytes or settings.MAX_FRAME_BYTES
        self.log = RoomLog()
        self.connections: dict[str, Connection] = {}
        self.state = RoomState.UNINITIALIZED
        self.last_activity_time = _utc_now()
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def _ensure_active(self) -> None:
        # caller holds the lock
        if self.state is RoomState.ACTIVE:
            return
        await self.store.initialize(self.room_id)
        self.log.load(await self.store.load_all(self.room_id))
        self.state = RoomState.ACTIVE
        logger.info("room %s activated with %d messages", self.room_id, len(self.log))

    async def activate(self) -> None:
        async with self._lock:
            await self._ensure_active()

    async def snapshot(self) -> AllEvent:
        async with self._lock:
            await self._ensure_active()
            return AllEvent(messages=self.log.snapshot())

    async def on_join(self, conn: Connection) -> None:
        async with self._lock:
            await self._ensure_active()
            # queued before registration: nothing can reach conn ahead of it
            snapshot = AllEvent(messages=self.log.snapshot())
            conn.send(snapshot.model_dump_json(exclude_none=True))
            self.connections[conn.id] = conn
            self.last_activity_time = _utc_now()

    async def on_event(self, conn: Connection, frame: Frame) -> ChatEvent | None:
        """
        Relay ``frame`` to everyone but ``conn``, then merge and persist it if
        it is an add or update. Raises StorageError if the write fails, and
        ProtocolError, after relaying, for a frame too large to merge.
        """
        async with self._lock:
            await self._ensure_active()
            self.last_activity_time = _utc_now()

            broadcast(self.connections, frame, exclude={conn.id})

            if len(frame) > self.max_frame_bytes:
                raise ProtocolError(f"frame of {len(frame)} bytes exceeds {self.max_frame_bytes}, not merged")

            event = parse_event(frame)
            if isinstance(event, (AddEvent, UpdateEvent)):
                message = to_message(event)
                self.log.merge(message)
                await self.store.upsert(self.room_id, message)
            elif event is None:
                logger.warning("room %s: relayed unrecognized frame from %s", self.room_id, conn.id)
            return event

    async def on_leave(self, conn: Connection) -> None:
        async with self._lock:
            self.connections.pop(conn.id, None)
            self.last_activity_time = _utc_now()


class RoomRegistry:
    """One coordinator per live room id."""

    def __init__(self, store: MessageStore):
        self.store = store
        self._rooms: dict[str, RoomCoordinator] = {}

    def get(self, room_id: str) -> RoomCoordinator:
        room = self._rooms.get(room_id)
        if room is None:
            room = RoomCoordinator(room_id, self.store)
            self._rooms[room_id] = room
        return room

    def peek(self, room_id: str) -> RoomCoordinator | None:
        return self._rooms.get(room_id)

    def participant_count(self, room_id: str) -> int:
        room = self._rooms.get(room_id)
        return len(room.connections) if room else 0

    def evict_idle(self, idle_seconds: float, *, now: datetime | None = None) -> list[str]:
        """
        Drop rooms with no connections that have been quiet for
        ``idle_seconds``. Their messages stay in storage and are reloaded on
        the next activation.
        """
        now = now or _utc_now()
        evicted = []
        for room_id, room in list(self._rooms.items()):
            if room.connections or room.busy:
                continue
            if (now - room.last_activity_time).total_seconds() >= idle_seconds:
                del self._rooms[room_id]
                evicted.append(room_id)
        return evicted

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
