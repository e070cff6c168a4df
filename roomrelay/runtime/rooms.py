from __future__ import annotations

import asyncio
import logging

from roomrelay.core.config import settings
from roomrelay.core.db import engine
from roomrelay.runtime.coordinator import RoomRegistry
from roomrelay.services.message_store import MessageStore

logger = logging.getLogger(__name__)

# room_id -> coordinator, for this process
registry = RoomRegistry(MessageStore(engine))


async def sweep_idle_rooms(
    reg: RoomRegistry = registry,
    *,
    interval: float | None = None,
    idle_seconds: float | None = None,
) -> None:
    """
    Background task: evict rooms that have had no connections for
    ROOM_IDLE_SECONDS. Runs until cancelled.
    """
    interval = interval or settings.ROOM_SWEEP_INTERVAL_SECONDS
    idle_seconds = idle_seconds or settings.ROOM_IDLE_SECONDS

    while True:
        await asyncio.sleep(interval)
        for room_id in reg.evict_idle(idle_seconds):
            logger.info("room %s evicted after %ss idle", room_id, idle_seconds)
