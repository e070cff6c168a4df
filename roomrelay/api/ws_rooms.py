from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, WebSocket
from fastapi.responses import RedirectResponse

from roomrelay.core.config import settings
from roomrelay.core.errors import ProtocolError, StorageError
from roomrelay.runtime.fanout import Connection
from roomrelay.runtime.rooms import registry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rooms-ws"])

_ROOM_ID_ALPHABET = "useandom-26T198340PX75pxJACKVERYMINDBUSHWOLF_GQZbfghjklqvwyzrict"


def new_room_id(length: int | None = None) -> str:
    length = length or settings.ROOM_ID_LENGTH
    return "".join(secrets.choice(_ROOM_ID_ALPHABET) for _ in range(length))


@router.get("/", include_in_schema=False)
async def enter_new_room() -> RedirectResponse:
    """A bare visit starts a fresh room."""
    return RedirectResponse(url=f"/{new_room_id()}")


@router.websocket("/{room_id}")
async def room_ws(room_id: str, websocket: WebSocket):
    await websocket.accept()

    room = registry.get(room_id)
    conn = Connection(websocket)
    conn.start()

    try:
        await room.on_join(conn)
    except StorageError:
        logger.exception("room %s could not be activated", room_id)
        await conn.close()
        await websocket.close(code=1011, reason="room unavailable")
        return

    logger.info("connection %s joined room %s (%d live)", conn.id, room_id, len(room.connections))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            frame = message.get("text")
            if frame is None:
                frame = message.get("bytes")
            if frame is None:
                continue

            try:
                await room.on_event(conn, frame)
            except ProtocolError as exc:
                logger.warning("room %s: frame from %s relayed but not merged: %s", room_id, conn.id, exc)
            except StorageError:
                # already relayed and merged; storage catches up on the next write
                logger.exception("room %s: failed to persist frame from %s", room_id, conn.id)
    finally:
        await room.on_leave(conn)
        await conn.close()
        logger.info("connection %s left room %s", conn.id, room_id)
