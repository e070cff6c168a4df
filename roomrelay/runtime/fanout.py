"""
Per-connection outbound delivery and room fanout.

Each Connection owns a queue of frames drained by its own writer task, so
handing a frame to a connection never waits on the network and frames reach
a given peer in the order they were handed over. A send failure marks the
connection dead; later frames for it are dropped. So does a peer that falls
MAX_OUTBOX_FRAMES behind, which bounds what a stuck socket can hold.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from typing import Collection, Protocol

from roomrelay.core.config import settings

logger = logging.getLogger(__name__)

Frame = str | bytes


class Transport(Protocol):
    async def send_text(self, data: str) -> None: ...

    async def send_bytes(self, data: bytes) -> None: ...


class Connection:
    def __init__(self, transport: Transport, conn_id: str | None = None, *, max_pending: int | None = None):
        self.id = conn_id or uuid.uuid4().hex
        self.transport = transport
        self.alive = True
        self._outbox: asyncio.Queue[Frame] = asyncio.Queue(maxsize=max_pending or settings.MAX_OUTBOX_FRAMES)
        self._writer: asyncio.Task | None = None

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain(), name=f"conn-writer-{self.id}")

    def send(self, frame: Frame) -> bool:
        """Queue a frame for delivery. Returns False if the connection is dead."""
        if not self.alive:
            return False
        try:
            self._outbox.put_nowait(frame)
        except asyncio.QueueFull:
            self.alive = False
            logger.warning("connection %s fell %d frames behind, dropping it", self.id, self._outbox.maxsize)
            return False
        return True

    async def flush(self) -> None:
        """Wait until every queued frame has been written or dropped."""
        await self._outbox.join()

    async def close(self) -> None:
        self.alive = False
        if self._writer is None:
            return
        self._writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._writer
        self._writer = None

    async def _drain(self) -> None:
        while True:
            frame = await self._outbox.get()
            try:
                if not self.alive:
                    continue
                if isinstance(frame, bytes):
                    await self.transport.send_bytes(frame)
                else:
                    await self.transport.send_text(frame)
            except Exception as exc:
                self.alive = False
                logger.debug("delivery to %s failed: %r", self.id, exc)
            finally:
                self._outbox.task_done()


def broadcast(
    connections: dict[str, Connection],
    frame: Frame,
    exclude: Collection[str] = (),
) -> int:
    """
    Hand ``frame`` verbatim to every connection not named in ``exclude``.

    Dead connections are dropped from ``connections`` instead of failing the
    fanout. Returns the number of connections the frame was queued for.
    """
    delivered = 0
    dead: list[str] = []

    for conn_id, conn in list(connections.items()):
        if conn_id in exclude:
            continue
        if conn.send(frame):
            delivered += 1
        else:
            dead.append(conn_id)

    for conn_id in dead:
        connections.pop(conn_id, None)
    return delivered
