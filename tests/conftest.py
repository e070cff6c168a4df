"""Shared test fixtures and configuration for roomrelay tests."""
import asyncio
import os
import tempfile

# must be set before roomrelay.core reads its settings
_DB_DIR = tempfile.mkdtemp(prefix="roomrelay-tests-")
os.environ["DATABASE_URL_ASYNC"] = f"sqlite+aiosqlite:///{_DB_DIR}/app.db"
os.environ["DATABASE_URL_SYNC"] = f"sqlite:///{_DB_DIR}/app.db"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine

from roomrelay.main import app
from roomrelay.runtime.fanout import Connection
from roomrelay.services.message_store import MessageStore


class FakeTransport:
    """Records frames like a WebSocket would; optionally fails or hangs on every send."""

    def __init__(self, fail: bool = False, stuck: bool = False):
        self.fail = fail
        self.stuck = stuck
        self.sent: list = []

    async def send_text(self, data: str) -> None:
        if self.stuck:
            await asyncio.Event().wait()
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(data)

    async def send_bytes(self, data: bytes) -> None:
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(data)


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rooms.db'}")
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def store(engine):
    return MessageStore(engine)


@pytest_asyncio.fixture
async def connect():
    """Factory for started connections over FakeTransports; closes them all afterwards."""
    opened: list[Connection] = []

    def _connect(conn_id: str, *, fail: bool = False, stuck: bool = False, max_pending: int | None = None) -> Connection:
        conn = Connection(FakeTransport(fail=fail, stuck=stuck), conn_id=conn_id, max_pending=max_pending)
        conn.start()
        opened.append(conn)
        return conn

    yield _connect
    for conn in opened:
        await conn.close()


@pytest.fixture(scope="session")
def api_client():
    """One TestClient, and so one event loop, for every HTTP/WebSocket test."""
    with TestClient(app) as client:
        yield client
