"""Tests for the durable per-room message store."""
import pytest
from sqlalchemy import text

from roomrelay.core.errors import StorageError
from roomrelay.repos.message_repo import LEGACY_TIMESTAMP
from roomrelay.schemas.ws import ChatMessage
from roomrelay.services.message_store import MessageStore


def make_message(msg_id: str, content: str = "hello", **overrides) -> ChatMessage:
    fields = {
        "id": msg_id,
        "user": "Alice",
        "role": "user",
        "content": content,
        "timestamp": "2024-01-01T00:00:00Z",
    }
    fields.update(overrides)
    return ChatMessage(**fields)


@pytest.mark.asyncio
async def test_initialize_is_repeatable(store):
    await store.initialize("r1")
    await store.initialize("r1")
    await store.initialize("r2")

    assert await store.load_all("r1") == []


@pytest.mark.asyncio
async def test_upsert_inserts_in_order(store):
    await store.initialize("r1")
    for msg_id in ("a", "b", "c"):
        await store.upsert("r1", make_message(msg_id))

    loaded = await store.load_all("r1")

    assert [m.id for m in loaded] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_upsert_updates_mutable_fields_only(store):
    await store.initialize("r1")
    await store.upsert("r1", make_message("a"))
    await store.upsert("r1", make_message("b"))

    await store.upsert(
        "r1",
        make_message(
            "a",
            content="edited",
            timestamp="2024-01-02T00:00:00Z",
            color="#123456",
            user="Mallory",
        ),
    )

    loaded = await store.load_all("r1")
    assert [m.id for m in loaded] == ["a", "b"]
    first = loaded[0]
    assert first.content == "edited"
    assert first.timestamp == "2024-01-02T00:00:00Z"
    assert first.color == "#123456"
    # identity fields keep what was first inserted
    assert first.user == "Alice"


@pytest.mark.asyncio
async def test_rooms_are_isolated(store):
    await store.initialize("r1")
    await store.initialize("r2")
    await store.upsert("r1", make_message("same-id", content="one"))
    await store.upsert("r2", make_message("same-id", content="two"))

    assert [m.content for m in await store.load_all("r1")] == ["one"]
    assert [m.content for m in await store.load_all("r2")] == ["two"]


@pytest.mark.asyncio
async def test_absent_color_round_trips_as_none(store):
    await store.initialize("r1")
    await store.upsert("r1", make_message("a"))

    (loaded,) = await store.load_all("r1")
    assert loaded.color is None


@pytest.mark.asyncio
async def test_legacy_table_gains_columns_without_losing_rows(engine, store):
    async with engine.begin() as conn:
        await conn.execute(text(
            "CREATE TABLE room_messages ("
            " room_id TEXT NOT NULL, id TEXT NOT NULL, seq BIGINT NOT NULL,"
            " user TEXT NOT NULL, role TEXT NOT NULL, content TEXT NOT NULL,"
            " PRIMARY KEY (room_id, id))"
        ))
        await conn.execute(text(
            "INSERT INTO room_messages (room_id, id, seq, user, role, content)"
            " VALUES ('r1', 'old', 1, 'Bob', 'user', 'from before')"
        ))

    await store.initialize("r1")
    await store.initialize("r1")

    loaded = await store.load_all("r1")
    assert len(loaded) == 1
    assert loaded[0].content == "from before"
    assert loaded[0].timestamp == LEGACY_TIMESTAMP
    assert loaded[0].color is None

    # the default is stable across loads
    assert (await store.load_all("r1"))[0].timestamp == LEGACY_TIMESTAMP

    await store.upsert("r1", make_message("new", color="#abcdef"))
    assert [m.id for m in await store.load_all("r1")] == ["old", "new"]


@pytest.mark.asyncio
async def test_upsert_without_schema_raises_storage_error(store):
    with pytest.raises(StorageError):
        await store.upsert("r1", make_message("a"))


@pytest.mark.asyncio
async def test_load_without_schema_raises_storage_error(store):
    with pytest.raises(StorageError):
        await store.load_all("r1")


class MigrationCountingStore(MessageStore):
    def __init__(self, engine):
        super().__init__(engine)
        self.migrations = 0

    async def _add_late_columns(self):
        self.migrations += 1
        await super()._add_late_columns()


@pytest.mark.asyncio
async def test_schema_migration_runs_once_for_many_rooms(engine):
    store = MigrationCountingStore(engine)

    for room_id in ("r1", "r2", "r3", "r1"):
        await store.initialize(room_id)

    assert store.migrations == 1
    await store.upsert("r3", make_message("a", color="#fff000"))
    assert (await store.load_all("r3"))[0].color == "#fff000"
