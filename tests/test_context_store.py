"""Tests for ContextStore: aiosqlite persistence with retention."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiosqlite
import pytest

from intake.context.store import ContextStore
from intake.models import Mode, SynthesisRecord


def _record(message_id: str = "100", **kwargs) -> SynthesisRecord:
    defaults = {
        "conversation_id": "42",
        "message_id": message_id,
        "response_text": "*Clinical Profile: mild hepatomegaly.*",
        "mode": Mode.PRIMARY,
        "source_media": [{"kind": "image", "mime_type": "image/jpeg"}],
    }
    defaults.update(kwargs)
    return SynthesisRecord(**defaults)


async def test_put_and_lookup(store: ContextStore) -> None:
    record = _record()
    await store.put(record)

    fetched = await store.lookup("42", "100")
    assert fetched == record


async def test_lookup_missing_returns_none(store: ContextStore) -> None:
    assert await store.lookup("42", "999") is None


async def test_lookup_is_scoped_to_conversation(store: ContextStore) -> None:
    await store.put(_record())
    assert await store.lookup("43", "100") is None


async def test_mode_survives_persistence(store: ContextStore) -> None:
    await store.put(_record(mode=Mode.SECONDARY))
    fetched = await store.lookup("42", "100")
    assert fetched is not None
    assert fetched.mode is Mode.SECONDARY


async def test_expired_record_is_not_returned(tmp_path: Path) -> None:
    store = ContextStore(db_path=tmp_path / "ttl.db", retention_seconds=60)
    old = (datetime.now(UTC) - timedelta(minutes=5)).isoformat()
    await store.put(_record(created_at=old))

    assert await store.lookup("42", "100") is None


async def test_put_purges_expired_rows(tmp_path: Path) -> None:
    db_path = tmp_path / "purge.db"
    store = ContextStore(db_path=db_path, retention_seconds=60)
    old = (datetime.now(UTC) - timedelta(minutes=5)).isoformat()
    await store.put(_record("1", created_at=old))
    await store.put(_record("2"))

    async with aiosqlite.connect(str(db_path)) as db:
        cursor = await db.execute("SELECT message_id FROM synthesis_records")
        rows = await cursor.fetchall()
    assert rows == [("2",)]


async def test_put_replaces_same_key(store: ContextStore) -> None:
    await store.put(_record(response_text="first"))
    await store.put(_record(response_text="second"))

    fetched = await store.lookup("42", "100")
    assert fetched is not None
    assert fetched.response_text == "second"


async def test_unknown_stored_mode_fails_to_load(store: ContextStore, tmp_path: Path) -> None:
    await store.put(_record())
    async with aiosqlite.connect(str(tmp_path / "test.db")) as db:
        await db.execute("UPDATE synthesis_records SET mode = 'legacy'")
        await db.commit()

    with pytest.raises(ValueError):
        await store.lookup("42", "100")


def test_get_returns_shared_instance() -> None:
    assert ContextStore.get() is ContextStore.get()
