"""Shared test fixtures."""

from pathlib import Path

import pytest

from intake.bot.buffer import ConversationBuffer
from intake.context.store import ContextStore
from intake.dispatch import RequestDispatcher


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Every test starts without shared buffer, store or dispatcher."""
    ConversationBuffer._reset()
    ContextStore._reset()
    RequestDispatcher._reset()
    yield
    ConversationBuffer._reset()
    ContextStore._reset()
    RequestDispatcher._reset()


@pytest.fixture
async def buffer():
    """A shared ConversationBuffer with a long idle window."""
    buf = ConversationBuffer(idle_timeout=60)
    ConversationBuffer._instance = buf
    yield buf
    buf.close()


@pytest.fixture
def store(tmp_path: Path) -> ContextStore:
    """A shared ContextStore backed by a temp database."""
    s = ContextStore(db_path=tmp_path / "test.db", retention_seconds=1800)
    ContextStore._instance = s
    return s
