"""Shared test fixtures for the Life Reset 30 backend."""

from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "postgresql://localhost/lifereset30_test"
os.environ["LIFERESET_TIMEZONE"] = "UTC"
os.environ["DEMO_USER_ID"] = "demo@lifereset30.com"
os.environ["BACKEND_SESSION_SECRET"] = ""
os.environ["ALLOWED_USER_IDS"] = ""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from lifereset.errors import StorageError
from lifereset.models import ORIGIN_CUSTOM, ORIGIN_ESSENTIAL, Task
from lifereset.settings import reset_settings
from lifereset.store import LocalCache, MemoryStore, get_local_cache, get_store

reset_settings()

USER = "demo@lifereset30.com"


class FlakyStore(MemoryStore):
    """Memory store whose task writes fail while ``failing`` is set."""

    def __init__(self):
        super().__init__()
        self.failing = True

    async def save_task(self, user_id, task):
        if self.failing:
            raise StorageError("Storage unavailable")
        await super().save_task(user_id, task)


@pytest.fixture
def user_id() -> str:
    return USER


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def cache() -> LocalCache:
    return LocalCache()


@pytest.fixture
def make_task():
    counter = {"n": 0}

    def _make(day=1, completed=False, template_id=None, title=None, origin="auto", **fields):
        counter["n"] += 1
        if origin == "auto":
            origin = ORIGIN_ESSENTIAL if template_id else ORIGIN_CUSTOM
        return Task(
            id=fields.pop("id", f"task-{counter['n']}"),
            user_id=fields.pop("user_id", USER),
            day=day,
            title=title or f"Task {counter['n']}",
            completed=completed,
            origin=origin,
            template_id=template_id,
            **fields,
        )

    return _make


@pytest.fixture
def client(store, cache):
    from lifereset.main import app

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_local_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def fresh_user_locks():
    # Each test drives its own event loop; locks must not outlive it.
    from lifereset.services import challenge_service

    challenge_service._user_locks.clear()
    yield
    challenge_service._user_locks.clear()
