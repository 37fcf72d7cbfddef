import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from lifereset.workers.sync_worker import flush_local_cache_once


def test_flush_nothing_pending(store, cache):
    assert asyncio.run(flush_local_cache_once(store, cache)) == 0


def test_flush_respects_limit(store, cache, user_id, make_task):
    tasks = [make_task() for _ in range(3)]
    for task in tasks:
        asyncio.run(cache.mirror_task(user_id, task))
    assert asyncio.run(flush_local_cache_once(store, cache, limit=2)) == 2
    assert len(cache.pending) == 1
    assert asyncio.run(flush_local_cache_once(store, cache)) == 1
    assert set(store.tasks) == {(user_id, task.id) for task in tasks}


def test_flush_skips_entries_not_yet_due(store, cache, user_id, make_task):
    asyncio.run(cache.mirror_task(user_id, make_task()))
    cache.pending[0]["next_retry_at"] = datetime.now(timezone.utc) + timedelta(minutes=5)
    assert asyncio.run(flush_local_cache_once(store, cache)) == 0
    assert store.tasks == {}


def test_failed_replay_backs_off(flaky_store, cache, user_id, make_task):
    asyncio.run(cache.mirror_task(user_id, make_task()))
    before = datetime.now(timezone.utc)
    asyncio.run(flush_local_cache_once(flaky_store, cache))
    item = cache.pending[0]
    assert item["attempts"] == 1
    assert item["next_retry_at"] >= before + timedelta(seconds=2)


def test_mirroring_same_task_keeps_latest(cache, user_id, make_task):
    task = make_task()
    asyncio.run(cache.mirror_task(user_id, task))
    done = replace(task, completed=True)
    asyncio.run(cache.mirror_task(user_id, done))
    assert len(cache.pending) == 1
    assert cache.pending[0]["task"].completed is True


def test_flush_only_selected_user(store, cache, make_task):
    mine = make_task(user_id="a@example.com")
    theirs = make_task(user_id="b@example.com")
    asyncio.run(cache.mirror_task("a@example.com", mine))
    asyncio.run(cache.mirror_task("b@example.com", theirs))

    assert asyncio.run(flush_local_cache_once(store, cache, user_id="a@example.com")) == 1
    assert set(store.tasks) == {("a@example.com", mine.id)}
    assert [item["user_id"] for item in cache.pending] == ["b@example.com"]


def test_replayed_tasks_leave_the_cache(store, cache, user_id, make_task):
    task = make_task()
    asyncio.run(cache.mirror_task(user_id, task))
    assert (user_id, task.id) in cache.tasks
    asyncio.run(flush_local_cache_once(store, cache))
    assert cache.tasks == {}
    assert cache.pending == []
