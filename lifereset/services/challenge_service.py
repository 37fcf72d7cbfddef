"""Orchestrates the challenge core against a store.

Every function loads state, applies a pure transformation from
``lifereset.core`` and persists the result. Writes for one user are
serialized through a per-user lock so two concurrent completions cannot
both observe the day as open.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Dict, List, Optional, Sequence, Tuple

from lifereset.core import progress_engine, task_sync
from lifereset.errors import StorageError
from lifereset.models import Progress, Task, TaskTemplate, utcnow
from lifereset.settings import get_settings
from lifereset.store import ChallengeStore, LocalCache

logger = logging.getLogger(__name__)

SYNC_WARNING = "sync failed"

# user_id -> [lock, holders and waiters]
_user_locks: Dict[str, list] = {}


@asynccontextmanager
async def user_lock(user_id: str):
    entry = _user_locks.setdefault(user_id, [asyncio.Lock(), 0])
    entry[1] += 1
    try:
        async with entry[0]:
            yield
    finally:
        entry[1] -= 1
        if entry[1] == 0 and _user_locks.get(user_id) is entry:
            del _user_locks[user_id]


def _tz(tz: Optional[tzinfo]) -> tzinfo:
    return tz or get_settings().timezone


@dataclass
class ToggleOutcome:
    tasks: List[Task]
    task: Task
    progress: Optional[Progress] = None
    day_completed: bool = False
    warning: Optional[str] = None


def _ordered(tasks: Sequence[Task], template: Sequence[TaskTemplate]) -> List[Task]:
    positions = {entry.template_id: index for index, entry in enumerate(template)}
    ranked = sorted(
        enumerate(tasks),
        key=lambda item: (positions.get(item[1].template_id, len(positions)), item[0]),
    )
    return [task for _, task in ranked]


async def start_session(
    store: ChallengeStore,
    user_id: str,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> Progress:
    now = now or utcnow()
    async with user_lock(user_id):
        progress = await progress_engine.get_or_init_progress(store, user_id, now)
        reconciled = progress_engine.reconcile_inactivity(progress, now, _tz(tz))
        if reconciled != progress:
            await store.save_progress(user_id, reconciled)
        return reconciled


async def _with_missing_essentials(store: ChallengeStore, user_id: str, day: int, tasks: List[Task]) -> List[Task]:
    """Add unsaved placeholders for essential tasks the day has not created yet."""
    template = task_sync.build_essential_template(await store.load_active_skill_path(user_id))
    missing = task_sync.ensure_essential_tasks(user_id, day, tasks, template).to_create
    return [*tasks, *missing]


async def _complete_locked(
    store: ChallengeStore,
    user_id: str,
    day: Optional[int],
    now: datetime,
    tz: tzinfo,
    tasks: Optional[List[Task]] = None,
) -> Tuple[Progress, bool]:
    loaded = await progress_engine.get_or_init_progress(store, user_id, now)
    progress = progress_engine.reconcile_inactivity(loaded, now, tz)
    target = progress.current_day if day is None else progress_engine.validate_day(day)
    if target in progress.completed_days:
        if progress != loaded:
            await store.save_progress(user_id, progress)
        return progress, False
    if tasks is None:
        tasks = await store.load_tasks(user_id, target)
    tasks = await _with_missing_essentials(store, user_id, target, tasks)
    updated = progress_engine.complete_day(
        progress,
        target,
        progress_engine.is_day_fully_complete(tasks),
        now=now,
        task_count=len(tasks),
    )
    await store.save_progress(user_id, updated)
    logger.info("User %s completed day %s (streak %s)", user_id, target, updated.streak)
    return updated, True


async def complete_current_day(
    store: ChallengeStore,
    user_id: str,
    day: Optional[int] = None,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> Tuple[Progress, bool]:
    """Complete ``day`` (default: the current day) from the tasks in storage.

    Returns the resulting progress and whether this call completed the day.
    """
    async with user_lock(user_id):
        return await _complete_locked(store, user_id, day, now or utcnow(), _tz(tz))


async def _current_tasks(store: ChallengeStore, user_id: str, day: int, cache: Optional[LocalCache]) -> List[Task]:
    tasks = await store.load_tasks(user_id, day)
    if cache is not None:
        tasks = cache.overlay(user_id, day, tasks)
    return tasks


async def _save_with_fallback(
    store: ChallengeStore, cache: Optional[LocalCache], user_id: str, task: Task
) -> Optional[str]:
    try:
        await store.save_task(user_id, task)
    except StorageError:
        if cache is None:
            raise
        await cache.mirror_task(user_id, task)
        return SYNC_WARNING
    if cache is not None:
        # A stored write supersedes anything still queued for this task.
        cache.discard(user_id, task.id)
    return None


async def load_day_tasks(
    store: ChallengeStore,
    user_id: str,
    day: int,
    cache: Optional[LocalCache] = None,
) -> List[Task]:
    day = progress_engine.validate_day(day)
    async with user_lock(user_id):
        existing = await _current_tasks(store, user_id, day, cache)
        template = task_sync.build_essential_template(await store.load_active_skill_path(user_id))
        result = task_sync.ensure_essential_tasks(user_id, day, existing, template)
        for task in [*result.adopted, *result.to_create]:
            await store.save_task(user_id, task)
        if result.to_create:
            logger.info("Created %s essential tasks for %s day %s", len(result.to_create), user_id, day)
        adopted = {task.id: task for task in result.adopted}
        merged = [adopted.get(task.id, task) for task in existing] + result.to_create
        return _ordered(merged, template)


async def toggle(
    store: ChallengeStore,
    user_id: str,
    day: int,
    task_id: str,
    cache: Optional[LocalCache] = None,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> ToggleOutcome:
    day = progress_engine.validate_day(day)
    now = now or utcnow()
    async with user_lock(user_id):
        tasks = task_sync.toggle_task(await _current_tasks(store, user_id, day, cache), task_id)
        task = task_sync.find_task(tasks, task_id)
        outcome = ToggleOutcome(tasks=tasks, task=task)
        outcome.warning = await _save_with_fallback(store, cache, user_id, task)
        if outcome.warning or not task.completed:
            return outcome
        required = await _with_missing_essentials(store, user_id, day, tasks)
        if not progress_engine.is_day_fully_complete(required):
            return outcome
        # Completion is only judged on state the primary store actually holds.
        if cache is not None and cache.has_pending(user_id, day):
            return outcome
        progress = await store.load_progress(user_id)
        if progress is None or progress.current_day != day:
            return outcome
        outcome.progress, outcome.day_completed = await _complete_locked(
            store, user_id, day, now, _tz(tz), tasks=required
        )
        return outcome


async def add_custom(
    store: ChallengeStore,
    user_id: str,
    day: int,
    fields: dict,
    cache: Optional[LocalCache] = None,
) -> Tuple[Task, Optional[str]]:
    day = progress_engine.validate_day(day)
    async with user_lock(user_id):
        tasks = await _current_tasks(store, user_id, day, cache)
        _, created = task_sync.add_custom_task(tasks, user_id, day, fields)
        warning = await _save_with_fallback(store, cache, user_id, created)
        return created, warning


async def remove(
    store: ChallengeStore,
    user_id: str,
    day: int,
    task_id: str,
    cache: Optional[LocalCache] = None,
) -> List[Task]:
    day = progress_engine.validate_day(day)
    async with user_lock(user_id):
        remaining = task_sync.delete_task(await _current_tasks(store, user_id, day, cache), task_id)
        await store.delete_task_by_id(user_id, task_id)
        if cache is not None:
            cache.discard(user_id, task_id)
        return remaining
