"""Persistence collaborators for the challenge core.

``ChallengeStore`` is the narrow interface the progress engine and the task
synchronizer consume. ``SqlStore`` backs it with the SQL repositories;
``MemoryStore`` keeps everything in process and doubles as the local mirror
used when the primary store is unreachable.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Dict, List, Optional, Protocol, Tuple

from lifereset import repositories
from lifereset.models import Progress, Task

logger = logging.getLogger(__name__)


class ChallengeStore(Protocol):
    async def load_progress(self, user_id: str) -> Optional[Progress]: ...

    async def save_progress(self, user_id: str, progress: Progress) -> None: ...

    async def load_tasks(self, user_id: str, day: int) -> List[Task]: ...

    async def save_task(self, user_id: str, task: Task) -> None: ...

    async def delete_task_by_id(self, user_id: str, task_id: str) -> None: ...

    async def load_active_skill_path(self, user_id: str) -> Optional[dict]: ...


class SqlStore:
    async def load_progress(self, user_id: str) -> Optional[Progress]:
        row = await repositories.get_progress(user_id)
        return Progress.from_row(row) if row else None

    async def save_progress(self, user_id: str, progress: Progress) -> None:
        await repositories.upsert_progress({**progress.to_row(), "user_id": user_id})

    async def load_tasks(self, user_id: str, day: int) -> List[Task]:
        return [Task.from_row(row) for row in await repositories.list_tasks(user_id, day)]

    async def save_task(self, user_id: str, task: Task) -> None:
        await repositories.upsert_task({**task.to_row(), "user_id": user_id})

    async def delete_task_by_id(self, user_id: str, task_id: str) -> None:
        await repositories.delete_task(user_id, task_id)

    async def load_active_skill_path(self, user_id: str) -> Optional[dict]:
        skills = await repositories.list_skill_paths(user_id)
        return next((skill for skill in skills if skill.get("is_active")), skills[0] if skills else None)


class MemoryStore:
    def __init__(self):
        self.progress: Dict[str, Progress] = {}
        self.tasks: Dict[Tuple[str, str], Task] = {}
        self.skill_paths: Dict[str, List[dict]] = {}

    async def load_progress(self, user_id: str) -> Optional[Progress]:
        return self.progress.get(user_id)

    async def save_progress(self, user_id: str, progress: Progress) -> None:
        self.progress[user_id] = progress

    async def load_tasks(self, user_id: str, day: int) -> List[Task]:
        return [task for (owner, _), task in self.tasks.items() if owner == user_id and task.day == day]

    async def save_task(self, user_id: str, task: Task) -> None:
        self.tasks[(user_id, task.id)] = task

    async def delete_task_by_id(self, user_id: str, task_id: str) -> None:
        self.tasks.pop((user_id, task_id), None)

    async def load_active_skill_path(self, user_id: str) -> Optional[dict]:
        skills = self.skill_paths.get(user_id) or []
        active = next((skill for skill in skills if skill.get("is_active")), skills[0] if skills else None)
        return deepcopy(active)


class LocalCache(MemoryStore):
    """Mirror of task writes the primary store rejected, pending replay."""

    def __init__(self):
        super().__init__()
        self.pending: List[dict] = []

    async def mirror_task(self, user_id: str, task: Task) -> None:
        await self.save_task(user_id, task)
        self.pending = [
            item for item in self.pending if not (item["user_id"] == user_id and item["task"].id == task.id)
        ]
        self.pending.append({"user_id": user_id, "task": task, "attempts": 0, "next_retry_at": None})
        logger.warning("Mirrored task %s for %s to local cache", task.id, user_id)

    def overlay(self, user_id: str, day: int, tasks: List[Task]) -> List[Task]:
        """Apply pending cached writes on top of ``tasks`` loaded from the primary store."""
        merged = {task.id: task for task in tasks}
        for item in self.pending:
            task = item["task"]
            if item["user_id"] == user_id and task.day == day:
                merged[task.id] = task
        return list(merged.values())

    def has_pending(self, user_id: str, day: int) -> bool:
        return any(item["user_id"] == user_id and item["task"].day == day for item in self.pending)

    def discard(self, user_id: str, task_id: str) -> None:
        self.pending = [
            item for item in self.pending if not (item["user_id"] == user_id and item["task"].id == task_id)
        ]
        self.tasks.pop((user_id, task_id), None)


_local_cache: LocalCache | None = None
_store: SqlStore | None = None


def get_store() -> ChallengeStore:
    global _store
    if _store is None:
        _store = SqlStore()
    return _store


def get_local_cache() -> LocalCache:
    global _local_cache
    if _local_cache is None:
        _local_cache = LocalCache()
    return _local_cache
