from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from lifereset.auth import require_user_id
from lifereset.core.progress_engine import is_day_fully_complete
from lifereset.routes.progress import progress_payload
from lifereset.schemas import DayTasksResponse, TaskCreate, TaskCreateResponse, ToggleResponse
from lifereset.services import challenge_service
from lifereset.store import ChallengeStore, LocalCache, get_local_cache, get_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/v1/tasks/{day}", response_model=DayTasksResponse)
async def list_day_tasks(
    day: int,
    user_id: str = Depends(require_user_id),
    store: ChallengeStore = Depends(get_store),
    cache: LocalCache = Depends(get_local_cache),
):
    tasks = await challenge_service.load_day_tasks(store, user_id, day, cache=cache)
    return {
        "day": day,
        "items": [task.to_dict() for task in tasks],
        "fully_complete": is_day_fully_complete(tasks),
    }


@router.post("/v1/tasks", status_code=201, response_model=TaskCreateResponse)
async def create_task(
    payload: TaskCreate,
    user_id: str = Depends(require_user_id),
    store: ChallengeStore = Depends(get_store),
    cache: LocalCache = Depends(get_local_cache),
):
    fields = payload.model_dump(exclude={"day"})
    task, warning = await challenge_service.add_custom(store, user_id, payload.day, fields, cache=cache)
    if warning:
        logger.warning("Custom task %s for %s kept in local cache only", task.id, user_id)
    return {"task": task.to_dict(), "warning": warning}


@router.post("/v1/tasks/{day}/{task_id}/toggle", response_model=ToggleResponse)
async def toggle_task(
    day: int,
    task_id: str,
    user_id: str = Depends(require_user_id),
    store: ChallengeStore = Depends(get_store),
    cache: LocalCache = Depends(get_local_cache),
):
    outcome = await challenge_service.toggle(store, user_id, day, task_id, cache=cache)
    return {
        "task": outcome.task.to_dict(),
        "items": [task.to_dict() for task in outcome.tasks],
        "day_completed": outcome.day_completed,
        "progress": progress_payload(outcome.progress) if outcome.progress else None,
        "warning": outcome.warning,
    }


@router.delete("/v1/tasks/{day}/{task_id}")
async def delete_task(
    day: int,
    task_id: str,
    user_id: str = Depends(require_user_id),
    store: ChallengeStore = Depends(get_store),
    cache: LocalCache = Depends(get_local_cache),
):
    remaining = await challenge_service.remove(store, user_id, day, task_id, cache=cache)
    return {"ok": True, "items": [task.to_dict() for task in remaining]}
