"""Reconciles the essential daily routine against persisted tasks.

Essential tasks are identified by ``template_id``; custom tasks carry
``origin == "custom"`` and no template id. All functions are pure: they
return new lists and never touch storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from lifereset.errors import ForbiddenError, NotFoundError, ValidationError
from lifereset.models import (
    CATEGORIES,
    CHALLENGE_DAYS,
    DEFAULT_PRIORITY,
    ORIGIN_CUSTOM,
    ORIGIN_ESSENTIAL,
    PRIORITIES,
    Task,
    TaskTemplate,
)

SKILL_TEMPLATE_ID = "skill-learning"

ESSENTIAL_TEMPLATE: Tuple[TaskTemplate, ...] = (
    TaskTemplate("cold-shower", "Cold Shower", "5 minutes • Boost alertness", 5, "morning", "fas fa-shower"),
    TaskTemplate("meditation", "Meditation Session", "10 minutes • Clear your mind", 10, "morning", "fas fa-om"),
    TaskTemplate(
        "gratitude-journal", "Gratitude Journal", "5 minutes • Count your blessings", 5, "morning", "fas fa-heart"
    ),
    TaskTemplate(SKILL_TEMPLATE_ID, "Skill Learning", "30 minutes • Coding", 30, "skill", "fas fa-code"),
    TaskTemplate("exercise", "Exercise", "20 minutes • Build strength", 20, "evening", "fas fa-dumbbell"),
    TaskTemplate(
        "evening-reflection", "Evening Reflection", "10 minutes • Reflect on today", 10, "evening", "fas fa-moon"
    ),
)


def _new_id() -> str:
    return uuid4().hex


def _title_key(title: str) -> str:
    return " ".join(str(title or "").split()).lower()


@dataclass
class SyncResult:
    to_create: List[Task] = field(default_factory=list)
    unchanged: List[Task] = field(default_factory=list)
    # Legacy rows recognised by title, upgraded to carry their template id.
    adopted: List[Task] = field(default_factory=list)


def build_essential_template(active_skill: Optional[dict] = None) -> List[TaskTemplate]:
    """Default routine, with the skill block pointed at the active skill path."""
    template = list(ESSENTIAL_TEMPLATE)
    if not active_skill:
        return template
    name = str(active_skill.get("name") or "").strip()
    icon = str(active_skill.get("icon") or "").strip()
    for index, entry in enumerate(template):
        if entry.template_id != SKILL_TEMPLATE_ID:
            continue
        template[index] = replace(
            entry,
            description=f"{entry.duration} minutes • {name}" if name else entry.description,
            icon=icon or entry.icon,
        )
    return template


def task_from_template(user_id: str, day: int, entry: TaskTemplate, id_factory: Callable[[], str] = _new_id) -> Task:
    return Task(
        id=id_factory(),
        user_id=user_id,
        day=day,
        title=entry.title,
        description=entry.description,
        duration=entry.duration,
        category=entry.category,
        priority=entry.priority or DEFAULT_PRIORITY,
        completed=False,
        icon=entry.icon,
        origin=ORIGIN_ESSENTIAL,
        template_id=entry.template_id,
    )


def ensure_essential_tasks(
    user_id: str,
    day: int,
    existing_tasks: Sequence[Task],
    template: Sequence[TaskTemplate],
    id_factory: Callable[[], str] = _new_id,
) -> SyncResult:
    result = SyncResult()
    day_tasks = [task for task in existing_tasks if task.day == day]
    by_template: Dict[str, Task] = {}
    for task in day_tasks:
        if task.template_id and task.template_id not in by_template:
            by_template[task.template_id] = task
    legacy_by_title: Dict[str, Task] = {}
    for task in day_tasks:
        if task.origin is None and task.template_id is None:
            legacy_by_title.setdefault(_title_key(task.title), task)

    for entry in template:
        match = by_template.get(entry.template_id)
        if match is not None:
            result.unchanged.append(match)
            continue
        legacy = legacy_by_title.pop(_title_key(entry.title), None)
        if legacy is not None:
            result.adopted.append(replace(legacy, origin=ORIGIN_ESSENTIAL, template_id=entry.template_id))
            continue
        result.to_create.append(task_from_template(user_id, day, entry, id_factory))
    return result


def _index_of(tasks: Sequence[Task], task_id: str) -> int:
    for index, task in enumerate(tasks):
        if task.id == task_id:
            return index
    raise NotFoundError(f"Task {task_id} not found")


def find_task(tasks: Sequence[Task], task_id: str) -> Task:
    return tasks[_index_of(tasks, task_id)]


def toggle_task(tasks: Sequence[Task], task_id: str) -> List[Task]:
    index = _index_of(tasks, task_id)
    updated = list(tasks)
    updated[index] = replace(tasks[index], completed=not tasks[index].completed)
    return updated


def validate_custom_fields(day: int, fields: dict) -> dict:
    title = " ".join(str(fields.get("title") or "").split()).strip()
    if not title:
        raise ValidationError("Task title cannot be empty")
    try:
        duration = int(fields.get("duration") or 0)
    except (TypeError, ValueError):
        raise ValidationError("Task duration must be a whole number of minutes")
    if duration <= 0:
        raise ValidationError("Task duration must be greater than zero")
    if not isinstance(day, int) or not 1 <= day <= CHALLENGE_DAYS:
        raise ValidationError(f"Day must be between 1 and {CHALLENGE_DAYS}")
    category = fields.get("category") or "morning"
    if category not in CATEGORIES:
        raise ValidationError(f"Unknown category {category!r}")
    priority = fields.get("priority") or DEFAULT_PRIORITY
    if priority not in PRIORITIES:
        raise ValidationError(f"Unknown priority {priority!r}")
    return {
        "title": title,
        "description": str(fields.get("description") or "").strip(),
        "duration": duration,
        "category": category,
        "priority": priority,
        "icon": str(fields.get("icon") or "fas fa-star"),
    }


def add_custom_task(
    tasks: Sequence[Task],
    user_id: str,
    day: int,
    fields: dict,
    id_factory: Callable[[], str] = _new_id,
) -> Tuple[List[Task], Task]:
    clean = validate_custom_fields(day, fields)
    created = Task(
        id=id_factory(),
        user_id=user_id,
        day=day,
        completed=False,
        origin=ORIGIN_CUSTOM,
        template_id=None,
        **clean,
    )
    return [*tasks, created], created


def delete_task(tasks: Sequence[Task], task_id: str) -> List[Task]:
    index = _index_of(tasks, task_id)
    if tasks[index].is_essential:
        raise ForbiddenError(f"Essential task {tasks[index].title!r} cannot be deleted")
    return [task for position, task in enumerate(tasks) if position != index]
