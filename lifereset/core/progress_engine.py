"""Day progression and streak state machine.

State lives in ``Progress`` as ``(current_day, streak, completed_days)``.
There are two transitions: ``reconcile_inactivity`` (driven by the clock at
session start) and ``complete_day`` (driven by the user finishing every task
of the current day). Days never rewind.

Everything here is pure except ``get_or_init_progress``, which reads and
writes through the store.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, tzinfo
from typing import Iterable, List, Optional

from lifereset.errors import ForbiddenError, ValidationError
from lifereset.models import CHALLENGE_DAYS, Progress, Task, utcnow

logger = logging.getLogger(__name__)

MILESTONES = [
    ("first-week", "First Week", "Unlocked Day 7", "fas fa-trophy", 7),
    ("two-weeks", "Two Weeks", "Unlocked Day 14", "fas fa-fire", 14),
    ("three-weeks", "Three Weeks", "Unlocked Day 21", "fas fa-star", 21),
    ("champion", "Champion", "Day 30 Goal", "fas fa-crown", 30),
]


def validate_day(day: int) -> int:
    try:
        value = int(day)
    except (TypeError, ValueError):
        raise ValidationError(f"Day must be an integer, got {day!r}")
    if not 1 <= value <= CHALLENGE_DAYS:
        raise ValidationError(f"Day must be between 1 and {CHALLENGE_DAYS}, got {value}")
    return value


def new_progress(user_id: str, now: Optional[datetime] = None) -> Progress:
    now = now or utcnow()
    return Progress(
        user_id=user_id,
        current_day=1,
        streak=0,
        completed_days=frozenset(),
        total_tasks_completed=0,
        start_date=now,
        last_active_date=now,
    )


def calendar_day_difference(now: datetime, then: datetime, tz: tzinfo) -> int:
    """Whole calendar days between two instants, as seen on a wall clock in ``tz``."""
    return (now.astimezone(tz).date() - then.astimezone(tz).date()).days


def reconcile_inactivity(progress: Progress, now: datetime, tz: tzinfo) -> Progress:
    if progress.last_active_date is None:
        return replace(progress, last_active_date=now)
    days_passed = calendar_day_difference(now, progress.last_active_date, tz)
    if days_passed <= 0:
        # Same day, or a clock that went backwards.
        return progress
    if days_passed == 1:
        return replace(progress, last_active_date=now)
    logger.info(
        "Streak reset for %s after %s days of inactivity (was %s)",
        progress.user_id,
        days_passed,
        progress.streak,
    )
    return replace(progress, streak=0, last_active_date=now)


def is_day_fully_complete(tasks: Iterable[Task]) -> bool:
    tasks = list(tasks)
    return bool(tasks) and all(task.completed for task in tasks)


def complete_day(
    progress: Progress,
    day: int,
    all_tasks_completed: bool,
    now: Optional[datetime] = None,
    task_count: int = 0,
) -> Progress:
    """Mark ``day`` complete, bump the streak and advance to the next day.

    Completing an already completed day returns ``progress`` untouched.
    Raises ``ForbiddenError`` when the day is not the current one or still
    has open tasks.
    """
    day = validate_day(day)
    if day in progress.completed_days:
        return progress
    if day != progress.current_day:
        raise ForbiddenError(f"Cannot complete day {day}; current day is {progress.current_day}")
    if not all_tasks_completed:
        raise ForbiddenError(f"Day {day} still has open tasks")
    return replace(
        progress,
        completed_days=progress.completed_days | {day},
        streak=progress.streak + 1,
        current_day=min(day + 1, CHALLENGE_DAYS),
        total_tasks_completed=progress.total_tasks_completed + max(0, int(task_count)),
        last_active_date=now or utcnow(),
    )


def completion_rate(progress: Progress) -> int:
    return round(progress.current_day / CHALLENGE_DAYS * 100)


def milestones(progress: Progress) -> List[dict]:
    return [
        {
            "id": badge_id,
            "title": title,
            "description": description,
            "icon": icon,
            "requirement": requirement,
            "unlocked": progress.current_day >= requirement,
        }
        for badge_id, title, description, icon, requirement in MILESTONES
    ]


async def get_or_init_progress(store, user_id: str, now: Optional[datetime] = None) -> Progress:
    progress = await store.load_progress(user_id)
    if progress is not None:
        return progress
    progress = new_progress(user_id, now)
    await store.save_progress(user_id, progress)
    logger.info("Initialized challenge progress for %s", user_id)
    return progress
