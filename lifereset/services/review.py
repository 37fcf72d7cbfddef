from __future__ import annotations

from typing import Dict, List

from lifereset.models import CATEGORIES, Progress, Task

REVIEW_WINDOW = 7


def review_days(current_day: int, window: int = REVIEW_WINDOW) -> List[int]:
    """Challenge days covered by the review, oldest first, never below day 1."""
    start = max(1, current_day - window + 1)
    return list(range(start, current_day + 1))


def weekly_review(progress: Progress, tasks_by_day: Dict[int, List[Task]]) -> dict:
    days = review_days(progress.current_day)
    total_minutes = 0
    active_days = 0
    most_productive = None
    by_category = {category: 0 for category in CATEGORIES}

    for day in days:
        completed = [task for task in tasks_by_day.get(day, []) if task.completed]
        if completed:
            active_days += 1
        minutes = sum(task.duration or 0 for task in completed)
        total_minutes += minutes
        for task in completed:
            by_category[task.category] = by_category.get(task.category, 0) + (task.duration or 0)
        info = {"day": day, "completed": len(completed), "minutes": minutes}
        if most_productive is None or (info["completed"], info["minutes"]) > (
            most_productive["completed"],
            most_productive["minutes"],
        ):
            most_productive = info

    return {
        "days": days,
        "total_minutes": total_minutes,
        "avg_minutes": round(total_minutes / active_days) if active_days else 0,
        "most_productive": most_productive,
        "by_category": by_category,
        "consistency": sum(1 for day in days if day in progress.completed_days),
        "completed_days": sorted(progress.completed_days),
    }


async def load_weekly_review(store, progress: Progress) -> dict:
    tasks_by_day = {}
    for day in review_days(progress.current_day):
        tasks_by_day[day] = await store.load_tasks(progress.user_id, day)
    return weekly_review(progress, tasks_by_day)
