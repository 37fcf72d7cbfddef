from dataclasses import replace

from lifereset.core.progress_engine import new_progress
from lifereset.services.review import review_days, weekly_review


def test_review_days_window():
    assert review_days(1) == [1]
    assert review_days(7) == [1, 2, 3, 4, 5, 6, 7]
    assert review_days(12) == [6, 7, 8, 9, 10, 11, 12]


def test_weekly_review_totals(user_id, now, make_task):
    progress = replace(new_progress(user_id, now), current_day=3, completed_days=frozenset({1, 2}))
    tasks_by_day = {
        1: [
            make_task(day=1, completed=True, duration=10, category="morning"),
            make_task(day=1, completed=False, duration=60, category="evening"),
        ],
        2: [
            make_task(day=2, completed=True, duration=30, category="skill"),
            make_task(day=2, completed=True, duration=5, category="evening"),
        ],
    }
    summary = weekly_review(progress, tasks_by_day)
    assert summary["days"] == [1, 2, 3]
    assert summary["total_minutes"] == 45
    assert summary["avg_minutes"] == 22
    assert summary["most_productive"] == {"day": 2, "completed": 2, "minutes": 35}
    assert summary["by_category"] == {"morning": 10, "skill": 30, "evening": 5}
    assert summary["consistency"] == 2
    assert summary["completed_days"] == [1, 2]


def test_weekly_review_with_no_activity(user_id, now):
    summary = weekly_review(new_progress(user_id, now), {})
    assert summary["total_minutes"] == 0
    assert summary["avg_minutes"] == 0
    assert summary["most_productive"] == {"day": 1, "completed": 0, "minutes": 0}
