"""Tests for core/task_sync.py: essential template reconciliation and task edits."""

import pytest

from lifereset.core.task_sync import (
    ESSENTIAL_TEMPLATE,
    add_custom_task,
    build_essential_template,
    delete_task,
    ensure_essential_tasks,
    toggle_task,
)
from lifereset.errors import ForbiddenError, NotFoundError, ValidationError
from lifereset.models import ORIGIN_CUSTOM, ORIGIN_ESSENTIAL

TEMPLATE = list(ESSENTIAL_TEMPLATE)


def test_ensure_creates_full_template_for_empty_day(user_id):
    result = ensure_essential_tasks(user_id, 5, [], TEMPLATE)
    assert len(result.to_create) == len(TEMPLATE)
    assert result.unchanged == []
    assert all(task.completed is False for task in result.to_create)
    assert all(task.day == 5 and task.origin == ORIGIN_ESSENTIAL for task in result.to_create)
    assert [task.template_id for task in result.to_create] == [entry.template_id for entry in TEMPLATE]
    assert all(task.priority == "low" for task in result.to_create)
    assert len({task.id for task in result.to_create}) == len(TEMPLATE)


def test_ensure_preserves_existing_completion(user_id, make_task):
    done = make_task(day=5, completed=True, template_id="meditation", title="Meditation Session")
    result = ensure_essential_tasks(user_id, 5, [done], TEMPLATE)
    assert result.unchanged == [done]
    assert result.unchanged[0].completed is True
    assert len(result.to_create) == len(TEMPLATE) - 1
    assert "meditation" not in {task.template_id for task in result.to_create}


def test_ensure_matches_on_template_id_not_title(user_id, make_task):
    renamed = make_task(day=2, template_id="exercise", title="Workout")
    custom_same_title = make_task(day=2, title="Cold Shower")
    result = ensure_essential_tasks(user_id, 2, [renamed, custom_same_title], TEMPLATE)
    assert renamed in result.unchanged
    assert "cold-shower" in {task.template_id for task in result.to_create}
    assert result.adopted == []


def test_ensure_ignores_other_days(user_id, make_task):
    other_day = make_task(day=4, template_id="meditation")
    result = ensure_essential_tasks(user_id, 5, [other_day], TEMPLATE)
    assert len(result.to_create) == len(TEMPLATE)


def test_ensure_adopts_legacy_rows_by_title(user_id, make_task):
    legacy = make_task(day=3, title="Cold Shower", completed=True, origin=None)
    result = ensure_essential_tasks(user_id, 3, [legacy], TEMPLATE)
    assert len(result.adopted) == 1
    adopted = result.adopted[0]
    assert adopted.id == legacy.id
    assert adopted.template_id == "cold-shower"
    assert adopted.origin == ORIGIN_ESSENTIAL
    assert adopted.completed is True
    assert len(result.to_create) == len(TEMPLATE) - 1


def test_ensure_is_stable_once_synced(user_id):
    first = ensure_essential_tasks(user_id, 7, [], TEMPLATE)
    second = ensure_essential_tasks(user_id, 7, first.to_create, TEMPLATE)
    assert second.to_create == []
    assert len(second.unchanged) == len(TEMPLATE)


def test_build_template_follows_active_skill():
    template = build_essential_template({"name": "Sales", "icon": "fas fa-handshake"})
    skill = next(entry for entry in template if entry.template_id == "skill-learning")
    assert skill.description == "30 minutes • Sales"
    assert skill.icon == "fas fa-handshake"
    assert build_essential_template(None) == TEMPLATE


def test_toggle_flips_only_target(make_task):
    tasks = [make_task(), make_task(), make_task()]
    updated = toggle_task(tasks, tasks[1].id)
    assert [task.completed for task in updated] == [False, True, False]
    assert tasks[1].completed is False
    assert toggle_task(updated, tasks[1].id)[1].completed is False


def test_toggle_unknown_task(make_task):
    with pytest.raises(NotFoundError):
        toggle_task([make_task()], "missing")


def test_add_custom_task(user_id, make_task):
    tasks = [make_task(day=2)]
    updated, created = add_custom_task(
        tasks,
        user_id,
        2,
        {"title": "  Read   a chapter ", "duration": 25, "category": "evening", "priority": "high"},
    )
    assert updated[-1] == created
    assert len(updated) == 2
    assert created.title == "Read a chapter"
    assert created.origin == ORIGIN_CUSTOM
    assert created.template_id is None
    assert created.completed is False
    assert created.priority == "high"
    assert created.icon == "fas fa-star"


@pytest.mark.parametrize(
    "fields",
    [
        {"title": "", "duration": 10},
        {"title": "   ", "duration": 10},
        {"title": "Walk", "duration": 0},
        {"title": "Walk", "duration": -5},
        {"title": "Walk", "duration": 10, "category": "night"},
        {"title": "Walk", "duration": 10, "priority": "urgent"},
    ],
)
def test_add_custom_task_validation(user_id, make_task, fields):
    tasks = [make_task()]
    with pytest.raises(ValidationError):
        add_custom_task(tasks, user_id, 1, fields)
    assert len(tasks) == 1


def test_add_custom_task_day_out_of_range(user_id):
    with pytest.raises(ValidationError):
        add_custom_task([], user_id, 31, {"title": "Walk", "duration": 10})


def test_delete_custom_task(make_task):
    keep = make_task(template_id="meditation")
    custom = make_task()
    assert delete_task([keep, custom], custom.id) == [keep]


def test_delete_essential_task_forbidden(make_task):
    essential = make_task(template_id="meditation")
    with pytest.raises(ForbiddenError):
        delete_task([essential], essential.id)


def test_delete_unknown_task(make_task):
    with pytest.raises(NotFoundError):
        delete_task([make_task()], "missing")
