from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from lifereset.db import get_sessionmaker
from lifereset.db_init import (
    JOURNAL_TABLE,
    LEARNING_NOTES_TABLE,
    PROGRESS_TABLE,
    SKILL_PATHS_TABLE,
    TASKS_TABLE,
    VISION_GOALS_TABLE,
)
from lifereset.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)

TASK_COLUMNS = [
    "id",
    "user_id",
    "day",
    "title",
    "description",
    "duration",
    "category",
    "priority",
    "completed",
    "icon",
    "origin",
    "template_id",
]

PROGRESS_COLUMNS = [
    "user_id",
    "current_day",
    "streak",
    "completed_days",
    "total_tasks_completed",
    "start_date",
    "last_active_date",
]

SKILL_COLUMNS = ["id", "user_id", "name", "description", "icon", "is_active", "progress", "topics_json", "created_at"]

GOAL_COLUMNS = [
    "id",
    "user_id",
    "title",
    "description",
    "target_date",
    "progress",
    "category",
    "current_value",
    "target_value",
    "image_url",
    "created_at",
    "updated_at",
]


def _new_id() -> str:
    return uuid4().hex


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@asynccontextmanager
async def _session():
    session_factory = get_sessionmaker()
    try:
        async with session_factory() as session:
            yield session
    except SQLAlchemyError as exc:
        logger.exception("Database call failed: %s", exc)
        raise StorageError("Storage unavailable") from exc


def _skill_row(row) -> dict:
    payload = dict(row)
    try:
        topics = json.loads(payload.pop("topics_json", None) or "[]")
    except ValueError:
        topics = []
    payload["topics"] = topics if isinstance(topics, list) else []
    payload["is_active"] = bool(payload.get("is_active"))
    payload["progress"] = int(payload.get("progress") or 0)
    return payload


# Progress


async def get_progress(user_id: str) -> dict | None:
    async with _session() as session:
        row = (await session.execute(
            sql_text(f"SELECT {', '.join(PROGRESS_COLUMNS)} FROM {PROGRESS_TABLE} WHERE user_id = :user_id"),
            {"user_id": user_id},
        )).mappings().fetchone()
    return dict(row) if row else None


async def upsert_progress(row: dict) -> None:
    payload = {**{col: row.get(col) for col in PROGRESS_COLUMNS}, "updated_at": _now_iso()}
    columns = [*PROGRESS_COLUMNS, "updated_at"]
    updates = ", ".join(f"{col}=EXCLUDED.{col}" for col in columns if col != "user_id")
    async with _session() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {PROGRESS_TABLE} ({', '.join(columns)})
                VALUES ({', '.join(f':{col}' for col in columns)})
                ON CONFLICT(user_id) DO UPDATE SET {updates}
                """
            ),
            payload,
        )
        await session.commit()


# Daily tasks


async def list_tasks(user_id: str, day: int) -> list[dict]:
    async with _session() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT {', '.join(TASK_COLUMNS)}
                FROM {TASKS_TABLE}
                WHERE user_id = :user_id AND day = :day
                ORDER BY created_at
                """
            ),
            {"user_id": user_id, "day": day},
        )).mappings().all()
    return [dict(row) for row in rows]


async def upsert_task(row: dict) -> None:
    now = _now_iso()
    payload = {**{col: row.get(col) for col in TASK_COLUMNS}, "created_at": now, "updated_at": now}
    columns = [*TASK_COLUMNS, "created_at", "updated_at"]
    updates = ", ".join(
        f"{col}=EXCLUDED.{col}" for col in columns if col not in {"id", "user_id", "created_at"}
    )
    async with _session() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {TASKS_TABLE} ({', '.join(columns)})
                VALUES ({', '.join(f':{col}' for col in columns)})
                ON CONFLICT(id) DO UPDATE SET {updates}
                WHERE {TASKS_TABLE}.user_id = EXCLUDED.user_id
                """
            ),
            payload,
        )
        await session.commit()


async def delete_task(user_id: str, task_id: str) -> None:
    async with _session() as session:
        await session.execute(
            sql_text(f"DELETE FROM {TASKS_TABLE} WHERE user_id = :user_id AND id = :task_id"),
            {"user_id": user_id, "task_id": task_id},
        )
        await session.commit()


# Journal


async def get_journal_entry(user_id: str, day: int) -> dict | None:
    async with _session() as session:
        row = (await session.execute(
            sql_text(
                f"""
                SELECT id, user_id, day, went_well, could_improve, tomorrow_priority, created_at, updated_at
                FROM {JOURNAL_TABLE}
                WHERE user_id = :user_id AND day = :day
                """
            ),
            {"user_id": user_id, "day": day},
        )).mappings().fetchone()
    return dict(row) if row else None


async def list_journal_entries(user_id: str) -> list[dict]:
    async with _session() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT id, user_id, day, went_well, could_improve, tomorrow_priority, created_at, updated_at
                FROM {JOURNAL_TABLE}
                WHERE user_id = :user_id
                ORDER BY day
                """
            ),
            {"user_id": user_id},
        )).mappings().all()
    return [dict(row) for row in rows]


async def upsert_journal_entry(user_id: str, day: int, fields: dict) -> dict:
    now = _now_iso()
    payload = {
        "id": _new_id(),
        "user_id": user_id,
        "day": day,
        "went_well": fields.get("went_well", ""),
        "could_improve": fields.get("could_improve", ""),
        "tomorrow_priority": fields.get("tomorrow_priority", ""),
        "created_at": now,
        "updated_at": now,
    }
    async with _session() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {JOURNAL_TABLE}
                (id, user_id, day, went_well, could_improve, tomorrow_priority, created_at, updated_at)
                VALUES (:id, :user_id, :day, :went_well, :could_improve, :tomorrow_priority, :created_at, :updated_at)
                ON CONFLICT(user_id, day) DO UPDATE SET
                    went_well = EXCLUDED.went_well,
                    could_improve = EXCLUDED.could_improve,
                    tomorrow_priority = EXCLUDED.tomorrow_priority,
                    updated_at = EXCLUDED.updated_at
                """
            ),
            payload,
        )
        await session.commit()
    return await get_journal_entry(user_id, day) or payload


# Skill paths


async def list_skill_paths(user_id: str) -> list[dict]:
    async with _session() as session:
        rows = (await session.execute(
            sql_text(
                f"SELECT {', '.join(SKILL_COLUMNS)} FROM {SKILL_PATHS_TABLE} "
                "WHERE user_id = :user_id ORDER BY created_at, id"
            ),
            {"user_id": user_id},
        )).mappings().all()
    return [_skill_row(row) for row in rows]


async def get_skill_path(user_id: str, skill_id: str) -> dict:
    async with _session() as session:
        row = (await session.execute(
            sql_text(
                f"SELECT {', '.join(SKILL_COLUMNS)} FROM {SKILL_PATHS_TABLE} "
                "WHERE user_id = :user_id AND id = :id"
            ),
            {"user_id": user_id, "id": skill_id},
        )).mappings().fetchone()
    if not row:
        raise NotFoundError(f"Skill path {skill_id} not found")
    return _skill_row(row)


async def insert_skill_paths(user_id: str, skills: list[dict]) -> None:
    if not skills:
        return
    async with _session() as session:
        for skill in skills:
            await session.execute(
                sql_text(
                    f"""
                    INSERT INTO {SKILL_PATHS_TABLE} ({', '.join(SKILL_COLUMNS)})
                    VALUES ({', '.join(f':{col}' for col in SKILL_COLUMNS)})
                    ON CONFLICT(user_id, id) DO NOTHING
                    """
                ),
                {
                    "id": skill.get("id") or _new_id(),
                    "user_id": user_id,
                    "name": skill["name"],
                    "description": skill.get("description", ""),
                    "icon": skill.get("icon", ""),
                    "is_active": int(bool(skill.get("is_active"))),
                    "progress": int(skill.get("progress") or 0),
                    "topics_json": json.dumps(skill.get("topics") or [], ensure_ascii=False),
                    "created_at": _now_iso(),
                },
            )
        await session.commit()


async def create_skill_path(user_id: str, fields: dict) -> dict:
    skill_id = _new_id()
    await insert_skill_paths(user_id, [{**fields, "id": skill_id, "is_active": False}])
    return await get_skill_path(user_id, skill_id)


async def update_skill_path(user_id: str, skill_id: str, patch: dict) -> dict:
    allowed = {"name", "description", "icon", "progress", "topics"}
    updates = []
    params = {"id": skill_id, "user_id": user_id}
    for key, value in patch.items():
        if key not in allowed:
            continue
        if key == "topics":
            updates.append("topics_json = :topics_json")
            params["topics_json"] = json.dumps(value or [], ensure_ascii=False)
        else:
            updates.append(f"{key} = :{key}")
            params[key] = value
    if updates:
        async with _session() as session:
            await session.execute(
                sql_text(
                    f"UPDATE {SKILL_PATHS_TABLE} SET {', '.join(updates)} WHERE id = :id AND user_id = :user_id"
                ),
                params,
            )
            await session.commit()
    return await get_skill_path(user_id, skill_id)


async def set_active_skill_path(user_id: str, skill_id: str) -> None:
    async with _session() as session:
        await session.execute(
            sql_text(
                f"UPDATE {SKILL_PATHS_TABLE} SET is_active = CASE WHEN id = :id THEN 1 ELSE 0 END "
                "WHERE user_id = :user_id"
            ),
            {"id": skill_id, "user_id": user_id},
        )
        await session.commit()


async def delete_skill_path(user_id: str, skill_id: str) -> None:
    async with _session() as session:
        await session.execute(
            sql_text(f"DELETE FROM {SKILL_PATHS_TABLE} WHERE user_id = :user_id AND id = :id"),
            {"user_id": user_id, "id": skill_id},
        )
        await session.commit()


# Learning notes


async def list_learning_notes(user_id: str, day: int | None = None) -> list[dict]:
    query = (
        f"SELECT id, user_id, day, skill_path_id, content, created_at FROM {LEARNING_NOTES_TABLE} "
        "WHERE user_id = :user_id"
    )
    params: dict = {"user_id": user_id}
    if day is not None:
        query += " AND day = :day"
        params["day"] = day
    async with _session() as session:
        rows = (await session.execute(sql_text(query + " ORDER BY created_at"), params)).mappings().all()
    return [dict(row) for row in rows]


async def create_learning_note(user_id: str, day: int, skill_path_id: str | None, content: str) -> dict:
    record = {
        "id": _new_id(),
        "user_id": user_id,
        "day": day,
        "skill_path_id": skill_path_id,
        "content": content,
        "created_at": _now_iso(),
    }
    async with _session() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {LEARNING_NOTES_TABLE} (id, user_id, day, skill_path_id, content, created_at)
                VALUES (:id, :user_id, :day, :skill_path_id, :content, :created_at)
                """
            ),
            record,
        )
        await session.commit()
    return record


# Vision goals


async def list_vision_goals(user_id: str) -> list[dict]:
    async with _session() as session:
        rows = (await session.execute(
            sql_text(
                f"SELECT {', '.join(GOAL_COLUMNS)} FROM {VISION_GOALS_TABLE} "
                "WHERE user_id = :user_id ORDER BY target_date IS NULL, target_date, created_at"
            ),
            {"user_id": user_id},
        )).mappings().all()
    return [dict(row) for row in rows]


async def get_vision_goal(user_id: str, goal_id: str) -> dict:
    async with _session() as session:
        row = (await session.execute(
            sql_text(
                f"SELECT {', '.join(GOAL_COLUMNS)} FROM {VISION_GOALS_TABLE} "
                "WHERE user_id = :user_id AND id = :id"
            ),
            {"user_id": user_id, "id": goal_id},
        )).mappings().fetchone()
    if not row:
        raise NotFoundError(f"Vision goal {goal_id} not found")
    return dict(row)


async def create_vision_goal(user_id: str, fields: dict) -> dict:
    now = _now_iso()
    record = {col: fields.get(col) for col in GOAL_COLUMNS}
    record.update({"id": _new_id(), "user_id": user_id, "created_at": now, "updated_at": now})
    async with _session() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {VISION_GOALS_TABLE} ({', '.join(GOAL_COLUMNS)})
                VALUES ({', '.join(f':{col}' for col in GOAL_COLUMNS)})
                """
            ),
            record,
        )
        await session.commit()
    return record


async def update_vision_goal(user_id: str, goal_id: str, patch: dict) -> dict:
    allowed = {
        "title",
        "description",
        "target_date",
        "progress",
        "category",
        "current_value",
        "target_value",
        "image_url",
    }
    updates = []
    params = {"id": goal_id, "user_id": user_id}
    for key, value in patch.items():
        if key not in allowed:
            continue
        updates.append(f"{key} = :{key}")
        params[key] = value
    if not updates:
        return await get_vision_goal(user_id, goal_id)
    updates.append("updated_at = :updated_at")
    params["updated_at"] = _now_iso()
    async with _session() as session:
        await session.execute(
            sql_text(
                f"UPDATE {VISION_GOALS_TABLE} SET {', '.join(updates)} WHERE id = :id AND user_id = :user_id"
            ),
            params,
        )
        await session.commit()
    return await get_vision_goal(user_id, goal_id)


async def delete_vision_goal(user_id: str, goal_id: str) -> None:
    async with _session() as session:
        await session.execute(
            sql_text(f"DELETE FROM {VISION_GOALS_TABLE} WHERE user_id = :user_id AND id = :id"),
            {"user_id": user_id, "id": goal_id},
        )
        await session.commit()
