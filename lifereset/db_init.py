from __future__ import annotations

import logging

from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from lifereset.db import get_engine

logger = logging.getLogger(__name__)

PROGRESS_TABLE = "challenge_progress"
TASKS_TABLE = "daily_tasks"
JOURNAL_TABLE = "journal_entries"
SKILL_PATHS_TABLE = "skill_paths"
LEARNING_NOTES_TABLE = "learning_notes"
VISION_GOALS_TABLE = "vision_goals"


async def init_db():
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {PROGRESS_TABLE} (
                    user_id TEXT PRIMARY KEY,
                    current_day INTEGER NOT NULL DEFAULT 1,
                    streak INTEGER NOT NULL DEFAULT 0,
                    completed_days TEXT NOT NULL DEFAULT '[]',
                    total_tasks_completed INTEGER NOT NULL DEFAULT 0,
                    start_date TEXT NOT NULL,
                    last_active_date TEXT NOT NULL,
                    updated_at TEXT
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {TASKS_TABLE} (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    day INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    duration INTEGER NOT NULL,
                    category TEXT NOT NULL,
                    completed INTEGER DEFAULT 0,
                    icon TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {JOURNAL_TABLE} (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    day INTEGER NOT NULL,
                    went_well TEXT,
                    could_improve TEXT,
                    tomorrow_priority TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT,
                    UNIQUE (user_id, day)
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {SKILL_PATHS_TABLE} (
                    id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT,
                    icon TEXT,
                    is_active INTEGER DEFAULT 0,
                    progress INTEGER DEFAULT 0,
                    topics_json TEXT,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, id)
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {LEARNING_NOTES_TABLE} (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    day INTEGER NOT NULL,
                    skill_path_id TEXT,
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {VISION_GOALS_TABLE} (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    target_date TEXT,
                    progress INTEGER DEFAULT 0,
                    category TEXT NOT NULL,
                    current_value TEXT,
                    target_value TEXT,
                    image_url TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                )
                """
            )
        )

    async def ensure_column(table_name: str, column_name: str, column_ddl: str) -> None:
        try:
            async with engine.begin() as conn:
                await conn.execute(
                    sql_text(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {column_ddl}")
                )
        except SQLAlchemyError:
            logger.debug("Column %s.%s already present", table_name, column_name)

    async def ensure_index(index_sql: str) -> None:
        try:
            async with engine.begin() as conn:
                await conn.execute(sql_text(index_sql))
        except SQLAlchemyError:
            logger.debug("Index statement skipped: %s", index_sql)

    # Older task tables predate priority and explicit task origin.
    await ensure_column(TASKS_TABLE, "priority", "TEXT DEFAULT 'low'")
    await ensure_column(TASKS_TABLE, "origin", "TEXT")
    await ensure_column(TASKS_TABLE, "template_id", "TEXT")

    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{TASKS_TABLE}_user_day "
        f"ON {TASKS_TABLE} (user_id, day)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{LEARNING_NOTES_TABLE}_user_day "
        f"ON {LEARNING_NOTES_TABLE} (user_id, day)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{VISION_GOALS_TABLE}_user "
        f"ON {VISION_GOALS_TABLE} (user_id)"
    )
