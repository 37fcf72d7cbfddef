"""Domain records shared by the progress engine and the task synchronizer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

CHALLENGE_DAYS = 30

CATEGORIES = ("morning", "skill", "evening")
PRIORITIES = ("low", "high", "immediate")
DEFAULT_PRIORITY = "low"

ORIGIN_ESSENTIAL = "essential"
ORIGIN_CUSTOM = "custom"
ORIGINS = (ORIGIN_ESSENTIAL, ORIGIN_CUSTOM)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class Progress:
    user_id: str
    current_day: int = 1
    streak: int = 0
    completed_days: frozenset = field(default_factory=frozenset)
    total_tasks_completed: int = 0
    start_date: Optional[datetime] = None
    last_active_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "current_day": self.current_day,
            "streak": self.streak,
            "completed_days": sorted(self.completed_days),
            "total_tasks_completed": self.total_tasks_completed,
            "start_date": _format_timestamp(self.start_date),
            "last_active_date": _format_timestamp(self.last_active_date),
        }

    def to_row(self) -> Dict[str, Any]:
        payload = self.to_dict()
        payload["completed_days"] = json.dumps(payload["completed_days"])
        return payload

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Progress":
        raw_days = row.get("completed_days")
        if isinstance(raw_days, str):
            raw_days = json.loads(raw_days or "[]")
        return cls(
            user_id=str(row["user_id"]),
            current_day=int(row.get("current_day") or 1),
            streak=int(row.get("streak") or 0),
            completed_days=frozenset(int(day) for day in (raw_days or [])),
            total_tasks_completed=int(row.get("total_tasks_completed") or 0),
            start_date=parse_timestamp(row.get("start_date")),
            last_active_date=parse_timestamp(row.get("last_active_date")),
        )


@dataclass(frozen=True)
class TaskTemplate:
    template_id: str
    title: str
    description: str
    duration: int
    category: str
    icon: str
    priority: str = DEFAULT_PRIORITY


@dataclass(frozen=True)
class Task:
    id: str
    user_id: str
    day: int
    title: str
    description: str = ""
    duration: int = 15
    category: str = "morning"
    priority: str = DEFAULT_PRIORITY
    completed: bool = False
    icon: str = "fas fa-star"
    # None marks rows written before origin tracking existed.
    origin: Optional[str] = ORIGIN_CUSTOM
    template_id: Optional[str] = None

    @property
    def is_essential(self) -> bool:
        return self.origin == ORIGIN_ESSENTIAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "day": self.day,
            "title": self.title,
            "description": self.description,
            "duration": self.duration,
            "category": self.category,
            "priority": self.priority,
            "completed": self.completed,
            "icon": self.icon,
            "origin": self.origin,
            "template_id": self.template_id,
        }

    def to_row(self) -> Dict[str, Any]:
        payload = self.to_dict()
        payload["completed"] = int(self.completed)
        return payload

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Task":
        priority = row.get("priority")
        if priority not in PRIORITIES:
            priority = DEFAULT_PRIORITY
        origin = row.get("origin")
        if origin not in ORIGINS:
            origin = ORIGIN_ESSENTIAL if row.get("template_id") else None
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            day=int(row["day"]),
            title=str(row.get("title") or ""),
            description=str(row.get("description") or ""),
            duration=int(row.get("duration") or 0),
            category=str(row.get("category") or "morning"),
            priority=priority,
            completed=bool(row.get("completed")),
            icon=str(row.get("icon") or ""),
            origin=origin,
            template_id=row.get("template_id"),
        )
