from __future__ import annotations

from datetime import date

from lifereset import repositories
from lifereset.core.progress_engine import validate_day
from lifereset.errors import ValidationError

GOAL_CATEGORIES = ("financial", "material", "business", "personal")

DEFAULT_SKILL_PATHS = [
    {
        "id": "coding",
        "name": "Coding",
        "description": "React, JavaScript, APIs",
        "icon": "fas fa-code",
        "is_active": True,
        "progress": 0,
        "topics": [
            {"name": "React Fundamentals", "progress": 0},
            {"name": "State Management", "progress": 0},
            {"name": "API Integration", "progress": 0},
        ],
    },
    {
        "id": "entrepreneurship",
        "name": "Entrepreneurship",
        "description": "Business, Strategy, Marketing",
        "icon": "fas fa-rocket",
        "is_active": False,
        "progress": 0,
        "topics": [
            {"name": "Business Planning", "progress": 0},
            {"name": "Market Research", "progress": 0},
            {"name": "Strategy Development", "progress": 0},
        ],
    },
    {
        "id": "digital-marketing",
        "name": "Digital Marketing",
        "description": "SEO, Social Media, Content",
        "icon": "fas fa-bullhorn",
        "is_active": False,
        "progress": 0,
        "topics": [
            {"name": "SEO Fundamentals", "progress": 0},
            {"name": "Social Media Strategy", "progress": 0},
            {"name": "Content Marketing", "progress": 0},
        ],
    },
    {
        "id": "sales",
        "name": "Sales",
        "description": "Communication, Negotiation",
        "icon": "fas fa-handshake",
        "is_active": False,
        "progress": 0,
        "topics": [
            {"name": "Communication Skills", "progress": 0},
            {"name": "Negotiation Tactics", "progress": 0},
            {"name": "Customer Psychology", "progress": 0},
        ],
    },
]


def clamp_percent(value) -> int:
    try:
        number = round(float(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Progress must be a number, got {value!r}")
    return max(0, min(100, number))


def clean_name(value, limit: int = 80) -> str:
    return " ".join(str(value or "").split()).strip()[:limit]


def normalize_topics(topics) -> list[dict]:
    clean = []
    for topic in topics or []:
        name = clean_name(topic.get("name") if isinstance(topic, dict) else topic)
        if not name:
            continue
        progress = topic.get("progress", 0) if isinstance(topic, dict) else 0
        clean.append({"name": name, "progress": clamp_percent(progress)})
    return clean


def skill_progress(topics: list[dict]) -> int:
    """A path's progress is the mean of its topics."""
    if not topics:
        return 0
    return round(sum(topic["progress"] for topic in topics) / len(topics))


def normalize_skill_payload(payload: dict, partial: bool = False) -> dict:
    clean = {}
    if "name" in payload or not partial:
        name = clean_name(payload.get("name"))
        if not name:
            raise ValidationError("Skill path name cannot be empty")
        clean["name"] = name
    for key in ("description", "icon"):
        if key in payload or not partial:
            clean[key] = str(payload.get(key) or "").strip()
    if "topics" in payload or not partial:
        clean["topics"] = normalize_topics(payload.get("topics"))
        clean["progress"] = skill_progress(clean["topics"])
    elif "progress" in payload:
        clean["progress"] = clamp_percent(payload["progress"])
    return clean


def normalize_journal_payload(payload: dict) -> dict:
    clean = {key: str(payload.get(key) or "").strip() for key in ("went_well", "could_improve", "tomorrow_priority")}
    if not any(clean.values()):
        raise ValidationError("Journal entry cannot be empty")
    return clean


def normalize_note(day: int, content: str) -> tuple[int, str]:
    text = str(content or "").strip()
    if not text:
        raise ValidationError("Learning note cannot be empty")
    return validate_day(day), text


def normalize_goal_payload(payload: dict, partial: bool = False) -> dict:
    clean = {}
    if "title" in payload or not partial:
        title = clean_name(payload.get("title"), limit=120)
        if not title:
            raise ValidationError("Vision goal title cannot be empty")
        clean["title"] = title
    if "category" in payload or not partial:
        category = payload.get("category") or "personal"
        if category not in GOAL_CATEGORIES:
            raise ValidationError(f"Unknown goal category {category!r}")
        clean["category"] = category
    if "target_value" in payload or not partial:
        target_value = str(payload.get("target_value") or "").strip()
        if not target_value:
            raise ValidationError("Vision goal needs a target value")
        clean["target_value"] = target_value
    if "target_date" in payload:
        value = payload.get("target_date")
        if isinstance(value, date):
            clean["target_date"] = value.isoformat()
        elif value:
            try:
                clean["target_date"] = date.fromisoformat(str(value)[:10]).isoformat()
            except ValueError:
                raise ValidationError(f"Invalid target date {value!r}")
        else:
            clean["target_date"] = None
    if "progress" in payload or not partial:
        clean["progress"] = clamp_percent(payload.get("progress") or 0)
    for key in ("description", "current_value", "image_url"):
        if key in payload:
            clean[key] = payload.get(key)
    return clean


async def list_or_seed_skill_paths(user_id: str) -> list[dict]:
    skills = await repositories.list_skill_paths(user_id)
    if skills:
        return skills
    await repositories.insert_skill_paths(user_id, DEFAULT_SKILL_PATHS)
    return await repositories.list_skill_paths(user_id)
