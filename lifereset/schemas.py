from __future__ import annotations

from datetime import date
from typing import Optional, List, Dict, Any, Literal

from pydantic import BaseModel, Field

Category = Literal["morning", "skill", "evening"]
Priority = Literal["low", "high", "immediate"]
GoalCategory = Literal["financial", "material", "business", "personal"]


class ProgressResponse(BaseModel):
    user_id: str
    current_day: int
    streak: int
    completed_days: List[int]
    total_tasks_completed: int
    start_date: Optional[str]
    last_active_date: Optional[str]
    completion_rate: int


class CompleteDayPayload(BaseModel):
    day: Optional[int] = None


class CompleteDayResponse(BaseModel):
    progress: ProgressResponse
    day_completed: bool


class TaskResponse(BaseModel):
    id: str
    user_id: str
    day: int
    title: str
    description: str
    duration: int
    category: str
    priority: str
    completed: bool
    icon: str
    origin: Optional[str]
    template_id: Optional[str] = None


class DayTasksResponse(BaseModel):
    day: int
    items: List[TaskResponse]
    fully_complete: bool


class TaskCreate(BaseModel):
    day: int
    title: str
    description: str = ""
    duration: int = 15
    category: Category = "morning"
    priority: Priority = "low"
    icon: str = "fas fa-star"


class TaskCreateResponse(BaseModel):
    task: TaskResponse
    warning: Optional[str] = None


class ToggleResponse(BaseModel):
    task: TaskResponse
    items: List[TaskResponse]
    day_completed: bool
    progress: Optional[ProgressResponse] = None
    warning: Optional[str] = None


class JournalPayload(BaseModel):
    went_well: str = ""
    could_improve: str = ""
    tomorrow_priority: str = ""


class SkillTopic(BaseModel):
    name: str
    progress: int = Field(0, ge=0, le=100)


class SkillPathCreate(BaseModel):
    name: str
    description: str = ""
    icon: str = "fas fa-star"
    topics: List[SkillTopic] = Field(default_factory=list)


class SkillPathPatch(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    progress: Optional[int] = None
    topics: Optional[List[SkillTopic]] = None


class LearningNoteCreate(BaseModel):
    day: int
    skill_path_id: Optional[str] = None
    content: str


class VisionGoalCreate(BaseModel):
    title: str
    description: str = ""
    target_date: Optional[date] = None
    progress: int = 0
    category: GoalCategory = "personal"
    current_value: Optional[str] = None
    target_value: str
    image_url: Optional[str] = None


class VisionGoalPatch(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    target_date: Optional[date] = None
    progress: Optional[int] = None
    category: Optional[GoalCategory] = None
    current_value: Optional[str] = None
    target_value: Optional[str] = None
    image_url: Optional[str] = None


class ItemsResponse(BaseModel):
    items: List[Dict[str, Any]]
