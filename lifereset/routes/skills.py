from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from lifereset import repositories
from lifereset.auth import require_user_id
from lifereset.schemas import LearningNoteCreate, SkillPathCreate, SkillPathPatch
from lifereset.services.records import (
    list_or_seed_skill_paths,
    normalize_note,
    normalize_skill_payload,
)

router = APIRouter()


@router.get("/v1/skills")
async def list_skills(user_id: str = Depends(require_user_id)):
    return {"items": await list_or_seed_skill_paths(user_id)}


@router.post("/v1/skills", status_code=201)
async def create_skill(payload: SkillPathCreate, user_id: str = Depends(require_user_id)):
    clean = normalize_skill_payload(payload.model_dump())
    return await repositories.create_skill_path(user_id, clean)


@router.patch("/v1/skills/{skill_id}")
async def patch_skill(skill_id: str, payload: SkillPathPatch, user_id: str = Depends(require_user_id)):
    clean = normalize_skill_payload(payload.model_dump(exclude_unset=True), partial=True)
    return await repositories.update_skill_path(user_id, skill_id, clean)


@router.post("/v1/skills/{skill_id}/activate")
async def activate_skill(skill_id: str, user_id: str = Depends(require_user_id)):
    await repositories.get_skill_path(user_id, skill_id)
    await repositories.set_active_skill_path(user_id, skill_id)
    return {"ok": True, "active": skill_id}


@router.delete("/v1/skills/{skill_id}")
async def delete_skill(skill_id: str, user_id: str = Depends(require_user_id)):
    await repositories.delete_skill_path(user_id, skill_id)
    return {"ok": True}


@router.get("/v1/learning-notes")
async def list_notes(day: Optional[int] = Query(None), user_id: str = Depends(require_user_id)):
    return {"items": await repositories.list_learning_notes(user_id, day)}


@router.post("/v1/learning-notes", status_code=201)
async def create_note(payload: LearningNoteCreate, user_id: str = Depends(require_user_id)):
    day, content = normalize_note(payload.day, payload.content)
    if payload.skill_path_id:
        await repositories.get_skill_path(user_id, payload.skill_path_id)
    return await repositories.create_learning_note(user_id, day, payload.skill_path_id, content)
