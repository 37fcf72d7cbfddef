from __future__ import annotations

from fastapi import APIRouter, Depends

from lifereset import repositories
from lifereset.auth import require_user_id
from lifereset.schemas import VisionGoalCreate, VisionGoalPatch
from lifereset.services.records import normalize_goal_payload

router = APIRouter()


@router.get("/v1/vision-goals")
async def list_goals(user_id: str = Depends(require_user_id)):
    return {"items": await repositories.list_vision_goals(user_id)}


@router.post("/v1/vision-goals", status_code=201)
async def create_goal(payload: VisionGoalCreate, user_id: str = Depends(require_user_id)):
    clean = normalize_goal_payload(payload.model_dump())
    return await repositories.create_vision_goal(user_id, clean)


@router.patch("/v1/vision-goals/{goal_id}")
async def patch_goal(goal_id: str, payload: VisionGoalPatch, user_id: str = Depends(require_user_id)):
    clean = normalize_goal_payload(payload.model_dump(exclude_unset=True), partial=True)
    return await repositories.update_vision_goal(user_id, goal_id, clean)


@router.delete("/v1/vision-goals/{goal_id}")
async def delete_goal(goal_id: str, user_id: str = Depends(require_user_id)):
    await repositories.delete_vision_goal(user_id, goal_id)
    return {"ok": True}
