from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from lifereset.auth import require_user_id
from lifereset.core import progress_engine
from lifereset.models import Progress
from lifereset.schemas import CompleteDayPayload, CompleteDayResponse, ItemsResponse, ProgressResponse
from lifereset.services import challenge_service, review
from lifereset.store import ChallengeStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter()


def progress_payload(progress: Progress) -> dict:
    return {**progress.to_dict(), "completion_rate": progress_engine.completion_rate(progress)}


@router.get("/v1/progress", response_model=ProgressResponse)
async def get_progress(
    user_id: str = Depends(require_user_id),
    store: ChallengeStore = Depends(get_store),
):
    progress = await challenge_service.start_session(store, user_id)
    return progress_payload(progress)


@router.post("/v1/progress/complete-day", response_model=CompleteDayResponse)
async def complete_day(
    payload: CompleteDayPayload,
    user_id: str = Depends(require_user_id),
    store: ChallengeStore = Depends(get_store),
):
    progress, completed = await challenge_service.complete_current_day(store, user_id, payload.day)
    return {"progress": progress_payload(progress), "day_completed": completed}


@router.get("/v1/progress/milestones", response_model=ItemsResponse)
async def get_milestones(
    user_id: str = Depends(require_user_id),
    store: ChallengeStore = Depends(get_store),
):
    progress = await challenge_service.start_session(store, user_id)
    return {"items": progress_engine.milestones(progress)}


@router.get("/v1/review/weekly")
async def weekly_review(
    user_id: str = Depends(require_user_id),
    store: ChallengeStore = Depends(get_store),
):
    progress = await challenge_service.start_session(store, user_id)
    return await review.load_weekly_review(store, progress)
