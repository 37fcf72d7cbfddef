from __future__ import annotations

from fastapi import APIRouter, Depends

from lifereset import repositories
from lifereset.auth import require_user_id
from lifereset.core.progress_engine import validate_day
from lifereset.schemas import JournalPayload
from lifereset.services.records import normalize_journal_payload

router = APIRouter()


@router.get("/v1/journal")
async def list_journal(user_id: str = Depends(require_user_id)):
    return {"items": await repositories.list_journal_entries(user_id)}


@router.get("/v1/journal/{day}")
async def get_journal(day: int, user_id: str = Depends(require_user_id)):
    entry = await repositories.get_journal_entry(user_id, validate_day(day))
    return {"day": day, "entry": entry}


@router.put("/v1/journal/{day}")
async def put_journal(day: int, payload: JournalPayload, user_id: str = Depends(require_user_id)):
    fields = normalize_journal_payload(payload.model_dump())
    return await repositories.upsert_journal_entry(user_id, validate_day(day), fields)
