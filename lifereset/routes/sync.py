from __future__ import annotations

from fastapi import APIRouter, Depends

from lifereset.auth import require_user_id
from lifereset.store import ChallengeStore, LocalCache, get_local_cache, get_store
from lifereset.workers.sync_worker import flush_local_cache_once

router = APIRouter()


@router.get("/v1/sync/status")
async def sync_status(
    user_id: str = Depends(require_user_id),
    cache: LocalCache = Depends(get_local_cache),
):
    pending = [item for item in cache.pending if item["user_id"] == user_id]
    return {
        "pending": len(pending),
        "last_error": "sync failed" if pending else None,
    }


@router.post("/v1/sync/run")
async def run_sync_once(
    user_id: str = Depends(require_user_id),
    store: ChallengeStore = Depends(get_store),
    cache: LocalCache = Depends(get_local_cache),
):
    flushed = await flush_local_cache_once(store, cache, limit=25, user_id=user_id)
    return {"ok": True, "flushed": flushed}
