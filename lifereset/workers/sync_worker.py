from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from lifereset.errors import StorageError
from lifereset.store import ChallengeStore, LocalCache, get_local_cache, get_store

logger = logging.getLogger(__name__)


async def flush_local_cache_once(
    store: ChallengeStore,
    cache: LocalCache,
    limit: int = 25,
    user_id: Optional[str] = None,
) -> int:
    """Replay task writes mirrored to the local cache into the primary store.

    With ``user_id`` only that user's writes are replayed.
    """
    now = datetime.now(timezone.utc)
    due = [
        item
        for item in cache.pending
        if (user_id is None or item["user_id"] == user_id)
        and (item["next_retry_at"] is None or item["next_retry_at"] <= now)
    ][:limit]
    if not due:
        return 0
    flushed = 0
    for item in due:
        try:
            await store.save_task(item["user_id"], item["task"])
        except StorageError as exc:
            attempts = int(item.get("attempts") or 0) + 1
            delay = min(300, 2 ** min(attempts, 8))
            item["attempts"] = attempts
            item["next_retry_at"] = now + timedelta(seconds=delay)
            logger.warning("Replay of task %s failed (attempt %s): %s", item["task"].id, attempts, exc)
            continue
        if item in cache.pending:
            cache.pending.remove(item)
            cache.tasks.pop((item["user_id"], item["task"].id), None)
        flushed += 1
    return flushed


async def run_forever(interval_seconds: float = 5) -> None:
    # The cache lives in this process, so the loop runs inside the API process.
    store = get_store()
    cache = get_local_cache()
    while True:
        await flush_local_cache_once(store, cache, limit=25)
        await asyncio.sleep(interval_seconds)
