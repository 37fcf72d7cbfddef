from __future__ import annotations

import asyncio
import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lifereset.db_init import init_db
from lifereset.errors import LifeResetError, StorageError
from lifereset.routes import journal, progress, skills, sync, tasks, vision
from lifereset.workers.sync_worker import run_forever

logger = logging.getLogger("lifereset")


def create_app() -> FastAPI:
    logging.basicConfig(
        level=os.getenv("BACKEND_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    app = FastAPI(title="Life Reset 30 API", version="0.1.0")

    app.include_router(progress.router)
    app.include_router(tasks.router)
    app.include_router(journal.router)
    app.include_router(skills.router)
    app.include_router(vision.router)
    app.include_router(sync.router)

    @app.on_event("startup")
    async def _startup():
        await init_db()
        app.state.sync_task = asyncio.create_task(run_forever())

    @app.on_event("shutdown")
    async def _shutdown():
        task = getattr(app.state, "sync_task", None)
        if task is not None:
            task.cancel()

    @app.exception_handler(LifeResetError)
    async def _domain_error_handler(request: Request, exc: LifeResetError):
        if isinstance(exc, StorageError):
            logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        else:
            logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal error"})

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("BACKEND_HOST", "127.0.0.1"),
        port=int(os.getenv("BACKEND_PORT", "8000")),
    )


if __name__ == "__main__":
    run()
