from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis import Redis
from sqlalchemy import text

from mindbank.api.routers.audio import router as audio_router
from mindbank.api.routers.books import router as books_router
from mindbank.api.routers.capture import router as capture_router
from mindbank.api.routers.items import router as items_router
from mindbank.api.routers.session import router as session_router
from mindbank.core.config import settings
from mindbank.core.db import engine
from mindbank.core.errors import MindbankError
from mindbank.core.logging import configure_logging
from mindbank.storage.object_store import ensure_minio_bucket, minio_ready

configure_logging(settings.LOG_LEVEL)
log = logging.getLogger("mindbank")

app = FastAPI(title=settings.APP_NAME)


@app.exception_handler(MindbankError)
async def _mindbank_error(request: Request, err: MindbankError) -> JSONResponse:
    if err.status_code >= 500:
        log.warning("%s %s failed: %s %s", request.method, request.url.path, err.code, err.message)
    return JSONResponse(status_code=err.status_code, content={"detail": err.to_detail()})


def _retry_backoff(fn, *, attempts: int = 30, base_sleep_s: float = 1.0, max_sleep_s: float = 2.0, what: str) -> bool:
    sleep_s = base_sleep_s
    for i in range(1, attempts + 1):
        try:
            fn()
            return True
        except Exception as e:
            if i == attempts:
                log.error("Startup: %s still not ready after %s attempts: %s", what, attempts, str(e))
                return False
            log.warning("Startup: %s not ready (attempt %s/%s): %s", what, i, attempts, str(e))
            time.sleep(sleep_s)
            sleep_s = min(max_sleep_s, sleep_s * 2.0)
    return False


def _check_database() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def _check_redis() -> bool:
    if not settings.REALTIME_RELAY_ENABLED:
        return True
    try:
        r = Redis.from_url(settings.REDIS_URL, socket_connect_timeout=1, socket_timeout=1)
        return bool(r.ping())
    except Exception:
        return False


@app.on_event("startup")
def _startup() -> None:
    # Tests and offline runs skip this; object storage falls back to the local dir.
    if not settings.ENSURE_EXTERNAL_DEPS_ON_STARTUP or not settings.MINIO_ENABLED:
        log.info("Startup: skipping minio ensure")
        return

    _retry_backoff(lambda: ensure_minio_bucket(), what="minio")


@app.on_event("shutdown")
def _shutdown() -> None:
    from mindbank.api.deps import sessions

    sessions.close_all()


@app.get("/health")
def health() -> dict[str, Any]:
    deps = {
        "database": _check_database(),
        "redis": _check_redis(),
        "minio": minio_ready(),
    }
    return {"ok": all(deps.values()), "deps": deps, "app": settings.APP_NAME}


app.include_router(session_router, prefix="/session", tags=["session"])
app.include_router(capture_router, prefix="/capture", tags=["capture"])
app.include_router(items_router, prefix="/items", tags=["items"])
app.include_router(books_router, prefix="/books", tags=["books"])
app.include_router(audio_router, prefix="/audio", tags=["audio"])
