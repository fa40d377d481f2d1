from __future__ import annotations

import io
import logging
import time
from pathlib import Path
from typing import Any, Callable

from minio import Minio

from mindbank.core.config import settings

log = logging.getLogger("mindbank")

# Set once the bucket is known to exist, so writes skip the round trip.
_bucket_ok = False


def put_bytes(*, object_key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
    """Store a blob under `object_key`.

    MinIO when enabled; the local directory otherwise, or when MinIO is unreachable.
    """
    if settings.MINIO_ENABLED:
        try:
            _retry(lambda: _put_minio(object_key, data, content_type), attempts=2)
            return object_key
        except Exception as e:
            log.warning("Object store: MinIO write failed for %s, using local dir: %s", object_key, str(e))
    path = _local_path(object_key)
    if path is None:
        raise PermissionError(f"Object key escapes the local store: {object_key}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return object_key


def get_bytes(*, object_key: str) -> bytes | None:
    """Blob stored under `object_key`, or None if neither backend has it."""
    if settings.MINIO_ENABLED:
        try:
            return _retry(lambda: _get_minio(object_key), attempts=2)
        except Exception as e:
            log.info("Object store: MinIO read failed for %s: %s", object_key, str(e))
    path = _local_path(object_key)
    if path is None:
        return None
    try:
        return path.read_bytes()
    except OSError:
        return None


def minio_ready() -> bool:
    if not settings.MINIO_ENABLED:
        return True
    try:
        return bool(_client().bucket_exists(settings.MINIO_BUCKET))
    except Exception as e:
        log.info("Object store: MinIO not ready: %s", str(e))
        return False


def ensure_minio_bucket() -> None:
    _retry(lambda: _ensure_bucket(_client()), attempts=3)


def _client() -> Minio:
    return Minio(
        endpoint=settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_SECURE,
    )


def _ensure_bucket(c: Minio) -> None:
    global _bucket_ok
    if _bucket_ok:
        return
    if not c.bucket_exists(settings.MINIO_BUCKET):
        c.make_bucket(settings.MINIO_BUCKET)
        log.info("Object store: created bucket %s", settings.MINIO_BUCKET)
    _bucket_ok = True


def _put_minio(object_key: str, data: bytes, content_type: str) -> None:
    c = _client()
    _ensure_bucket(c)
    c.put_object(settings.MINIO_BUCKET, object_key, io.BytesIO(data), length=len(data), content_type=content_type)


def _get_minio(object_key: str) -> bytes:
    res = _client().get_object(settings.MINIO_BUCKET, object_key)
    try:
        return res.read()
    finally:
        res.close()
        res.release_conn()


def _local_path(object_key: str) -> Path | None:
    root = Path(settings.LOCAL_OBJECT_STORE_DIR).resolve()
    path = (root / object_key).resolve()
    if path == root or root not in path.parents:
        return None
    return path


def _retry(fn: Callable[[], Any], *, attempts: int, sleep_s: float = 0.3) -> Any:
    for i in range(attempts):
        try:
            return fn()
        except Exception:
            if i == attempts - 1:
                raise
            time.sleep(sleep_s * (2**i))
