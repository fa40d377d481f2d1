from __future__ import annotations

import json
import logging

from redis import Redis

from mindbank.core.config import settings
from mindbank.util.time import now_utc

log = logging.getLogger("mindbank")


def channel_for(user_id: str) -> str:
    return f"mindbank:items:{user_id}"


def publish_change_best_effort(user_id: str) -> None:
    """Tell other processes that a user's item set changed. Best-effort."""

    if not settings.REALTIME_RELAY_ENABLED:
        return
    try:
        r = Redis.from_url(settings.REDIS_URL, socket_connect_timeout=1, socket_timeout=1)
        r.publish(channel_for(user_id), json.dumps({"user_id": user_id, "at": now_utc().isoformat()}))
    except Exception as e:
        log.warning("Realtime relay publish failed: %s", str(e))
