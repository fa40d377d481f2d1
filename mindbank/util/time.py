from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

_lock = threading.Lock()
_last: datetime | None = None


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def next_timestamp() -> datetime:
    """Store-assigned creation time, strictly increasing within the process.

    List views sort on this value alone, so two writes in the same clock tick
    must still get distinct, ordered timestamps.
    """

    global _last
    with _lock:
        now = now_utc()
        if _last is not None and now <= _last:
            now = _last + timedelta(microseconds=1)
        _last = now
        return now
