from __future__ import annotations

import logging
import threading
from typing import Callable

from mindbank.library.buckets import sort_newest_first
from mindbank.schemas.items import ItemBase

log = logging.getLogger("mindbank")

Loader = Callable[[str], list[ItemBase]]
SnapshotCallback = Callable[[list[ItemBase]], None]
ErrorCallback = Callable[[Exception], None]
Relay = Callable[[str], None]


class Subscription:
    def __init__(
        self,
        hub: "SubscriptionHub",
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self.user_id = user_id
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True
        self._hub = hub

    def close(self) -> None:
        self.active = False
        self._hub._remove(self)


class SubscriptionHub:
    """Per-user realtime fan-out of the full item set.

    Every subscriber receives the whole list, newest first, once on subscribe
    and again after each write for its user. Nothing is filtered here; bucket
    and bookshelf views are computed by the reader.
    """

    def __init__(self, loader: Loader | None = None, relay: Relay | None = None) -> None:
        self._loader = loader
        self._relay = relay
        self._subs: dict[str, list[Subscription]] = {}
        self._lock = threading.Lock()

    def bind_loader(self, loader: Loader) -> None:
        self._loader = loader

    def subscribe(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        sub = Subscription(self, user_id, on_snapshot, on_error)
        with self._lock:
            self._subs.setdefault(user_id, []).append(sub)
        self._deliver([sub], user_id)
        return sub

    def publish(self, user_id: str) -> None:
        with self._lock:
            subs = list(self._subs.get(user_id, []))
        if subs:
            self._deliver(subs, user_id)
        if self._relay is not None:
            self._relay(user_id)

    def subscriber_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._subs.get(user_id, []))

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subs.get(sub.user_id, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subs.pop(sub.user_id, None)

    def _deliver(self, subs: list[Subscription], user_id: str) -> None:
        if self._loader is None:
            raise RuntimeError("SubscriptionHub has no loader bound")
        try:
            items = sort_newest_first(self._loader(user_id))
        except Exception as e:
            # Reported to subscribers; reconnecting is the store's business.
            log.error("Realtime: failed to load items for user %s: %s", user_id, str(e))
            for s in subs:
                if s.active and s.on_error is not None:
                    s.on_error(e)
            return
        for s in subs:
            if s.active:
                s.on_snapshot(list(items))
