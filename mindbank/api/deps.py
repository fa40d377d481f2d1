from __future__ import annotations

import threading

from fastapi import Header

from mindbank.audio.cache import AudioCache
from mindbank.core.db import SessionLocal
from mindbank.core.errors import AuthError
from mindbank.library.store import ItemStore
from mindbank.realtime.hub import SubscriptionHub
from mindbank.realtime.relay import publish_change_best_effort
from mindbank.state.session import SessionRegistry, UserSession

hub = SubscriptionHub(relay=publish_change_best_effort)
store = ItemStore(SessionLocal, hub)
hub.bind_loader(store.list_items)
sessions = SessionRegistry(store, hub, SessionLocal)

_audio_cache: AudioCache | None = None
_audio_lock = threading.Lock()


def get_user_id(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> str:
    if not x_user_id:
        raise AuthError("Missing X-User-Id")
    return x_user_id


def get_session(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> UserSession:
    return sessions.get(get_user_id(x_user_id))


def get_audio_cache() -> AudioCache:
    global _audio_cache
    with _audio_lock:
        if _audio_cache is None:
            _audio_cache = AudioCache()
        return _audio_cache
