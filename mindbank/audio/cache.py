from __future__ import annotations

import hashlib
import logging
import re
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable

from mindbank.core.errors import SynthesisError
from mindbank.util.ids import new_uuid

log = logging.getLogger("mindbank")

VOICES = frozenset({"alloy", "echo", "fable", "onyx", "nova", "shimmer"})
CONTENT_TYPE = "audio/mpeg"
_KEY_RE = re.compile(r"[0-9a-f]{64}")

Synthesize = Callable[[str, str], bytes]
StoreClip = Callable[..., Any]


def clip_key(voice: str, text: str) -> str:
    return hashlib.sha256(f"{voice}\n{text}".encode("utf-8")).hexdigest()


def clip_object_key(key: str) -> str:
    return f"audio/{key}.mp3"


@dataclass(frozen=True)
class AudioResource:
    key: str
    voice: str
    text: str
    data: bytes = field(repr=False)
    content_type: str = CONTENT_TYPE

    @property
    def object_key(self) -> str:
        return clip_object_key(self.key)


@dataclass(frozen=True)
class AudioHandle:
    """One playback of a resource. Every speak() returns a new handle."""

    handle_id: str
    resource: AudioResource
    cached: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "handle_id": self.handle_id,
            "key": self.resource.key,
            "voice": self.resource.voice,
            "cached": self.cached,
            "content_type": self.resource.content_type,
            "size_bytes": len(self.resource.data),
            "url": f"/audio/clips/{self.resource.key}",
        }


class AudioCache:
    """LRU memo of synthesized speech keyed by (voice, trimmed text).

    Misses for the same key are not coalesced: two quick calls may both
    reach the synthesis endpoint; the later one simply refreshes the entry.
    """

    def __init__(
        self,
        synthesize: Synthesize | None = None,
        *,
        max_entries: int | None = None,
        store_clip: StoreClip | None = None,
        default_voice: str | None = None,
    ) -> None:
        if synthesize is None:
            from mindbank.integrations.openai_tts import synthesize_speech

            synthesize = synthesize_speech
        if max_entries is None or default_voice is None:
            from mindbank.core.config import settings

            max_entries = settings.AUDIO_CACHE_MAX_ENTRIES if max_entries is None else max_entries
            default_voice = default_voice or settings.TTS_DEFAULT_VOICE
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._synthesize = synthesize
        self._store_clip = store_clip
        self.max_entries = max_entries
        self.default_voice = default_voice
        self._entries: OrderedDict[tuple[str, str], AudioResource] = OrderedDict()
        self._lock = threading.Lock()

    def speak(self, text: str, voice: str | None = None) -> AudioHandle:
        voice = (voice or self.default_voice).strip()
        body = (text or "").strip()
        if voice not in VOICES:
            raise SynthesisError(f"Unknown voice {voice!r}", voices=sorted(VOICES))
        if not body:
            raise SynthesisError("Nothing to read aloud")

        cache_key = (voice, body)
        with self._lock:
            hit = self._entries.get(cache_key)
            if hit is not None:
                self._entries.move_to_end(cache_key)
                return AudioHandle(handle_id=new_uuid(), resource=hit, cached=True)

        data = self._synthesize(body, voice)
        resource = AudioResource(key=clip_key(voice, body), voice=voice, text=body, data=data)
        self._persist(resource)

        with self._lock:
            self._entries[cache_key] = resource
            self._entries.move_to_end(cache_key)
            while len(self._entries) > self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                log.debug("Audio cache: evicted %s", evicted_key[0])
        return AudioHandle(handle_id=new_uuid(), resource=resource, cached=False)

    def get_clip(self, key: str) -> bytes | None:
        """Audio bytes for a clip key, from memory or the object store."""
        if not _KEY_RE.fullmatch(key or ""):
            return None
        with self._lock:
            for res in self._entries.values():
                if res.key == key:
                    return res.data
        from mindbank.storage.object_store import get_bytes

        return get_bytes(object_key=clip_object_key(key))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, pair: tuple[str, str]) -> bool:
        voice, text = pair
        with self._lock:
            return (voice, (text or "").strip()) in self._entries

    def _persist(self, resource: AudioResource) -> None:
        store = self._store_clip
        if store is None:
            from mindbank.storage.object_store import put_bytes

            store = put_bytes
        try:
            store(object_key=resource.object_key, data=resource.data, content_type=resource.content_type)
        except OSError as e:
            log.warning("Audio cache: could not store clip %s: %s", resource.key, str(e))
