from __future__ import annotations

import logging

import httpx

from mindbank.core.config import settings
from mindbank.core.errors import SynthesisError

log = logging.getLogger("mindbank")


def synthesize_speech(text: str, voice: str) -> bytes:
    """Return MP3 bytes for `text` spoken by `voice`."""

    if not settings.OPENAI_API_KEY:
        raise SynthesisError("Missing OPENAI_API_KEY")

    url = f"{settings.OPENAI_API_BASE.rstrip('/')}/audio/speech"
    headers = {"Authorization": f"Bearer {settings.OPENAI_API_KEY}"}
    data = {"model": settings.TTS_MODEL, "input": text, "voice": voice}

    try:
        resp = httpx.post(url, headers=headers, json=data, timeout=settings.EXTERNAL_TIMEOUT_S)
    except httpx.TimeoutException as e:
        raise SynthesisError("Speech synthesis timed out") from e
    except httpx.HTTPError as e:
        raise SynthesisError(f"Speech synthesis request failed: {type(e).__name__}") from e

    if resp.status_code >= 400:
        log.warning("TTS http %s: %s", resp.status_code, (resp.text or "")[:200])
        raise SynthesisError(f"Failed to generate audio (http {resp.status_code})")

    if not resp.content:
        raise SynthesisError("Speech synthesis returned no audio")
    return resp.content
