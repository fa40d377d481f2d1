from __future__ import annotations

import httpx

from mindbank.core.config import settings
from mindbank.core.errors import CompletionError


def _truncate(s: str, n: int = 200) -> str:
    s = s or ""
    return s if len(s) <= n else s[:n] + "…"


def generate_text(prompt: str) -> str:
    """Send one prompt to the completion endpoint and return the reply text.

    Raises CompletionError when the key is missing, the call fails or times
    out, or the reply lacks the `candidates[0].content.parts[0].text` envelope.
    """

    if not settings.GEMINI_API_KEY:
        raise CompletionError("Missing GEMINI_API_KEY")

    url = f"{settings.GEMINI_API_BASE.rstrip('/')}/models/{settings.GEMINI_MODEL}:generateContent"
    payload = {"contents": [{"parts": [{"text": prompt}]}]}

    try:
        with httpx.Client(timeout=settings.EXTERNAL_TIMEOUT_S) as client:
            r = client.post(url, params={"key": settings.GEMINI_API_KEY}, json=payload)
    except httpx.TimeoutException as e:
        raise CompletionError("Language model timed out") from e
    except httpx.HTTPError as e:
        raise CompletionError(f"Language model request failed: {type(e).__name__}") from e

    if r.status_code >= 400:
        raise CompletionError(f"Language model http {r.status_code}: {_truncate(r.text)}")

    try:
        data = r.json()
    except ValueError:
        raise CompletionError(f"Non-JSON response: status={r.status_code} body={_truncate(r.text)}")

    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise CompletionError("Language model response has no content")
    if not isinstance(text, str):
        raise CompletionError("Language model response has no content")
    return text
