from __future__ import annotations

import httpx

from mindbank.core.config import settings
from mindbank.core.errors import MetadataSearchError
from mindbank.schemas.capture import BookCandidate


def search_volumes(query: str, *, limit: int | None = None) -> list[BookCandidate]:
    """Ranked book candidates for a free-text query."""

    q = (query or "").strip()
    if not q:
        raise MetadataSearchError("Empty book search query")

    url = f"{settings.GOOGLE_BOOKS_API_BASE.rstrip('/')}/volumes"
    params: dict = {"q": q, "maxResults": limit or settings.BOOK_SEARCH_LIMIT}
    if settings.GOOGLE_BOOKS_API_KEY:
        params["key"] = settings.GOOGLE_BOOKS_API_KEY

    try:
        resp = httpx.get(url, params=params, timeout=settings.EXTERNAL_TIMEOUT_S)
    except httpx.TimeoutException as e:
        raise MetadataSearchError("Book search timed out") from e
    except httpx.HTTPError as e:
        raise MetadataSearchError(f"Book search failed: {type(e).__name__}") from e

    if resp.status_code >= 400:
        raise MetadataSearchError(f"Book search http {resp.status_code}")

    try:
        data = resp.json()
    except ValueError:
        raise MetadataSearchError("Book search returned non-JSON")

    out: list[BookCandidate] = []
    for volume in data.get("items") or []:
        info = volume.get("volumeInfo") or {}
        title = (info.get("title") or "").strip()
        if not title:
            continue
        thumb = (info.get("imageLinks") or {}).get("thumbnail")
        if thumb and thumb.startswith("http://"):
            thumb = "https://" + thumb[len("http://") :]
        out.append(
            BookCandidate(
                title=title,
                authors=list(info.get("authors") or []),
                thumbnail_url=thumb,
                identifier=volume.get("id"),
            )
        )
    return out
