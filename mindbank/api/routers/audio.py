from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from mindbank.api.deps import get_audio_cache, get_session
from mindbank.audio.cache import CONTENT_TYPE, AudioCache
from mindbank.state.session import UserSession

router = APIRouter()


class SpeakIn(BaseModel):
    text: str = Field(min_length=1)
    voice: str | None = None


@router.post("/speak")
def speak(
    body: SpeakIn,
    session: UserSession = Depends(get_session),
    cache: AudioCache = Depends(get_audio_cache),
) -> dict:
    return cache.speak(body.text, body.voice).to_dict()


@router.get("/clips/{key}")
def get_clip(
    key: str,
    session: UserSession = Depends(get_session),
    cache: AudioCache = Depends(get_audio_cache),
) -> Response:
    data = cache.get_clip(key)
    if data is None:
        raise HTTPException(status_code=404, detail={"code": "CLIP_NOT_FOUND", "key": key})
    return Response(content=data, media_type=CONTENT_TYPE)
