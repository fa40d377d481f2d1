from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from mindbank.api.deps import get_session
from mindbank.schemas.capture import BookContext, BookInfo, DraftPatch, TranscriptFragment
from mindbank.schemas.items import item_to_wire
from mindbank.state.session import UserSession

router = APIRouter()


class InputIn(BaseModel):
    text: str = ""


class StartIn(BaseModel):
    text: str | None = None
    context: BookContext | None = None


class CommitIn(BaseModel):
    as_favorite: bool = False


class DictationIn(BaseModel):
    results: list[TranscriptFragment]


@router.get("")
def capture_state(session: UserSession = Depends(get_session)) -> dict:
    return session.pipeline.snapshot()


@router.put("/input")
def set_input(body: InputIn, session: UserSession = Depends(get_session)) -> dict:
    return {"pending_input": session.pipeline.set_input(body.text)}


@router.post("/start")
def start_capture(body: StartIn | None = None, session: UserSession = Depends(get_session)) -> dict:
    body = body or StartIn()
    draft = session.pipeline.start_capture(body.text, body.context)
    return {"cancelled": draft is None, **session.pipeline.snapshot()}


@router.post("/cancel")
def cancel_capture(session: UserSession = Depends(get_session)) -> dict:
    session.pipeline.cancel()
    return session.pipeline.snapshot()


@router.patch("/draft")
def edit_draft(body: DraftPatch, session: UserSession = Depends(get_session)) -> dict:
    session.pipeline.edit_draft(body)
    return session.pipeline.snapshot()


@router.post("/draft/book")
def attach_book(body: BookInfo, session: UserSession = Depends(get_session)) -> dict:
    session.pipeline.attach_book_metadata(body)
    return session.pipeline.snapshot()


@router.post("/commit")
def commit(body: CommitIn | None = None, session: UserSession = Depends(get_session)) -> dict:
    body = body or CommitIn()
    item = session.pipeline.commit(as_favorite=body.as_favorite)
    return {"ok": True, "item": item_to_wire(item)}


@router.post("/discard")
def discard(session: UserSession = Depends(get_session)) -> dict:
    session.pipeline.discard()
    return session.pipeline.snapshot()


@router.post("/dictation/toggle")
def toggle_dictation(session: UserSession = Depends(get_session)) -> dict:
    return {"recording": session.dictation.toggle(), "pending_input": session.pipeline.pending_input}


@router.post("/dictation/results")
def dictation_results(body: DictationIn, session: UserSession = Depends(get_session)) -> dict:
    pending = session.dictation.receive(body.results)
    return {"recording": session.dictation.recording, "pending_input": pending}
