from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from mindbank.api.deps import get_session, store
from mindbank.bookshelf.service import (
    add_note,
    book_info_from_candidate,
    generate_insight,
    require_book,
    search_books,
)
from mindbank.schemas.items import item_to_wire
from mindbank.state.session import UserSession

router = APIRouter()


class NoteIn(BaseModel):
    title: str = Field(min_length=1)
    text: str = Field(min_length=1)


class InsightIn(BaseModel):
    title: str = Field(min_length=1)


@router.get("")
def list_books(session: UserSession = Depends(get_session)) -> dict:
    return {"books": [b.summary() for b in session.books()]}


@router.get("/detail")
def book_detail(title: str = Query(min_length=1), session: UserSession = Depends(get_session)) -> dict:
    return require_book(session.snapshot_items(), title).detail()


@router.get("/search")
def search(q: str = Query(default=""), session: UserSession = Depends(get_session)) -> dict:
    candidates = search_books(q)
    return {
        "query": q,
        "results": [
            {
                "candidate": c.model_dump(by_alias=True),
                "book": book_info_from_candidate(c).model_dump(by_alias=True),
            }
            for c in candidates
        ],
    }


@router.post("/notes")
def create_note(body: NoteIn, session: UserSession = Depends(get_session)) -> dict:
    book = require_book(session.snapshot_items(), body.title)
    item = add_note(store, session.user_id, book, body.text)
    return {"ok": True, "item": item_to_wire(item)}


@router.post("/insights")
def create_insight(body: InsightIn, session: UserSession = Depends(get_session)) -> dict:
    book = require_book(session.snapshot_items(), body.title)
    item = generate_insight(store, session.user_id, book)
    return {"ok": True, "item": item_to_wire(item)}
