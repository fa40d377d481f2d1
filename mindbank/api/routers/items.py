from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from mindbank.api.deps import get_session, store
from mindbank.library.buckets import Bucket, home_bucket
from mindbank.library.share import share_text
from mindbank.schemas.items import ItemPatch, item_to_wire
from mindbank.state.session import UserSession

router = APIRouter()


class FavoriteIn(BaseModel):
    desired: bool = True


class ClearIn(BaseModel):
    confirm: bool = False


class TranslateIn(BaseModel):
    language: str = Field(min_length=1)


def _wire(session: UserSession, item) -> dict:
    out = item_to_wire(item)
    out["bucket"] = home_bucket(item).value
    translation = session.translations.get(item.id)
    out["translation"] = translation.model_dump() if translation is not None else None
    return out


@router.get("")
def list_items(
    bucket: Bucket | None = Query(default=None),
    session: UserSession = Depends(get_session),
) -> dict:
    items = session.view(bucket) if bucket is not None else session.snapshot_items()
    return {
        "bucket": bucket.value if bucket is not None else None,
        "items": [_wire(session, it) for it in items],
        "sync_error": session.sync_error,
    }


@router.patch("/{item_id}")
def update_item(item_id: str, body: ItemPatch, session: UserSession = Depends(get_session)) -> dict:
    item = store.update(session.user_id, item_id, body)
    return {"ok": True, "item": _wire(session, item)}


@router.post("/clear")
def clear_inbox(body: ClearIn | None = None, session: UserSession = Depends(get_session)) -> dict:
    body = body or ClearIn()
    deleted = store.bulk_clear(session.user_id, confirm=body.confirm)
    return {"ok": True, "deleted": deleted}


@router.post("/{item_id}/favorite")
def toggle_favorite(item_id: str, body: FavoriteIn | None = None, session: UserSession = Depends(get_session)) -> dict:
    body = body or FavoriteIn()
    item = store.toggle_favorite(session.user_id, item_id, body.desired)
    return {"ok": True, "item": _wire(session, item)}


@router.delete("/{item_id}")
def delete_item(item_id: str, session: UserSession = Depends(get_session)) -> dict:
    store.delete(session.user_id, item_id)
    session.translations.clear(item_id)
    return {"ok": True, "id": item_id}


@router.post("/{item_id}/translate")
def translate(item_id: str, body: TranslateIn, session: UserSession = Depends(get_session)) -> dict:
    item = session.find_item(item_id)
    result = session.translations.request(item, body.language)
    current = session.translations.get(item_id)
    return {
        "id": item_id,
        "superseded": result is None,
        "translation": current.model_dump() if current is not None else None,
    }


@router.delete("/{item_id}/translation")
def clear_translation(item_id: str, session: UserSession = Depends(get_session)) -> dict:
    session.translations.clear(item_id)
    return {"ok": True, "id": item_id}


@router.get("/{item_id}/share")
def share(item_id: str, session: UserSession = Depends(get_session)) -> dict:
    item = session.find_item(item_id)
    return {"id": item_id, "text": share_text(item)}
