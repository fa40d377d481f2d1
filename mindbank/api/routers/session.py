from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel

from mindbank.api.deps import get_user_id, sessions

router = APIRouter()


class SignInIn(BaseModel):
    user_id: str | None = None
    display_name: str | None = None


@router.post("")
def sign_in(
    body: SignInIn | None = None,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> dict:
    body = body or SignInIn()
    # No id from the body or the header means an anonymous sign-in.
    session = sessions.sign_in(body.user_id or x_user_id, body.display_name)
    return {"ok": True, "session": session.describe()}


@router.delete("")
def sign_out(user_id: str = Depends(get_user_id)) -> dict:
    return {"ok": True, "signed_out": sessions.sign_out(user_id)}


@router.get("")
def session_state(user_id: str = Depends(get_user_id)) -> dict:
    if not sessions.active(user_id):
        return {"active": False, "user_id": user_id}
    return {"active": True, "session": sessions.get(user_id).describe()}
