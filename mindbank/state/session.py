from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mindbank.bookshelf.aggregator import BookGroup, group_books
from mindbank.capture.classifier import Completer
from mindbank.capture.dictation import Dictation
from mindbank.capture.pipeline import CapturePipeline, Classifier
from mindbank.core.errors import AuthError, PersistenceError
from mindbank.library.buckets import Bucket, filter_bucket
from mindbank.library.store import ItemStore, audit
from mindbank.models.tables import User
from mindbank.realtime.hub import Subscription, SubscriptionHub
from mindbank.schemas.items import Draft, ItemBase
from mindbank.translation.overlay import TranslationOverlay
from mindbank.util.ids import new_uuid
from mindbank.util.time import now_utc

log = logging.getLogger("mindbank")


def ensure_user(db: Session, *, user_id: str | None = None, display_name: str | None = None) -> User:
    """Return the user row, creating it on first sign-in.

    Without an id the sign-in is anonymous and a fresh id is minted.
    """

    user_id = (user_id or "").strip() or None
    anonymous = user_id is None
    if user_id is not None:
        row = db.get(User, user_id)
        if row is not None:
            audit(db, user_id=user_id, event_type="session.sign_in", severity="INFO", message="Signed in", context={})
            db.commit()
            return row

    row = User(
        id=user_id or new_uuid(),
        display_name=(display_name or "").strip() or None,
        is_anonymous=anonymous,
        created_at=now_utc(),
    )
    db.add(row)
    audit(
        db,
        user_id=row.id,
        event_type="session.sign_in",
        severity="INFO",
        message="First sign-in",
        context={"anonymous": anonymous},
    )
    db.commit()
    return row


class UserSession:
    """Everything one signed-in user has in flight.

    `items` is replaced wholesale by every hub delivery; the capture draft
    and the translation overlay live beside it and are never touched by a
    snapshot.
    """

    def __init__(
        self,
        user_id: str,
        store: ItemStore,
        hub: SubscriptionHub,
        *,
        classifier: Classifier | None = None,
        complete: Completer | None = None,
    ) -> None:
        self.user_id = user_id
        self.store = store
        self.pipeline = CapturePipeline(classifier=classifier, persist=self._persist)
        self.dictation = Dictation(self.pipeline)
        self.translations = TranslationOverlay(complete=complete)
        self.items: list[ItemBase] = []
        self.sync_error: str | None = None
        self._lock = threading.Lock()
        self._subscription: Subscription | None = hub.subscribe(user_id, self._on_snapshot, self._on_error)

    def _persist(self, draft: Draft, in_quotebook: bool) -> ItemBase:
        return self.store.create(self.user_id, draft, in_quotebook=in_quotebook)

    def _on_snapshot(self, items: list[ItemBase]) -> None:
        with self._lock:
            self.items = items
            self.sync_error = None

    def _on_error(self, err: Exception) -> None:
        with self._lock:
            self.sync_error = getattr(err, "message", None) or str(err)

    def snapshot_items(self) -> list[ItemBase]:
        with self._lock:
            return list(self.items)

    def view(self, bucket: Bucket | str) -> list[ItemBase]:
        return filter_bucket(self.snapshot_items(), bucket)

    def books(self) -> list[BookGroup]:
        return group_books(self.snapshot_items())

    def find_item(self, item_id: str) -> ItemBase:
        for it in self.snapshot_items():
            if it.id == item_id:
                return it
        return self.store.get(self.user_id, item_id)

    def describe(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "item_count": len(self.snapshot_items()),
            "capture": self.pipeline.snapshot(),
            "recording": self.dictation.recording,
            "sync_error": self.sync_error,
        }

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self.dictation.stop()
        self.pipeline.close()
        with self._lock:
            self.items = []


class SessionRegistry:
    """Signed-in users of this process, keyed by user id."""

    def __init__(
        self,
        store: ItemStore,
        hub: SubscriptionHub,
        session_factory: Callable[[], Session],
        *,
        classifier: Classifier | None = None,
        complete: Completer | None = None,
    ) -> None:
        self.store = store
        self.hub = hub
        self._db = session_factory
        self._classifier = classifier
        self._complete = complete
        self._sessions: dict[str, UserSession] = {}
        self._lock = threading.Lock()

    def sign_in(self, user_id: str | None = None, display_name: str | None = None) -> UserSession:
        try:
            with self._db() as db:
                user = ensure_user(db, user_id=user_id, display_name=display_name)
                uid = user.id
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not sign in: {type(e).__name__}") from e

        with self._lock:
            existing = self._sessions.get(uid)
            if existing is not None:
                return existing

        session = UserSession(uid, self.store, self.hub, classifier=self._classifier, complete=self._complete)
        with self._lock:
            # Two concurrent sign-ins for one user: keep the first, drop ours.
            current = self._sessions.setdefault(uid, session)
        if current is not session:
            session.close()
        else:
            log.info("Session opened for user %s", uid)
        return current

    def sign_out(self, user_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        session.close()
        log.info("Session closed for user %s", user_id)
        return True

    def get(self, user_id: str | None) -> UserSession:
        if not user_id:
            raise AuthError("Sign in first")
        with self._lock:
            session = self._sessions.get(user_id)
        if session is None:
            raise AuthError("No active session for this user", user_id=user_id)
        return session

    def active(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._sessions

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for s in sessions:
            s.close()
