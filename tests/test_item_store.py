from __future__ import annotations

import pytest
from sqlalchemy.exc import SQLAlchemyError

from tests.utils_env import make_store, seed_user, set_test_env


@pytest.fixture()
def env(monkeypatch, tmp_path):
    set_test_env(monkeypatch, tmp_path)

    from mindbank.realtime.hub import SubscriptionHub

    hub = SubscriptionHub()
    store = make_store(hub)
    return store, hub, seed_user()


def test_create_assigns_id_and_increasing_timestamps(env):
    from mindbank.schemas.items import QuoteItem

    store, _, uid = env
    created = [store.create(uid, QuoteItem(id="temp-preview", text=f"q{i}")) for i in range(3)]
    assert all(it.id and it.id != "temp-preview" for it in created)
    assert created[0].created_at < created[1].created_at < created[2].created_at

    listed = store.list_items(uid)
    assert [it.text for it in listed] == ["q2", "q1", "q0"]


def test_items_are_scoped_per_user(env):
    from mindbank.schemas.items import QuoteItem

    store, _, uid = env
    other = seed_user()
    store.create(uid, QuoteItem(text="mine"))
    assert store.list_items(other) == []


def test_subscription_delivers_snapshot_on_subscribe_and_after_writes(env):
    from mindbank.schemas.items import QuoteItem

    store, hub, uid = env
    snapshots: list[list] = []
    sub = hub.subscribe(uid, snapshots.append)
    assert snapshots == [[]]

    item = store.create(uid, QuoteItem(text="first"))
    store.update(uid, item.id, {"author": "  Seneca  "})
    store.delete(uid, item.id)

    assert [len(s) for s in snapshots] == [0, 1, 1, 0]
    assert snapshots[2][0].author == "Seneca"

    sub.close()
    store.create(uid, QuoteItem(text="after close"))
    assert len(snapshots) == 4
    assert hub.subscriber_count(uid) == 0


def test_subscription_reports_load_failures(env):
    from mindbank.core.errors import PersistenceError
    from mindbank.realtime.hub import SubscriptionHub

    _, _, uid = env

    def _broken(user_id):
        raise PersistenceError("Could not load items: OperationalError")

    hub = SubscriptionHub(loader=_broken)
    errors: list[Exception] = []
    snapshots: list = []
    hub.subscribe(uid, snapshots.append, errors.append)
    assert snapshots == []
    assert isinstance(errors[0], PersistenceError)


def test_words_cannot_be_favorited(env):
    from mindbank.core.errors import InvalidTransition
    from mindbank.schemas.items import WordItem

    store, _, uid = env
    w = store.create(uid, WordItem(text="ephemeral"))
    with pytest.raises(InvalidTransition):
        store.toggle_favorite(uid, w.id, True)
    assert store.get(uid, w.id).in_quotebook is False


def test_toggle_favorite_and_unknown_id(env):
    from mindbank.core.errors import ItemNotFound
    from mindbank.schemas.items import QuoteItem

    store, _, uid = env
    q = store.create(uid, QuoteItem(text="q"))
    assert store.toggle_favorite(uid, q.id, True).in_quotebook is True
    assert store.toggle_favorite(uid, q.id, False).in_quotebook is False

    with pytest.raises(ItemNotFound):
        store.update(uid, "missing", {"author": "x"})
    with pytest.raises(ItemNotFound):
        store.delete(uid, "missing")


def test_update_rejects_type_change(env):
    from pydantic import ValidationError

    from mindbank.schemas.items import QuoteItem

    store, _, uid = env
    q = store.create(uid, QuoteItem(text="q"))
    with pytest.raises(ValidationError):
        store.update(uid, q.id, {"type": "word"})


def _seed_bulk(store, uid):
    from mindbank.schemas.items import QuoteItem, WordItem

    for i in range(3):
        store.create(uid, QuoteItem(text=f"inbox {i}"))
    for i in range(2):
        store.create(uid, QuoteItem(text=f"fav {i}"), in_quotebook=True)
    store.create(uid, WordItem(text="ephemeral"))


def test_bulk_clear_requires_confirmation(env):
    from mindbank.core.errors import ConfirmationRequired

    store, _, uid = env
    _seed_bulk(store, uid)
    with pytest.raises(ConfirmationRequired) as ei:
        store.bulk_clear(uid)
    assert ei.value.extra["count"] == 3
    assert len(store.list_items(uid)) == 6


def test_bulk_clear_deletes_only_inbox(env):
    store, hub, uid = env
    _seed_bulk(store, uid)
    snapshots: list = []
    hub.subscribe(uid, snapshots.append)

    assert store.bulk_clear(uid, confirm=True) == 3
    remaining = store.list_items(uid)
    assert sorted(it.text for it in remaining) == ["ephemeral", "fav 0", "fav 1"]
    # One publish for the whole clear.
    assert len(snapshots) == 2
    assert store.bulk_clear(uid, confirm=True) == 0


def test_bulk_clear_partial_failure_keeps_successful_deletions(env, monkeypatch):
    from mindbank.core.errors import BulkClearError
    from mindbank.library.store import ItemStore

    store, _, uid = env
    _seed_bulk(store, uid)
    target = next(it for it in store.list_items(uid) if it.text == "inbox 1")

    real = ItemStore._delete_one

    def _flaky(self, user_id, item_id):
        if item_id == target.id:
            raise SQLAlchemyError("database is locked")
        return real(self, user_id, item_id)

    monkeypatch.setattr(ItemStore, "_delete_one", _flaky)

    with pytest.raises(BulkClearError) as ei:
        store.bulk_clear(uid, confirm=True)
    assert ei.value.extra["deleted"] == 2
    assert ei.value.extra["failed"] == [target.id]
    assert sorted(it.text for it in store.list_items(uid)) == ["ephemeral", "fav 0", "fav 1", "inbox 1"]


def test_writes_leave_an_audit_trail(env):
    from mindbank.core.db import SessionLocal
    from mindbank.models.tables import AuditLog
    from mindbank.schemas.items import QuoteItem

    store, _, uid = env
    q = store.create(uid, QuoteItem(text="q"))
    store.delete(uid, q.id)
    with SessionLocal() as db:
        events = [a.event_type for a in db.query(AuditLog).filter(AuditLog.user_id == uid).all()]
    assert "item.create" in events
    assert "item.delete" in events
    assert "session.sign_in" in events


def test_notes_cannot_be_detached_from_their_book(env):
    from mindbank.bookshelf.aggregator import find_book
    from mindbank.core.errors import InvalidInput
    from mindbank.schemas.items import NoteItem, QuoteItem

    store, _, uid = env
    store.create(uid, QuoteItem(text="You have power over your mind", source="Meditations"))
    store.create(uid, QuoteItem(text="Hang on to your youthful enthusiasms", source="Letters"))
    note = store.create(uid, NoteItem(text="Reread book two", source="Meditations"))

    for source in ("", "   ", None):
        with pytest.raises(InvalidInput):
            store.update(uid, note.id, {"source": source})
    with pytest.raises(InvalidInput):
        store.update(uid, note.id, {"source": "Enchiridion"})

    assert store.get(uid, note.id).source == "Meditations"
    assert [n.id for n in find_book(store.list_items(uid), "Meditations").notes] == [note.id]

    assert store.update(uid, note.id, {"source": " Letters "}).source == "Letters"
    assert [n.id for n in find_book(store.list_items(uid), "Letters").notes] == [note.id]
