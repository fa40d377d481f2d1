from __future__ import annotations

import pytest

from tests.utils_env import make_store, set_test_env


@pytest.fixture()
def registry(monkeypatch, tmp_path):
    set_test_env(monkeypatch, tmp_path)

    from mindbank.core.db import SessionLocal
    from mindbank.realtime.hub import SubscriptionHub
    from mindbank.schemas.capture import ClassificationResult
    from mindbank.schemas.items import QuoteAnalysis
    from mindbank.state.session import SessionRegistry

    def _classify(text, ctx):
        return ClassificationResult(type="quote", cleaned_text=text, analysis=QuoteAnalysis(meaning="m"))

    hub = SubscriptionHub()
    store = make_store(hub)
    return SessionRegistry(store, hub, SessionLocal, classifier=_classify)


def test_get_without_sign_in_is_an_auth_error(registry):
    from mindbank.core.errors import AuthError

    with pytest.raises(AuthError):
        registry.get("nobody")
    with pytest.raises(AuthError):
        registry.get(None)


def test_sign_in_is_idempotent_and_keeps_identity(registry):
    from mindbank.core.db import SessionLocal
    from mindbank.models.tables import User

    s1 = registry.sign_in("reader-1", "Reader")
    s2 = registry.sign_in("reader-1")
    assert s1 is s2
    assert registry.get("reader-1") is s1

    with SessionLocal() as db:
        user = db.get(User, "reader-1")
        assert user.display_name == "Reader"
        assert user.is_anonymous is False


def test_committed_items_reach_the_session_snapshot(registry):
    from mindbank.library.buckets import Bucket

    s = registry.sign_in()
    s.pipeline.start_capture("Know thyself")
    s.pipeline.commit(as_favorite=True)

    assert [it.text for it in s.snapshot_items()] == ["Know thyself"]
    assert [it.text for it in s.view(Bucket.QUOTEBOOK)] == ["Know thyself"]
    assert s.view(Bucket.INBOX) == []


def test_snapshot_updates_leave_the_draft_alone(registry):
    from mindbank.schemas.items import QuoteItem

    s = registry.sign_in()
    draft = s.pipeline.start_capture("in progress")
    registry.store.create(s.user_id, QuoteItem(text="written elsewhere"))

    assert [it.text for it in s.snapshot_items()] == ["written elsewhere"]
    assert s.pipeline.draft == draft


def test_sign_out_tears_everything_down(registry):
    from mindbank.capture.pipeline import CaptureState
    from mindbank.core.errors import AuthError

    s = registry.sign_in()
    s.dictation.toggle()
    s.pipeline.start_capture("draft")
    assert registry.hub.subscriber_count(s.user_id) == 1

    assert registry.sign_out(s.user_id) is True
    assert registry.hub.subscriber_count(s.user_id) == 0
    assert s.pipeline.state is CaptureState.IDLE
    assert s.pipeline.draft is None
    assert s.dictation.recording is False
    with pytest.raises(AuthError):
        registry.get(s.user_id)
    assert registry.sign_out(s.user_id) is False


def test_socrates_saved_as_favorite_lands_in_quotebook_only(registry):
    import json
    from functools import partial

    from mindbank.bookshelf.aggregator import group_books
    from mindbank.capture.classifier import classify
    from mindbank.library.buckets import Bucket
    from mindbank.state.session import SessionRegistry
    from tests.utils_env import fake_completer

    reply = json.dumps(
        {
            "type": "quote",
            "cleaned_text": "The unexamined life is not worth living.",
            "meaning": "Reflection gives life its value.",
            "author": "Socrates",
            "source": None,
            "tags": ["philosophy", "life", "reflection"],
        }
    )
    socratic = SessionRegistry(
        registry.store,
        registry.hub,
        registry._db,
        classifier=partial(classify, complete=fake_completer(reply)),
    )
    s = socratic.sign_in()
    draft = s.pipeline.start_capture("The unexamined life is not worth living by Socrates")
    assert draft.type == "quote"
    assert draft.text == "The unexamined life is not worth living."
    assert draft.author == "Socrates"
    assert draft.source is None

    s.pipeline.commit(as_favorite=True)
    assert [it.author for it in s.view(Bucket.QUOTEBOOK)] == ["Socrates"]
    assert s.view(Bucket.INBOX) == []
    assert s.view(Bucket.BOOKSHELF) == []
    assert group_books(s.snapshot_items()) == []
