from __future__ import annotations

from datetime import datetime, timedelta, timezone

from mindbank.library.buckets import Bucket, buckets_for, filter_bucket, home_bucket, sort_newest_first
from mindbank.library.share import share_text
from mindbank.schemas.items import InsightItem, NoteItem, QuoteAnalysis, QuoteItem, WordAnalysis, WordItem, parse_item


def _items():
    return [
        WordItem(id="w", text="ephemeral"),
        QuoteItem(id="q-inbox", text="a"),
        QuoteItem(id="q-fav", text="b", in_quotebook=True),
        QuoteItem(id="q-book", text="c", source="Meditations"),
        QuoteItem(id="q-fav-book", text="d", source="Meditations", in_quotebook=True),
        NoteItem(id="n", text="note", source="Meditations"),
        InsightItem(id="i", text="insight", source="Meditations"),
    ]


def test_inbox_quotebook_lexicon_are_mutually_exclusive():
    for it in _items():
        main = buckets_for(it) & {Bucket.INBOX, Bucket.QUOTEBOOK, Bucket.LEXICON}
        assert len(main) <= 1, it.id


def test_home_bucket_claims_exactly_one():
    homes = {it.id: home_bucket(it) for it in _items()}
    assert homes == {
        "w": Bucket.LEXICON,
        "q-inbox": Bucket.INBOX,
        "q-fav": Bucket.QUOTEBOOK,
        "q-book": Bucket.INBOX,
        "q-fav-book": Bucket.QUOTEBOOK,
        "n": Bucket.BOOKSHELF,
        "i": Bucket.BOOKSHELF,
    }


def test_filter_bucket_preserves_order():
    items = _items()
    assert [it.id for it in filter_bucket(items, "inbox")] == ["q-inbox", "q-book"]
    assert [it.id for it in filter_bucket(items, Bucket.QUOTEBOOK)] == ["q-fav", "q-fav-book"]
    assert [it.id for it in filter_bucket(items, Bucket.BOOKSHELF)] == ["q-book", "q-fav-book", "n", "i"]


def test_blank_source_is_not_a_book():
    assert Bucket.BOOKSHELF not in buckets_for(QuoteItem(text="x", source="   "))


def test_sort_newest_first_mixes_naive_and_aware():
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    a = QuoteItem(id="a", text="a", created_at=base)
    b = QuoteItem(id="b", text="b", created_at=(base + timedelta(seconds=1)).replace(tzinfo=None))
    c = QuoteItem(id="c", text="c")
    assert [it.id for it in sort_newest_first([a, c, b])] == ["b", "a", "c"]


def test_parse_item_accepts_camel_case():
    it = parse_item(
        {
            "type": "word",
            "text": "ephemeral",
            "analysis": {"definition": "d", "partOfSpeech": "adjective"},
            "inQuotebook": False,
            "coverUrl": None,
        }
    )
    assert isinstance(it, WordItem)
    assert it.analysis.part_of_speech == "adjective"


def test_share_text_quote_and_word():
    q = QuoteItem(text="The unexamined life is not worth living", author="Socrates", source="Apology")
    assert share_text(q) == '"The unexamined life is not worth living"\n— Socrates, Apology'

    anonymous = QuoteItem(text="Be kind", analysis=QuoteAnalysis(meaning="m"))
    assert share_text(anonymous) == '"Be kind"'

    w = WordItem(
        text="ephemeral",
        analysis=WordAnalysis(definition="lasting a very short time", part_of_speech="adjective", example="ephemeral fame"),
    )
    assert share_text(w) == 'ephemeral (adjective)\nlasting a very short time\n"ephemeral fame"'
