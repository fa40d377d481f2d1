from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Iterable, TypeVar

from mindbank.schemas.items import ItemBase

T = TypeVar("T", bound=ItemBase)

BOOKSHELF_ONLY_TYPES = frozenset({"note", "insight"})
BOOKSHELF_TYPES = frozenset({"quote", "note", "insight"})


class Bucket(str, enum.Enum):
    INBOX = "inbox"
    QUOTEBOOK = "quotebook"
    LEXICON = "lexicon"
    BOOKSHELF = "bookshelf"


def in_inbox(item: ItemBase) -> bool:
    return item.type != "word" and not item.in_quotebook and item.type not in BOOKSHELF_ONLY_TYPES


def in_quotebook(item: ItemBase) -> bool:
    return item.in_quotebook is True


def in_lexicon(item: ItemBase) -> bool:
    return item.type == "word"


def on_bookshelf(item: ItemBase) -> bool:
    return bool(item.source_key) and item.type in BOOKSHELF_TYPES


PREDICATES = {
    Bucket.INBOX: in_inbox,
    Bucket.QUOTEBOOK: in_quotebook,
    Bucket.LEXICON: in_lexicon,
    Bucket.BOOKSHELF: on_bookshelf,
}


def buckets_for(item: ItemBase) -> frozenset[Bucket]:
    """Every bucket whose predicate holds. Quotebook and Bookshelf may overlap."""
    return frozenset(b for b, pred in PREDICATES.items() if pred(item))


def home_bucket(item: ItemBase) -> Bucket:
    """The one collection that claims an item."""
    if item.type == "word":
        return Bucket.LEXICON
    if item.in_quotebook:
        return Bucket.QUOTEBOOK
    if item.type in BOOKSHELF_ONLY_TYPES:
        return Bucket.BOOKSHELF
    return Bucket.INBOX


def filter_bucket(items: Iterable[T], bucket: Bucket | str) -> list[T]:
    pred = PREDICATES[Bucket(bucket)]
    return [it for it in items if pred(it)]


def can_favorite(item: ItemBase) -> bool:
    return item.type != "word"


def sort_newest_first(items: Iterable[T]) -> list[T]:
    return sorted(items, key=_sort_key, reverse=True)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _sort_key(item: ItemBase) -> datetime:
    ts = item.created_at
    if ts is None:
        return _EPOCH
    # SQLite hands back naive datetimes; both kinds are UTC here.
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts
