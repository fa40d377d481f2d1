from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from mindbank.library.buckets import on_bookshelf
from mindbank.schemas.items import ItemBase


@dataclass
class BookGroup:
    """A virtual book: every quote, note and insight sharing one source.

    Author and cover come from the first item seen for the source; later
    items with different metadata do not override them.
    """

    title: str
    author: str | None = None
    cover_url: str | None = None
    book_id: str | None = None
    quotes: list[ItemBase] = field(default_factory=list)
    notes: list[ItemBase] = field(default_factory=list)
    insights: list[ItemBase] = field(default_factory=list)

    @property
    def quote_count(self) -> int:
        return len(self.quotes)

    def summary(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "coverUrl": self.cover_url,
            "bookId": self.book_id,
            "quoteCount": self.quote_count,
            "noteCount": len(self.notes),
            "insightCount": len(self.insights),
        }

    def detail(self) -> dict[str, Any]:
        out = self.summary()
        for key in ("quotes", "notes", "insights"):
            out[key] = [it.model_dump(by_alias=True, mode="json") for it in getattr(self, key)]
        return out


def group_books(items: Iterable[ItemBase]) -> list[BookGroup]:
    groups: dict[str, BookGroup] = {}
    for it in items:
        if not on_bookshelf(it):
            continue
        key = it.source_key
        group = groups.get(key)
        if group is None:
            group = BookGroup(title=key, author=it.author, cover_url=it.cover_url, book_id=it.book_id)
            groups[key] = group
        if it.type == "quote":
            group.quotes.append(it)
        elif it.type == "note":
            group.notes.append(it)
        elif it.type == "insight":
            group.insights.append(it)
    # sorted() is stable, so equal counts keep encounter order.
    return sorted(groups.values(), key=lambda g: g.quote_count, reverse=True)


def find_book(items: Iterable[ItemBase], title: str) -> BookGroup | None:
    key = (title or "").strip()
    if not key:
        return None
    for group in group_books(items):
        if group.title == key:
            return group
    return None
