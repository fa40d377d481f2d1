from __future__ import annotations

import logging

from mindbank.bookshelf.aggregator import BookGroup, find_book
from mindbank.capture.classifier import Completer, clean_str, default_completer, extract_json_object, normalize_tags
from mindbank.capture.prompts import INSIGHT_PROMPT
from mindbank.core.errors import BookNotFound, ClassificationError, CompletionError, InvalidInput, NothingToSummarize
from mindbank.library.store import ItemStore
from mindbank.schemas.capture import BookCandidate, BookInfo
from mindbank.schemas.items import InsightItem, ItemBase, NoteItem, QuoteAnalysis

log = logging.getLogger("mindbank")


def require_book(items: list[ItemBase], title: str) -> BookGroup:
    book = find_book(items, title)
    if book is None:
        raise BookNotFound(f"No book named {title!r} on the shelf", title=title)
    return book


def add_note(store: ItemStore, user_id: str, book: BookGroup, text: str) -> ItemBase:
    body = (text or "").strip()
    if not body:
        raise InvalidInput("Note text is empty")
    note = NoteItem(text=body, source=book.title, author=book.author, cover_url=book.cover_url, book_id=book.book_id)
    return store.create(user_id, note)


def build_insight_prompt(book: BookGroup) -> str:
    by = f" by {book.author}" if book.author else ""
    quotes = "\n".join(f"- {q.text}" for q in book.quotes)
    return INSIGHT_PROMPT.format(title=book.title, by=by, quotes=quotes)


def generate_insight(
    store: ItemStore,
    user_id: str,
    book: BookGroup,
    *,
    complete: Completer | None = None,
) -> ItemBase:
    """Summarize a book's quotes into a persisted insight."""

    if not book.quotes:
        raise NothingToSummarize(f"{book.title!r} has no quotes to summarize", title=book.title)

    complete = complete or default_completer()
    try:
        reply = complete(build_insight_prompt(book))
        data = extract_json_object(reply)
    except CompletionError as e:
        raise ClassificationError(e.message) from e
    except ValueError as e:
        raise ClassificationError(f"Unreadable insight: {e}") from e

    summary = clean_str(data.get("summary"))
    if not summary:
        raise ClassificationError("Insight reply has no summary")

    log.info("Generated insight for %r from %s quotes", book.title, book.quote_count)
    insight = InsightItem(
        text=summary,
        analysis=QuoteAnalysis(meaning=clean_str(data.get("meaning")) or "", tags=normalize_tags(data.get("tags"))),
        source=book.title,
        author=book.author,
        cover_url=book.cover_url,
        book_id=book.book_id,
    )
    return store.create(user_id, insight)


def book_info_from_candidate(candidate: BookCandidate) -> BookInfo:
    return BookInfo(
        source=candidate.title,
        author=", ".join(a for a in candidate.authors if a) or None,
        cover_url=candidate.thumbnail_url,
        book_id=candidate.identifier,
    )


def search_books(query: str) -> list[BookCandidate]:
    from mindbank.integrations.google_books import search_volumes

    return search_volumes(query)
