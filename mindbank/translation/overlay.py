from __future__ import annotations

import logging
import threading

from mindbank.capture.classifier import Completer, clean_str, default_completer, extract_json_object
from mindbank.capture.prompts import TRANSLATE_TEXT_PROMPT, TRANSLATE_WORD_PROMPT
from mindbank.core.errors import CompletionError, TranslationError
from mindbank.schemas.items import ItemBase
from mindbank.schemas.translation import TextTranslation, Translation, WordTranslation

log = logging.getLogger("mindbank")


def translate_item(item: ItemBase, language: str, *, complete: Completer | None = None) -> Translation:
    """Translate one item. Always a fresh call; nothing is cached or stored."""

    lang = (language or "").strip()
    if not lang:
        raise TranslationError("Target language is empty")

    if item.type == "word":
        definition = item.analysis.definition if item.analysis is not None else ""
        prompt = TRANSLATE_WORD_PROMPT.format(word=item.text, lang=lang, definition=definition or "(none)")
    else:
        prompt = TRANSLATE_TEXT_PROMPT.format(lang=lang, text=item.text)

    complete = complete or default_completer()
    try:
        data = extract_json_object(complete(prompt))
    except CompletionError as e:
        raise TranslationError(e.message, item_id=item.id) from e
    except ValueError as e:
        raise TranslationError(f"Unreadable translation: {e}", item_id=item.id) from e

    if item.type == "word":
        word = clean_str(data.get("word"))
        if not word:
            raise TranslationError("Translation reply has no word", item_id=item.id)
        return WordTranslation(word=word, definition=clean_str(data.get("definition")) or "", lang=lang)

    text = clean_str(data.get("text"))
    if not text:
        raise TranslationError("Translation reply has no text", item_id=item.id)
    return TextTranslation(text=text, lang=lang)


class TranslationOverlay:
    """Transient per-item translations shown over the original text.

    Only the newest request for an item may land; an older one that
    finishes later is dropped. A failed request leaves whatever was shown
    before in place.
    """

    def __init__(self, *, complete: Completer | None = None) -> None:
        self._complete = complete
        self._current: dict[str, Translation] = {}
        self._tokens: dict[str, int] = {}
        self._lock = threading.Lock()

    def request(self, item: ItemBase, language: str) -> Translation | None:
        key = item.id or ""
        with self._lock:
            token = self._tokens.get(key, 0) + 1
            self._tokens[key] = token

        try:
            result = translate_item(item, language, complete=self._complete)
        except TranslationError as e:
            log.warning("Translation failed for %s: %s", key, e.message)
            raise

        with self._lock:
            if self._tokens.get(key) != token:
                log.info("Dropping superseded translation for %s", key)
                return None
            self._current[key] = result
            return result

    def get(self, item_id: str) -> Translation | None:
        with self._lock:
            return self._current.get(item_id)

    def clear(self, item_id: str) -> None:
        with self._lock:
            self._current.pop(item_id, None)
            # Anything still in flight for this item no longer has a place to land.
            self._tokens[item_id] = self._tokens.get(item_id, 0) + 1

    def snapshot(self) -> dict[str, dict]:
        with self._lock:
            return {k: v.model_dump() for k, v in self._current.items()}
