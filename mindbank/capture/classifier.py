from __future__ import annotations

import json
from typing import Any, Callable

from mindbank.capture.prompts import CLASSIFICATION_PROMPT, CONTEXT_HINT
from mindbank.core.errors import ClassificationError, CompletionError
from mindbank.schemas.capture import BookContext, ClassificationResult
from mindbank.schemas.items import QuoteAnalysis, WordAnalysis

Completer = Callable[[str], str]

MAX_TAGS = 3
_EMPTY_MARKERS = {"", "null", "none", "unknown", "n/a"}


def default_completer() -> Completer:
    from mindbank.integrations.gemini import generate_text

    return generate_text


def _first_object_span(text: str) -> str | None:
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_str = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_str:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def extract_json_object(reply: str) -> dict[str, Any]:
    """Parse the first top-level `{...}` object in a model reply.

    Prose before and after the object is ignored. Raises ValueError when
    there is no object or it does not parse.
    """

    span = _first_object_span(reply or "")
    if span is None:
        raise ValueError("no JSON object in reply")
    data = json.loads(span)
    if not isinstance(data, dict):
        raise ValueError("reply JSON is not an object")
    return data


def clean_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    if s.lower() in _EMPTY_MARKERS:
        return None
    return s


def normalize_tags(raw: Any) -> list[str]:
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, list):
        return []
    out: list[str] = []
    for t in raw:
        tag = str(t).strip().lstrip("#").lower()
        if tag and tag not in out:
            out.append(tag)
    return out[:MAX_TAGS]


def build_classification_prompt(text: str, context: BookContext | None = None) -> str:
    hint = ""
    if context is not None:
        by = f" by {context.author}" if context.author else ""
        hint = CONTEXT_HINT.format(title=context.title, by=by)
    return CLASSIFICATION_PROMPT.format(text=json.dumps(text, ensure_ascii=False), context=hint)


def classify(
    raw_text: str,
    context: BookContext | None = None,
    *,
    complete: Completer | None = None,
) -> ClassificationResult:
    text = (raw_text or "").strip()
    if not text:
        raise ClassificationError("Nothing to classify")

    complete = complete or default_completer()
    try:
        reply = complete(build_classification_prompt(text, context))
    except CompletionError as e:
        raise ClassificationError(e.message) from e

    try:
        data = extract_json_object(reply)
    except ValueError as e:
        raise ClassificationError(f"Unreadable classification: {e}") from e

    return to_result(text, data, context)


def to_result(text: str, data: dict[str, Any], context: BookContext | None = None) -> ClassificationResult:
    kind = str(data.get("type") or "").strip().lower()
    if kind not in ("word", "quote"):
        raise ClassificationError(f"Unexpected classification type: {kind or 'missing'}")

    tags = normalize_tags(data.get("tags"))
    analysis: WordAnalysis | QuoteAnalysis
    if kind == "word":
        analysis = WordAnalysis(
            definition=clean_str(data.get("definition")) or "",
            part_of_speech=clean_str(data.get("partOfSpeech")) or "",
            example=clean_str(data.get("example")) or "",
            tags=tags,
        )
    else:
        analysis = QuoteAnalysis(meaning=clean_str(data.get("meaning")) or "", tags=tags)

    author = clean_str(data.get("author"))
    source = clean_str(data.get("source"))
    cover_url = None
    # The book the user is reading wins over whatever the model inferred.
    if context is not None:
        author = clean_str(context.author)
        source = clean_str(context.title)
        cover_url = context.cover_url

    return ClassificationResult(
        type=kind,
        cleaned_text=clean_str(data.get("cleaned_text")) or text,
        author=author,
        source=source,
        cover_url=cover_url,
        analysis=analysis,
        raw=data,
    )
