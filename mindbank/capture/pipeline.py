from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Callable

from pydantic import ValidationError

from mindbank.capture.classifier import classify
from mindbank.core.errors import CaptureBusy, ClassificationError, InvalidInput, InvalidTransition
from mindbank.schemas.capture import BookContext, BookInfo, ClassificationResult, DraftPatch
from mindbank.schemas.items import Draft, ItemBase, QuoteAnalysis, QuoteItem, WordAnalysis, WordItem
from mindbank.util.ids import DRAFT_ID
from mindbank.util.time import now_utc

log = logging.getLogger("mindbank")

Classifier = Callable[[str, BookContext | None], ClassificationResult]
Persist = Callable[[Draft, bool], ItemBase]


class CaptureState(str, enum.Enum):
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    PREVIEWING = "PREVIEWING"


def draft_from_result(result: ClassificationResult) -> Draft:
    common: dict[str, Any] = {
        "id": DRAFT_ID,
        "text": result.cleaned_text,
        "author": result.author,
        "source": result.source,
        "cover_url": result.cover_url,
        "in_quotebook": False,
        "created_at": now_utc(),
    }
    if result.type == "word":
        return WordItem(analysis=result.analysis, **common)
    return QuoteItem(analysis=result.analysis, **common)


class CapturePipeline:
    """One user's in-flight capture: Idle -> Processing -> Previewing -> Idle.

    The classifier runs outside the state lock. Every start bumps a request
    token; a result whose token is no longer current (the capture was
    cancelled, or the pipeline was torn down) is dropped instead of becoming
    a preview.
    """

    def __init__(self, *, classifier: Classifier | None = None, persist: Persist | None = None) -> None:
        self._classify = classifier or classify
        self._persist = persist
        self._lock = threading.Lock()
        self._token = 0

        self.state = CaptureState.IDLE
        self.draft: Draft | None = None
        self.pending_input = ""
        self.last_error: str | None = None

    # -- input buffer --

    def set_input(self, text: str | None) -> str:
        with self._lock:
            self.pending_input = text or ""
            return self.pending_input

    def append_input(self, fragment: str) -> str:
        fragment = (fragment or "").strip()
        with self._lock:
            if fragment:
                self.pending_input = f"{self.pending_input} {fragment}" if self.pending_input else fragment
            return self.pending_input

    # -- transitions --

    def start_capture(self, text: str | None = None, context: BookContext | None = None) -> Draft | None:
        with self._lock:
            if self.state is CaptureState.PROCESSING:
                raise CaptureBusy("A capture is already being processed")
            self._require(CaptureState.IDLE)
            if text is not None:
                self.pending_input = text
            raw = self.pending_input.strip()
            if not raw:
                raise ClassificationError("Nothing to classify")
            self._token += 1
            token = self._token
            self.state = CaptureState.PROCESSING
            self.last_error = None

        try:
            result = self._classify(raw, context)
        except Exception as e:
            with self._lock:
                if token == self._token and self.state is CaptureState.PROCESSING:
                    self.state = CaptureState.IDLE
                    self.last_error = getattr(e, "message", None) or str(e)
            log.warning("Capture failed: %s", str(e))
            raise

        with self._lock:
            if token != self._token or self.state is not CaptureState.PROCESSING:
                log.info("Dropping classification result for a cancelled capture")
                return None
            self.draft = draft_from_result(result)
            self.state = CaptureState.PREVIEWING
            self.pending_input = ""
            return self.draft

    def cancel(self) -> None:
        with self._lock:
            self._require(CaptureState.PROCESSING)
            self._token += 1
            self.state = CaptureState.IDLE

    def edit_draft(self, patch: DraftPatch | dict) -> Draft:
        if not isinstance(patch, DraftPatch):
            try:
                patch = DraftPatch.model_validate(patch)
            except ValidationError as e:
                raise InvalidInput("Draft edit is malformed") from e
        changes = patch.changes()
        if "text" in changes:
            text = (changes["text"] or "").strip()
            if not text:
                raise InvalidInput("Draft text cannot be empty")
            changes["text"] = text
        with self._lock:
            self._require(CaptureState.PREVIEWING)
            draft = self.draft
            if changes.get("analysis") is not None:
                current = draft.analysis.model_dump(by_alias=True) if draft.analysis else {}
                analysis_cls = WordAnalysis if draft.type == "word" else QuoteAnalysis
                try:
                    changes["analysis"] = analysis_cls.model_validate({**current, **changes["analysis"]})
                except ValidationError as e:
                    raise InvalidInput("Draft analysis is malformed") from e
            elif "analysis" in changes:
                changes.pop("analysis")
            self.draft = draft.model_copy(update=changes)
            return self.draft

    def attach_book_metadata(self, book: BookInfo) -> Draft:
        with self._lock:
            self._require(CaptureState.PREVIEWING)
            if self.draft.type != "quote":
                raise InvalidTransition("Book metadata can only be attached to a quote")
            self.draft = self.draft.model_copy(
                update={
                    "source": book.source,
                    "author": book.author,
                    "cover_url": book.cover_url,
                    "book_id": book.book_id,
                }
            )
            return self.draft

    def commit(self, as_favorite: bool = False) -> ItemBase:
        with self._lock:
            self._require(CaptureState.PREVIEWING)
            if self._persist is None:
                raise InvalidTransition("Capture pipeline has no store attached")
            draft = self.draft
            # Favoriting is a quotebook concept; words always land in the lexicon.
            in_quotebook = bool(as_favorite) and draft.type != "word"
            # A persistence failure propagates and leaves the draft in preview.
            item = self._persist(draft, in_quotebook)
            self.draft = None
            self.state = CaptureState.IDLE
            return item

    def discard(self) -> None:
        with self._lock:
            self._require(CaptureState.PREVIEWING)
            self.draft = None
            self.state = CaptureState.IDLE

    def close(self) -> None:
        """Invalidate any in-flight request and drop the draft."""
        with self._lock:
            self._token += 1
            self.draft = None
            self.state = CaptureState.IDLE

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "state": self.state.value,
                "draft": self.draft.model_dump(by_alias=True, mode="json") if self.draft else None,
                "pending_input": self.pending_input,
                "last_error": self.last_error,
            }

    def _require(self, state: CaptureState) -> None:
        if self.state is not state:
            raise InvalidTransition(
                f"Not allowed while {self.state.value.lower()}",
                state=self.state.value,
                required=state.value,
            )
