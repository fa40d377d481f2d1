from __future__ import annotations

from typing import Any


class MindbankError(Exception):
    """Base for every failure that is reported to the user as a notification."""

    code = "MINDBANK_ERROR"
    status_code = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.extra}


class CompletionError(MindbankError):
    code = "COMPLETION_FAILED"
    status_code = 502


class ClassificationError(MindbankError):
    code = "CLASSIFICATION_FAILED"
    status_code = 502


class SynthesisError(MindbankError):
    code = "SYNTHESIS_FAILED"
    status_code = 502


class TranslationError(MindbankError):
    code = "TRANSLATION_FAILED"
    status_code = 502


class MetadataSearchError(MindbankError):
    code = "METADATA_SEARCH_FAILED"
    status_code = 502


class PersistenceError(MindbankError):
    code = "PERSISTENCE_FAILED"
    status_code = 500


class ItemNotFound(PersistenceError):
    code = "ITEM_NOT_FOUND"
    status_code = 404


class BulkClearError(PersistenceError):
    code = "BULK_CLEAR_PARTIAL"
    status_code = 500


class AuthError(MindbankError):
    code = "AUTH_REQUIRED"
    status_code = 401


class InvalidTransition(MindbankError):
    code = "INVALID_TRANSITION"
    status_code = 409


class CaptureBusy(InvalidTransition):
    code = "CAPTURE_BUSY"


class NothingToSummarize(MindbankError):
    code = "NOTHING_TO_SUMMARIZE"
    status_code = 409


class BookNotFound(MindbankError):
    code = "BOOK_NOT_FOUND"
    status_code = 404


class ConfirmationRequired(MindbankError):
    code = "CONFIRMATION_REQUIRED"
    status_code = 409


class InvalidInput(MindbankError):
    code = "INVALID_INPUT"
    status_code = 400
