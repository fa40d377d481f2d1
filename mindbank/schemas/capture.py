from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from mindbank.schemas.items import QuoteAnalysis, WordAnalysis


class BookContext(BaseModel):
    """Book the user is capturing from; authoritative over model attribution."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    author: str | None = None
    cover_url: str | None = Field(default=None, alias="coverUrl")


class BookInfo(BaseModel):
    """Canonical book metadata as stored on an item."""

    model_config = ConfigDict(populate_by_name=True)

    source: str
    author: str | None = None
    cover_url: str | None = Field(default=None, alias="coverUrl")
    book_id: str | None = Field(default=None, alias="bookId")


class BookCandidate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    authors: list[str] = Field(default_factory=list)
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")
    identifier: str | None = None


class ClassificationResult(BaseModel):
    type: Literal["word", "quote"]
    cleaned_text: str
    author: str | None = None
    source: str | None = None
    cover_url: str | None = None
    analysis: WordAnalysis | QuoteAnalysis
    raw: dict[str, Any] = Field(default_factory=dict)


class DraftPatch(BaseModel):
    """User edits to a draft. `type` and `id` are not editable and are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    text: str | None = None
    author: str | None = None
    source: str | None = None
    cover_url: str | None = Field(default=None, alias="coverUrl")
    book_id: str | None = Field(default=None, alias="bookId")
    analysis: dict[str, Any] | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class TranscriptFragment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: str
    is_final: bool = Field(default=False, alias="isFinal")
