from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

ITEM_TYPES = ("word", "quote", "note", "insight")


class WordAnalysis(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    definition: str = ""
    part_of_speech: str = Field(default="", alias="partOfSpeech")
    example: str = ""
    tags: list[str] = Field(default_factory=list)


class QuoteAnalysis(BaseModel):
    meaning: str = ""
    tags: list[str] = Field(default_factory=list)


class ItemBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    text: str
    author: str | None = None
    source: str | None = None
    cover_url: str | None = Field(default=None, alias="coverUrl")
    book_id: str | None = Field(default=None, alias="bookId")
    in_quotebook: bool = Field(default=False, alias="inQuotebook")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @property
    def source_key(self) -> str:
        """Trimmed source; empty means unknown."""
        return (self.source or "").strip()


class WordItem(ItemBase):
    type: Literal["word"] = "word"
    analysis: WordAnalysis | None = None


class QuoteItem(ItemBase):
    type: Literal["quote"] = "quote"
    analysis: QuoteAnalysis | None = None


class NoteItem(ItemBase):
    type: Literal["note"] = "note"
    analysis: None = None


class InsightItem(ItemBase):
    type: Literal["insight"] = "insight"
    analysis: QuoteAnalysis | None = None


Item = Annotated[
    WordItem | QuoteItem | NoteItem | InsightItem,
    Field(discriminator="type"),
]

# A capture draft is always a word or a quote.
Draft = WordItem | QuoteItem

_item_adapter: TypeAdapter = TypeAdapter(Item)


def parse_item(data: dict[str, Any]) -> WordItem | QuoteItem | NoteItem | InsightItem:
    return _item_adapter.validate_python(data)


def item_to_wire(item: ItemBase) -> dict[str, Any]:
    return item.model_dump(by_alias=True, mode="json")


class ItemPatch(BaseModel):
    """Fields a persisted item may change after creation."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    author: str | None = None
    source: str | None = None
    cover_url: str | None = Field(default=None, alias="coverUrl")
    book_id: str | None = Field(default=None, alias="bookId")
    in_quotebook: bool | None = Field(default=None, alias="inQuotebook")

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)
