from __future__ import annotations

from pydantic import BaseModel


class TextTranslation(BaseModel):
    text: str
    lang: str


class WordTranslation(BaseModel):
    word: str
    definition: str
    lang: str


Translation = TextTranslation | WordTranslation
