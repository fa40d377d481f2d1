from __future__ import annotations

import json

import pytest

from mindbank.capture.classifier import classify, extract_json_object, normalize_tags
from mindbank.core.errors import ClassificationError, CompletionError
from mindbank.schemas.capture import BookContext
from tests.utils_env import fake_completer


def test_extract_json_object_tolerates_prose_around_it():
    reply = 'Sure! Here you go:\n```json\n{"type": "word", "tags": ["a"], "note": "has {braces} inside"}\n```\nHope that helps.'
    data = extract_json_object(reply)
    assert data["type"] == "word"
    assert data["note"] == "has {braces} inside"


def test_extract_json_object_takes_first_of_two():
    data = extract_json_object('{"type": "quote"} and later {"type": "word"}')
    assert data == {"type": "quote"}


@pytest.mark.parametrize("reply", ["no json here", "{not valid json}", '{"open": "never closed"'])
def test_extract_json_object_rejects(reply: str):
    with pytest.raises(ValueError):
        extract_json_object(reply)


def test_normalize_tags_lowercases_dedupes_and_caps():
    assert normalize_tags(["#Stoicism", "stoicism", " Death ", "time", "extra"]) == ["stoicism", "death", "time"]
    assert normalize_tags("A, b") == ["a", "b"]
    assert normalize_tags(None) == []


def test_classify_word():
    reply = json.dumps(
        {
            "type": "word",
            "cleaned_text": "ephemeral",
            "definition": "lasting a very short time",
            "partOfSpeech": "adjective",
            "example": "ephemeral fame",
            "author": None,
            "source": "null",
            "tags": ["Time", "brevity"],
        }
    )
    res = classify("  ephemeral ", complete=fake_completer(reply))
    assert res.type == "word"
    assert res.cleaned_text == "ephemeral"
    assert res.analysis.part_of_speech == "adjective"
    assert res.analysis.tags == ["time", "brevity"]
    assert res.author is None
    assert res.source is None


def test_classify_strips_spoken_attribution_socrates():
    calls: list[str] = []
    reply = (
        "Here is the analysis.\n"
        + json.dumps(
            {
                "type": "quote",
                "cleaned_text": "The unexamined life is not worth living",
                "meaning": "Reflection gives life its value.",
                "author": "Socrates",
                "source": "Apology",
                "tags": ["philosophy", "reflection", "life"],
            }
        )
    )
    res = classify(
        "The unexamined life is not worth living by Socrates",
        complete=fake_completer(reply, calls),
    )
    assert res.type == "quote"
    assert res.cleaned_text == "The unexamined life is not worth living"
    assert res.author == "Socrates"
    assert res.source == "Apology"
    assert res.analysis.meaning
    assert len(calls) == 1
    assert "by Socrates" in calls[0]


def test_classify_book_context_overrides_model_attribution():
    reply = json.dumps({"type": "quote", "cleaned_text": "x", "meaning": "m", "author": "Wrong", "source": "Wrong Book"})
    ctx = BookContext(title="Meditations", author="Marcus Aurelius", cover_url="https://img/cover.jpg")
    calls: list[str] = []
    res = classify("x", ctx, complete=fake_completer(reply, calls))
    assert res.author == "Marcus Aurelius"
    assert res.source == "Meditations"
    assert res.cover_url == "https://img/cover.jpg"
    assert "Meditations" in calls[0]


def test_classify_cleaned_text_falls_back_to_input():
    res = classify("carpe diem", complete=fake_completer('{"type": "quote", "meaning": "seize the day"}'))
    assert res.cleaned_text == "carpe diem"


def test_classify_rejects_unknown_type():
    with pytest.raises(ClassificationError):
        classify("hello", complete=fake_completer('{"type": "poem"}'))


def test_classify_rejects_reply_without_object():
    with pytest.raises(ClassificationError):
        classify("hello", complete=fake_completer("I cannot help with that."))


def test_classify_empty_input_never_calls_model():
    calls: list[str] = []
    with pytest.raises(ClassificationError):
        classify("   ", complete=fake_completer("{}", calls))
    assert calls == []


def test_classify_wraps_completion_failure():
    def _boom(prompt: str) -> str:
        raise CompletionError("Language model timed out")

    with pytest.raises(ClassificationError) as ei:
        classify("hello", complete=_boom)
    assert "timed out" in ei.value.message
