"""Tests for the structured insight generator."""

from __future__ import annotations

import json

import pytest
from fakes import FakeBackend, card, reply

from secondbrain.ai.backend import NullBackend
from secondbrain.ai.generator import (
    FALLBACK_SECTION,
    InsightGenerator,
    fallback_result,
    parse_response,
)


def _assert_fallback(result):
    assert result.fallback is True
    assert len(result.insights) == 1
    section = result.insights[0]
    assert section.title == FALLBACK_SECTION.title
    assert section.bullets == FALLBACK_SECTION.bullets
    assert section.takeaway == FALLBACK_SECTION.takeaway
    assert section.tags == ["unsorted"]


# ------------------------------------------------------------------
# parse_response
# ------------------------------------------------------------------


def test_parse_multi_section_reply():
    result = parse_response(reply(card("Sky"), card("Sea", excerpt="The sea is wide."), summary="Nature."))
    assert [s.title for s in result.insights] == ["Sky", "Sea"]
    assert result.summary == "Nature."
    assert result.insights[1].source_excerpt == "The sea is wide."
    assert result.fallback is False


def test_parse_bare_card():
    result = parse_response(json.dumps(card("Sky")))
    assert [s.title for s in result.insights] == ["Sky"]
    assert result.summary is None


def test_parse_clips_bullets_and_tags():
    data = card("Sky", bullets=[f"b{n}" for n in range(10)], tags=[f"t{n}" for n in range(15)])
    section = parse_response(json.dumps(data)).insights[0]
    assert len(section.bullets) == 7
    assert len(section.tags) == 10


def test_parse_strips_whitespace():
    data = card("  Sky  ", bullets=[" a ", "b", "c"], takeaway=" blue ")
    section = parse_response(json.dumps(data)).insights[0]
    assert section.title == "Sky"
    assert section.bullets[0] == "a"
    assert section.takeaway == "blue"


def test_parse_missing_tags_defaults_to_empty():
    data = card("Sky")
    del data["tags"]
    assert parse_response(json.dumps(data)).insights[0].tags == []


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps({"insights": []}),
        json.dumps({"summary": "only"}),
        json.dumps(card("Sky", bullets=["one", "two"])),
        json.dumps({**card("Sky"), "title": "   "}),
        json.dumps({**card("Sky"), "takeaway": None}),
        json.dumps([card("Sky")]),
    ],
)
def test_parse_invalid_raises_value_error(raw):
    with pytest.raises(ValueError):
        parse_response(raw)


# ------------------------------------------------------------------
# InsightGenerator
# ------------------------------------------------------------------


def test_generate_returns_sections():
    backend = FakeBackend(replies=[reply(card("Sky"), card("Sea"))])
    result = InsightGenerator(backend).generate("The sky is blue. The sea is wide.")
    assert [s.title for s in result.insights] == ["Sky", "Sea"]
    assert result.fallback is False


def test_generate_sends_content_and_hint():
    backend = FakeBackend(replies=[reply(card("Sky"))])
    InsightGenerator(backend).generate("The sky is blue.", hint="weather")
    assert "The sky is blue." in backend.prompts[0]
    assert "weather" in backend.prompts[0]


def test_generate_truncates_input():
    backend = FakeBackend(replies=[reply(card("Sky"))])
    InsightGenerator(backend, max_input_chars=10).generate("abcdefghijKLMNOP")
    assert "abcdefghij" in backend.prompts[0]
    assert "KLMNOP" not in backend.prompts[0]


@pytest.mark.parametrize("text", ["", "   \n  "])
def test_generate_blank_input_is_fallback(text):
    backend = FakeBackend(replies=[reply(card("Sky"))])
    _assert_fallback(InsightGenerator(backend).generate(text))
    assert backend.prompts == []


def test_generate_backend_error_is_fallback():
    backend = FakeBackend(replies=[RuntimeError("provider down")])
    _assert_fallback(InsightGenerator(backend).generate("The sky is blue."))


def test_generate_empty_reply_is_fallback():
    _assert_fallback(InsightGenerator(FakeBackend(replies=[""])).generate("The sky is blue."))


def test_generate_malformed_reply_is_fallback():
    backend = FakeBackend(replies=['{"insights": [{"title": "x"'])
    _assert_fallback(InsightGenerator(backend).generate("The sky is blue."))


def test_generate_too_few_bullets_is_fallback():
    backend = FakeBackend(replies=[reply(card("Sky", bullets=["only one"]))])
    _assert_fallback(InsightGenerator(backend).generate("The sky is blue."))


def test_generate_offline_uses_local_result():
    result = InsightGenerator(NullBackend()).generate("Meeting notes\nDiscussed the roadmap.")
    assert result.fallback is True
    section = result.insights[0]
    assert section.title == "Meeting notes"
    assert section.takeaway.startswith("Meeting notes")
    assert section.bullets == FALLBACK_SECTION.bullets


def test_fallback_result_is_a_fresh_copy():
    first = fallback_result()
    first.insights[0].tags.append("mutated")
    assert fallback_result().insights[0].tags == ["unsorted"]
