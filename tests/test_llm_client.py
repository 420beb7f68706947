"""Tests for the model boundary: reply parsing and call errors."""

import pytest

from intake.nlp.llm_client import (
    ModelCallError,
    ModelResponseError,
    ModelUnavailableError,
    complete_json,
    parse_json_object,
)
from tests.fakes import FakeChat


class TestParseJsonObject:
    def test_plain_object(self):
        assert parse_json_object('{"category": "family_law"}') == {"category": "family_law"}

    def test_code_fence(self):
        text = 'Here you go:\n```json\n{"category": "criminal_law", "confidence": "high"}\n```'
        assert parse_json_object(text)["category"] == "criminal_law"

    def test_comments_removed(self):
        text = '{\n  "a": 1, // first\n  /* block */ "b": 2\n}'
        assert parse_json_object(text) == {"a": 1, "b": 2}

    def test_url_inside_string_kept(self):
        text = '{"landing_page_url": "https://example.com/injury"}'
        assert parse_json_object(text)["landing_page_url"] == "https://example.com/injury"

    def test_prose_around_object(self):
        text = 'Sure! {"extractedFields": {"first_name": "Ana"}} Let me know if you need more.'
        assert parse_json_object(text) == {"extractedFields": {"first_name": "Ana"}}

    def test_brace_inside_string(self):
        assert parse_json_object('{"describe": "he said } then left"}')["describe"] == "he said } then left"

    def test_trailing_comma(self):
        assert parse_json_object('{"a": 1, "b": [1, 2,],}') == {"a": 1, "b": [1, 2]}

    @pytest.mark.parametrize("text", ["", "   ", "no json here", "[1, 2, 3]", '{"a": '])
    def test_unusable(self, text):
        with pytest.raises(ModelResponseError):
            parse_json_object(text)


class TestCompleteJson:
    def test_returns_parsed_reply(self):
        chat = FakeChat(extract='{"extractedFields": {}}')
        assert complete_json("You extract things", "hello", chat=chat) == {"extractedFields": {}}

    def test_history_order(self):
        seen = []

        class Recorder:
            def invoke(self, messages):
                seen.extend(messages)
                return type("R", (), {"content": "{}"})()

        history = [{"role": "user", "text": "hi"}, {"role": "assistant", "text": "hello"}]
        complete_json("system", "now", history=history, chat=Recorder())
        assert [m.content for m in seen] == ["system", "hi", "hello", "now"]
        assert [m.type for m in seen] == ["system", "human", "ai", "human"]

    def test_call_failure(self):
        with pytest.raises(ModelCallError):
            complete_json("system", "x", chat=FakeChat(error=ConnectionError("refused")))

    def test_bad_reply(self):
        with pytest.raises(ModelResponseError):
            complete_json("You extract", "x", chat=FakeChat(extract="I cannot help with that."))

    def test_unconfigured(self, monkeypatch):
        from intake.nlp import llm_client

        monkeypatch.setattr(llm_client, "_chat", None)
        monkeypatch.setattr(llm_client, "_chat_checked", True)
        with pytest.raises(ModelUnavailableError):
            complete_json("system", "x")
