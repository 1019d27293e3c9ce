"""Unit tests for summarization and its fallbacks."""

from __future__ import annotations

import json

import pytest

from dualtrans.engine import Summarizer
from dualtrans.engine.summarizer import leading_sentences
from dualtrans.engine.summarizer import read_time_minutes
from dualtrans.engine.summarizer import split_paragraph_chunks
from dualtrans.errors import FreeBackendError
from dualtrans.errors import ProviderTransientError
from tests.helpers.fakes import FakeChatProvider
from tests.helpers.fakes import ProviderFactoryRecorder

KEYS = {"deepseek": "sk-ds"}

_SUMMARY = json.dumps(
    {
        "summary": "Cats sleep a lot.",
        "keyPoints": ["Cats nap", "Cats dream"],
        "sections": [
            {"title": "Sleep", "summary": "Naps", "startIndex": 0, "endIndex": 40}
        ],
    }
)


class _Translator:
    """Records requested translations and answers ``<lang>:<text>``."""

    def __init__(self, *, fail_on: str | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self._fail_on = fail_on

    async def __call__(self, text: str, target_lang: str, api_keys: dict) -> str:
        self.calls.append((text, target_lang))
        if text == self._fail_on:
            raise FreeBackendError("down")
        return f"{target_lang}:{text}"


def _summarizer(reply=_SUMMARY, *, error=None, translator=None):
    provider = FakeChatProvider(reply=reply, error=error, model="deepseek-chat")
    factory = ProviderFactoryRecorder(provider)
    translator = translator or _Translator()
    return Summarizer(factory, translator), provider, factory, translator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_leading_sentences(self):
        text = "One. Two! Three? Four."
        assert leading_sentences(text) == "One. Two. Three"

    def test_leading_sentences_of_nothing(self):
        assert leading_sentences("...") == "Summary unavailable"

    @pytest.mark.parametrize(
        ("words", "minutes"), [(1, 1), (200, 1), (201, 2), (1000, 5)]
    )
    def test_read_time(self, words, minutes):
        assert read_time_minutes(" ".join(["w"] * words)) == minutes

    def test_chunks_keep_paragraphs_whole(self):
        paragraphs = ["a" * 3000, "b" * 3000, "c" * 100]
        chunks = split_paragraph_chunks("\n\n".join(paragraphs), 5000)
        assert chunks == ["a" * 3000, "b" * 3000 + "\n\n" + "c" * 100]

    def test_oversize_paragraph_is_its_own_chunk(self):
        assert split_paragraph_chunks("x" * 9000, 5000) == ["x" * 9000]


# ---------------------------------------------------------------------------
# summarize_text
# ---------------------------------------------------------------------------


class TestSummarizeText:
    async def test_llm_summary(self):
        summarizer, provider, factory, _ = _summarizer()

        result = await summarizer.summarize_text("Cats sleep. " * 50, KEYS)

        assert result.summary == "Cats sleep a lot."
        assert result.key_points == ["Cats nap", "Cats dream"]
        assert result.sections is None
        assert result.model == "deepseek-chat"
        assert result.estimated_read_time == 1
        assert factory.requested == [("deepseek", "sk-ds")]
        options = provider.calls[0][1]
        assert options.temperature == 0.3
        assert options.max_tokens == 1000

    async def test_sections_on_request(self):
        summarizer, provider, _, _ = _summarizer()

        result = await summarizer.summarize_text("text", KEYS, include_sections=True)

        assert [s.title for s in result.sections] == ["Sleep"]
        assert result.sections[0].end_index == 40
        assert '"sections"' in provider.calls[0][0][0].content

    async def test_max_length_reaches_prompt(self):
        summarizer, provider, _, _ = _summarizer()
        await summarizer.summarize_text("text", KEYS, max_length=120)
        assert "in 120 characters or less" in provider.calls[0][0][0].content

    async def test_input_is_truncated(self):
        summarizer, provider, _, _ = _summarizer()
        await summarizer.summarize_text("x" * 20000, KEYS)
        assert len(provider.calls[0][0][-1].content) == 10000

    async def test_key_points_dropped_on_request(self):
        summarizer, _, _, _ = _summarizer()
        result = await summarizer.summarize_text(
            "text", KEYS, include_key_points=False
        )
        assert result.key_points == []

    async def test_without_keys_uses_leading_sentences(self):
        summarizer, provider, _, _ = _summarizer()

        result = await summarizer.summarize_text("First. Second. Third. Fourth.")

        assert result.summary == "First. Second. Third"
        assert result.key_points == []
        assert result.model is None
        assert provider.calls == []

    @pytest.mark.parametrize(
        "reply",
        [
            "Here is a summary without JSON.",
            json.dumps({"keyPoints": ["no summary"]}),
            json.dumps({"summary": "ok", "keyPoints": "not a list"}),
        ],
    )
    async def test_unusable_answer_falls_back(self, reply):
        summarizer, _, _, _ = _summarizer(reply)
        result = await summarizer.summarize_text("Alpha. Beta.", KEYS)
        assert result.summary == "Alpha. Beta"
        assert result.key_points == []

    async def test_malformed_sections_fall_back(self):
        reply = json.dumps({"summary": "s", "sections": [{"summary": "no title"}]})
        summarizer, _, _, _ = _summarizer(reply)
        result = await summarizer.summarize_text(
            "Alpha.", KEYS, include_sections=True
        )
        assert result.summary == "Alpha"

    async def test_provider_failure_falls_back(self):
        summarizer, _, _, _ = _summarizer(error=ProviderTransientError("503"))
        result = await summarizer.summarize_text("Alpha. Beta.", KEYS)
        assert result.summary == "Alpha. Beta"

    async def test_translation_of_summary_and_points(self):
        summarizer, _, _, translator = _summarizer()

        result = await summarizer.summarize_text("text", KEYS, target_lang="fr")

        assert result.summary_translated == "fr:Cats sleep a lot."
        assert result.key_points_translated == ["fr:Cats nap", "fr:Cats dream"]
        assert len(translator.calls) == 3

    async def test_failed_translation_leaves_field_empty(self):
        summarizer, _, _, _ = _summarizer(translator=_Translator(fail_on="Cats nap"))

        result = await summarizer.summarize_text("text", KEYS, target_lang="fr")

        assert result.summary_translated == "fr:Cats sleep a lot."
        assert result.key_points_translated is None


# ---------------------------------------------------------------------------
# Documents and long content
# ---------------------------------------------------------------------------


class TestSummarizeDocument:
    async def test_document(self):
        summarizer, _, _, _ = _summarizer()
        content = " ".join(["word"] * 5000)

        result = await summarizer.summarize_document(
            "Cats", content, KEYS, target_lang="de"
        )

        assert result.title_translated == "de:Cats"
        assert result.word_count == 5000
        assert result.summary.sections is not None
        # 1500 summary tokens against 6500 for a full translation
        assert result.estimated_savings == "~77% token savings vs full translation"

    async def test_without_target_language(self):
        summarizer, _, _, translator = _summarizer()
        result = await summarizer.summarize_document("Cats", "Short text.", KEYS)
        assert result.title_translated is None
        assert translator.calls == []


class TestProgressiveSummarize:
    async def test_short_content_is_summarized_once(self):
        summarizer, provider, _, _ = _summarizer()
        await summarizer.progressive_summarize("short text", KEYS)
        assert len(provider.calls) == 1

    async def test_long_content_summarizes_chunks_then_summaries(self):
        def reply(messages):
            text = messages[-1].content
            if text.startswith("Section 1:"):
                return json.dumps({"summary": "final", "keyPoints": ["overall"]})
            tag = text[0]
            return json.dumps(
                {"summary": f"part {tag}", "keyPoints": [f"{tag} point", "shared"]}
            )

        summarizer, provider, _, _ = _summarizer(reply)
        content = "\n\n".join(["a" * 4000, "b" * 4000, "c" * 4000])

        result = await summarizer.progressive_summarize(content, KEYS)

        assert len(provider.calls) == 4
        final_prompt = provider.calls[-1][0][-1].content
        assert "Section 2:\npart b" in final_prompt
        assert result.summary == "final"
        assert result.key_points == ["a point", "shared", "b point", "c point"]
        assert result.estimated_read_time == 1

    async def test_merged_key_points_are_capped(self):
        def reply(messages):
            text = messages[-1].content
            points = [f"{text[:1]}{i}" for i in range(5)]
            return json.dumps({"summary": "s", "keyPoints": points})

        summarizer, _, _, _ = _summarizer(reply)
        content = "\n\n".join(["a" * 4000, "b" * 4000])

        result = await summarizer.progressive_summarize(content, KEYS)

        assert len(result.key_points) == 7
