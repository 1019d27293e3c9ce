"""Unit tests for page context detection and analysis."""

from __future__ import annotations

import json

import pytest

from dualtrans.engine import ContextAnalyzer
from dualtrans.engine import quick_context_detection
from dualtrans.models import ContextType
from dualtrans.models import Tone
from tests.helpers.fakes import FakeCache
from tests.helpers.fakes import FakeChatProvider
from tests.helpers.fakes import ProviderFactoryRecorder

KEYS = {"claude": "sk-ant"}

_ANALYSIS = json.dumps(
    {
        "type": "technical",
        "domain": "machine learning",
        "tone": "formal",
        "terminologyHints": ["gradient", "tensor"],
        "confidence": 0.9,
    }
)


class TestQuickContextDetection:
    @pytest.mark.parametrize(
        ("url", "title", "expected"),
        [
            ("https://github.com/x/y", None, ContextType.technical),
            ("https://www.bbc.co.uk/news/world", None, ContextType.news),
            ("https://arxiv.org/abs/1234", None, ContextType.academic),
            ("https://example.com/privacy", None, ContextType.legal),
            (None, "Heart disease overview", ContextType.medical),
            ("https://example.com/recipes", "Pancakes", ContextType.general),
        ],
    )
    def test_keyword_rules(self, url, title, expected):
        context = quick_context_detection(url, title)
        assert context.type is expected

    def test_general_is_neutral(self):
        context = quick_context_detection("https://example.com", None)
        assert context.tone is Tone.neutral

    def test_matches_are_formal_and_keep_url(self):
        context = quick_context_detection("https://docs.python.org", "Tutorial")
        assert context.tone is Tone.formal
        assert context.url == "https://docs.python.org"
        assert context.title == "Tutorial"

    def test_case_insensitive(self):
        assert quick_context_detection(None, "BREAKING NEWS").type is ContextType.news


class TestContextAnalyzer:
    async def test_without_keys_uses_heuristic(self):
        provider = FakeChatProvider(reply=_ANALYSIS)
        analyzer = ContextAnalyzer(ProviderFactoryRecorder(provider))

        analysis = await analyzer.analyze("body", {}, url="https://github.com/a")

        assert analysis.context.type is ContextType.technical
        assert analysis.confidence == 0.5
        assert provider.calls == []

    async def test_llm_analysis(self):
        provider = FakeChatProvider(reply=f"Here you go:\n{_ANALYSIS}\nThanks")
        factory = ProviderFactoryRecorder(provider)
        analyzer = ContextAnalyzer(factory)

        analysis = await analyzer.analyze(
            "Backpropagation computes gradients.", KEYS, url="https://x.io", title="ML"
        )

        assert analysis.context.type is ContextType.technical
        assert analysis.context.domain == "machine learning"
        assert analysis.context.terminology_hints == ["gradient", "tensor"]
        assert analysis.context.url == "https://x.io"
        assert analysis.confidence == 0.9
        assert factory.requested == [("claude", "sk-ant")]
        options = provider.calls[0][1]
        assert options.temperature == 0.1
        assert options.max_tokens == 500

    async def test_content_preview_is_truncated(self):
        provider = FakeChatProvider(reply=_ANALYSIS)
        analyzer = ContextAnalyzer(ProviderFactoryRecorder(provider))

        await analyzer.analyze("x" * 10_000, KEYS)

        user = provider.calls[0][0][-1].content
        assert user.count("x") == 3000

    @pytest.mark.parametrize(
        "reply",
        [
            "I cannot classify this page.",
            "{not json}",
            json.dumps({"type": "poetry", "tone": "formal"}),
            json.dumps({"type": "news", "confidence": [1]}),
            json.dumps({"type": "news", "confidence": {"value": 1}}),
        ],
    )
    async def test_unusable_answer_yields_general(self, reply):
        analyzer = ContextAnalyzer(
            ProviderFactoryRecorder(FakeChatProvider(reply=reply))
        )

        analysis = await analyzer.analyze("body", KEYS)

        assert analysis.context.type is ContextType.general
        assert analysis.confidence == 0.0

    async def test_confidence_is_clamped(self):
        reply = json.dumps({"type": "news", "confidence": 7})
        analyzer = ContextAnalyzer(
            ProviderFactoryRecorder(FakeChatProvider(reply=reply))
        )
        analysis = await analyzer.analyze("body", KEYS)
        assert analysis.confidence == 1.0

    async def test_result_cached_per_url(self):
        provider = FakeChatProvider(reply=_ANALYSIS)
        cache = FakeCache()
        analyzer = ContextAnalyzer(ProviderFactoryRecorder(provider), cache)

        first = await analyzer.analyze("body", KEYS, url="https://x.io/a")
        second = await analyzer.analyze("other body", KEYS, url="https://x.io/a")

        assert second == first
        assert len(provider.calls) == 1
        assert len(cache.json_entries) == 1

    async def test_no_cache_without_url(self):
        provider = FakeChatProvider(reply=_ANALYSIS)
        cache = FakeCache()
        analyzer = ContextAnalyzer(ProviderFactoryRecorder(provider), cache)

        await analyzer.analyze("body", KEYS)
        await analyzer.analyze("body", KEYS)

        assert len(provider.calls) == 2
        assert cache.json_entries == {}
