"""Page context detection: a URL/title heuristic and an LLM analysis."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable

from pydantic import ValidationError

from dualtrans.cache import ResultCache
from dualtrans.engine.prompt_builder import build_context_analysis_messages
from dualtrans.models.fingerprint import text_hash
from dualtrans.models.schemas import ChatOptions
from dualtrans.models.schemas import ContextAnalysis
from dualtrans.models.schemas import ContextType
from dualtrans.models.schemas import PageContext
from dualtrans.models.schemas import Tone
from dualtrans.providers.base import ChatProvider
from dualtrans.providers.registry import has_credentials
from dualtrans.providers.registry import select_provider

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

HEURISTIC_CONFIDENCE = 0.5

# (context type, tone, url/title keywords); first match wins
_KEYWORD_RULES: tuple[tuple[ContextType, Tone, tuple[str, ...]], ...] = (
    (
        ContextType.technical,
        Tone.formal,
        (
            "github",
            "stackoverflow",
            "docs.",
            "developer",
            "api",
            "documentation",
        ),
    ),
    (
        ContextType.news,
        Tone.formal,
        ("news", "bbc", "cnn", "reuters", "nytimes", "article"),
    ),
    (
        ContextType.academic,
        Tone.formal,
        ("arxiv", "scholar", "research", "paper", "journal", ".edu"),
    ),
    (ContextType.legal, Tone.formal, ("legal", "terms", "privacy", "law")),
    (ContextType.medical, Tone.formal, ("health", "medical", "clinic", "disease")),
)


def quick_context_detection(
    url: str | None = None, title: str | None = None
) -> PageContext:
    """Keyword guess from the URL and title; ``general``/``neutral`` otherwise."""
    haystack = f"{url or ''} {title or ''}".lower()
    for context_type, tone, keywords in _KEYWORD_RULES:
        if any(keyword in haystack for keyword in keywords):
            return PageContext(type=context_type, tone=tone, url=url, title=title)
    return PageContext(url=url, title=title)


def _parse_analysis(
    content: str, url: str | None, title: str | None
) -> ContextAnalysis:
    match = _JSON_OBJECT_RE.search(content)
    if match is None:
        raise ValueError("no JSON object in analysis response")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("analysis response is not an object")
    confidence = float(data.pop("confidence", 0.5) or 0.0)
    context = PageContext.model_validate({**data, "url": url, "title": title})
    return ContextAnalysis(
        context=context, confidence=min(max(confidence, 0.0), 1.0)
    )


class ContextAnalyzer:
    """LLM-backed page classification with a per-URL cache."""

    def __init__(
        self,
        provider_factory: Callable[[str, str], ChatProvider],
        cache: ResultCache | None = None,
    ) -> None:
        self._provider_factory = provider_factory
        self._cache = cache

    async def analyze(
        self,
        content: str,
        api_keys: dict[str, str] | None = None,
        *,
        url: str | None = None,
        title: str | None = None,
    ) -> ContextAnalysis:
        """Classify the page; never raises on a malformed LLM answer.

        Without a credential the keyword heuristic is returned with
        confidence 0.5. An unparseable answer yields a ``general`` context
        with confidence 0.
        """
        cache_key = text_hash(url)[:16] if url else None
        cached = await self._cached(cache_key)
        if cached is not None:
            return cached

        if not has_credentials(api_keys):
            return ContextAnalysis(
                context=quick_context_detection(url, title),
                confidence=HEURISTIC_CONFIDENCE,
            )

        name, key = select_provider(api_keys)
        provider = self._provider_factory(name, key)
        response = await provider.chat(
            build_context_analysis_messages(content, url, title),
            ChatOptions(temperature=0.1, max_tokens=500),
        )
        try:
            analysis = _parse_analysis(response.content, url, title)
        except (TypeError, ValueError, ValidationError) as exc:
            logger.warning("Context analysis response unusable: %s", exc)
            return ContextAnalysis(
                context=PageContext(url=url, title=title), confidence=0.0
            )

        if cache_key is not None and self._cache is not None:
            try:
                await self._cache.set_json(cache_key, analysis.model_dump(mode="json"))
            except Exception:
                logger.exception("Failed to cache context analysis for %s", url)
        return analysis

    async def _cached(self, cache_key: str | None) -> ContextAnalysis | None:
        if cache_key is None or self._cache is None:
            return None
        try:
            raw = await self._cache.get_json(cache_key)
        except Exception:
            logger.exception("Context cache read failed")
            return None
        if raw is None:
            return None
        try:
            return ContextAnalysis.model_validate(raw)
        except ValidationError:
            return None
