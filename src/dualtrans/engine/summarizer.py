"""Page and document summarization with optional translation.

Summaries come from an LLM asked for a JSON answer. Without a credential,
or when the answer is unusable, the first sentences of the text stand in
for the summary.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import re
from collections.abc import Awaitable
from collections.abc import Callable

from pydantic import ValidationError

from dualtrans.engine.prompt_builder import build_summary_messages
from dualtrans.errors import ProviderError
from dualtrans.errors import TranslationError
from dualtrans.models.schemas import ChatOptions
from dualtrans.models.schemas import DocumentSummary
from dualtrans.models.schemas import SectionSummary
from dualtrans.models.schemas import SummaryResult
from dualtrans.providers.base import ChatProvider
from dualtrans.providers.registry import has_credentials
from dualtrans.providers.registry import select_provider

logger = logging.getLogger(__name__)

# (text, target_lang, api_keys) -> translated text
TextTranslator = Callable[[str, str, dict[str, str]], Awaitable[str]]

WORDS_PER_MINUTE = 200
CHUNK_CHARS = 5000
CHUNK_SUMMARY_LENGTH = 200
MAX_MERGED_KEY_POINTS = 7
FALLBACK_SENTENCES = 3

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_SENTENCE_END_RE = re.compile(r"[.!?]+")
_PARAGRAPH_RE = re.compile(r"\n\n+")


def word_count(text: str) -> int:
    return len(text.split())


def read_time_minutes(text: str) -> int:
    return max(1, math.ceil(word_count(text) / WORDS_PER_MINUTE))


def leading_sentences(text: str, count: int = FALLBACK_SENTENCES) -> str:
    sentences = [s.strip() for s in _SENTENCE_END_RE.split(text) if s.strip()]
    return ". ".join(sentences[:count]) or "Summary unavailable"


def split_paragraph_chunks(content: str, chunk_chars: int = CHUNK_CHARS) -> list[str]:
    """Greedy paragraph packing; a paragraph is never split."""
    chunks: list[str] = []
    current = ""
    for paragraph in _PARAGRAPH_RE.split(content):
        if current and len(current) + len(paragraph) > chunk_chars:
            chunks.append(current)
            current = paragraph
        else:
            current = f"{current}\n\n{paragraph}" if current else paragraph
    if current:
        chunks.append(current)
    return chunks


def _parse_summary(content: str, include_sections: bool) -> dict:
    match = _JSON_OBJECT_RE.search(content)
    if match is None:
        raise ValueError("no JSON object in summary response")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("summary response is not an object")
    summary = data.get("summary")
    if not isinstance(summary, str):
        raise ValueError("summary response has no summary text")
    points = data.get("keyPoints") or []
    if not isinstance(points, list):
        raise TypeError("keyPoints is not a list")
    sections = None
    if include_sections and data.get("sections"):
        sections = [SectionSummary.model_validate(s) for s in data["sections"]]
    return {
        "summary": summary.strip(),
        "key_points": [str(p).strip() for p in points if str(p).strip()],
        "sections": sections,
    }


class Summarizer:
    """Summarize text, whole documents, or long content chunk by chunk."""

    def __init__(
        self,
        provider_factory: Callable[[str, str], ChatProvider],
        translate_text: TextTranslator,
        *,
        temperature: float = 0.3,
        max_tokens: int = 1000,
    ) -> None:
        self._provider_factory = provider_factory
        self._translate_text = translate_text
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def summarize_text(
        self,
        text: str,
        api_keys: dict[str, str] | None = None,
        *,
        target_lang: str | None = None,
        max_length: int = 500,
        include_key_points: bool = True,
        include_sections: bool = False,
        provider: str | None = None,
    ) -> SummaryResult:
        """Summarize *text*; never raises on a provider failure.

        Provider failures and unusable answers fall back to the leading
        sentences with no key points. With *target_lang*, the summary and
        key points are translated as well.
        """
        keys = api_keys or {}
        result = await self._llm_summary(
            text, keys, max_length, include_sections, provider
        )
        if not include_key_points:
            result = result.model_copy(update={"key_points": []})
        if target_lang:
            result = await self._translated(result, target_lang, keys)
        return result

    async def summarize_document(
        self,
        title: str,
        content: str,
        api_keys: dict[str, str] | None = None,
        *,
        target_lang: str | None = None,
        provider: str | None = None,
    ) -> DocumentSummary:
        """Summary with sections, a translated title and a token estimate."""
        words = word_count(content)
        summary = await self.summarize_text(
            content,
            api_keys,
            target_lang=target_lang,
            include_sections=True,
            provider=provider,
        )
        title_translated = None
        if target_lang:
            title_translated = await self._translate_or_none(
                title, target_lang, api_keys or {}
            )
        # Full translation costs about 1.3 tokens per word.
        full_tokens = max(words * 1.3, 1.0)
        summary_tokens = 1000 + (500 if summary.summary_translated else 0)
        savings = round((1 - summary_tokens / full_tokens) * 100)
        return DocumentSummary(
            title=title,
            title_translated=title_translated,
            summary=summary,
            word_count=words,
            estimated_savings=f"~{savings}% token savings vs full translation",
        )

    async def progressive_summarize(
        self,
        content: str,
        api_keys: dict[str, str] | None = None,
        *,
        target_lang: str | None = None,
        provider: str | None = None,
    ) -> SummaryResult:
        """Summarize each paragraph chunk, then summarize the summaries.

        Key points are merged across chunks, deduplicated and capped.
        """
        chunks = split_paragraph_chunks(content)
        if len(content) < CHUNK_CHARS or len(chunks) == 1:
            return await self.summarize_text(
                content, api_keys, target_lang=target_lang, provider=provider
            )

        partials = await asyncio.gather(
            *(
                self.summarize_text(
                    chunk,
                    api_keys,
                    max_length=CHUNK_SUMMARY_LENGTH,
                    provider=provider,
                )
                for chunk in chunks
            )
        )
        combined = "\n\n".join(
            f"Section {i}:\n{part.summary}\nKey points: {', '.join(part.key_points)}"
            for i, part in enumerate(partials, start=1)
        )
        final = await self.summarize_text(
            combined, api_keys, target_lang=target_lang, provider=provider
        )
        merged = list(dict.fromkeys(p for part in partials for p in part.key_points))
        return final.model_copy(
            update={
                "key_points": merged[:MAX_MERGED_KEY_POINTS],
                "estimated_read_time": read_time_minutes(content),
            }
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _llm_summary(
        self,
        text: str,
        api_keys: dict[str, str],
        max_length: int,
        include_sections: bool,
        provider: str | None,
    ) -> SummaryResult:
        read_time = read_time_minutes(text)
        fallback = SummaryResult(
            summary=leading_sentences(text), estimated_read_time=read_time
        )
        if not has_credentials(api_keys):
            return fallback

        name, key = select_provider(api_keys, provider)
        chat = self._provider_factory(name, key)
        try:
            response = await chat.chat(
                build_summary_messages(
                    text, max_length=max_length, include_sections=include_sections
                ),
                ChatOptions(temperature=self._temperature, max_tokens=self._max_tokens),
            )
        except ProviderError as exc:
            logger.warning("Summarization via %s failed: %s", name, exc)
            return fallback
        try:
            parsed = _parse_summary(response.content, include_sections)
        except (TypeError, ValueError, ValidationError) as exc:
            logger.warning("Summary response unusable: %s", exc)
            return fallback
        return SummaryResult(
            **parsed, estimated_read_time=read_time, model=response.model
        )

    async def _translated(
        self, result: SummaryResult, target_lang: str, api_keys: dict[str, str]
    ) -> SummaryResult:
        summary, *points = await asyncio.gather(
            self._translate_or_none(result.summary, target_lang, api_keys),
            *(
                self._translate_or_none(p, target_lang, api_keys)
                for p in result.key_points
            ),
        )
        update: dict = {"summary_translated": summary}
        if result.key_points and all(p is not None for p in points):
            update["key_points_translated"] = points
        return result.model_copy(update=update)

    async def _translate_or_none(
        self, text: str, target_lang: str, api_keys: dict[str, str]
    ) -> str | None:
        try:
            return await self._translate_text(text, target_lang, api_keys)
        except TranslationError as exc:
            logger.warning("Summary translation failed: %s", exc)
            return None
