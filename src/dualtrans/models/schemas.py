"""Pydantic models for fragments, results, memory rows and API payloads.

Field names are snake_case in Python and camelCase on the wire; every
model validates either spelling and serializes by alias.
"""

from __future__ import annotations

import time
from datetime import datetime
from datetime import timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic.alias_generators import to_camel

from dualtrans.models.fingerprint import DEFAULT_CONTEXT_TYPE
from dualtrans.models.fingerprint import fingerprint

AUTO_LANG = "auto"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """Base model with camelCase aliases on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        validate_by_name=True,
        validate_by_alias=True,
        serialize_by_alias=True,
    )


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ContextType(str, Enum):
    """Kind of page content being translated."""

    technical = "technical"
    news = "news"
    academic = "academic"
    casual = "casual"
    legal = "legal"
    medical = "medical"
    general = "general"


class Tone(str, Enum):
    formal = "formal"
    informal = "informal"
    neutral = "neutral"


class TranslateMode(str, Enum):
    """Which translator a single ``translate`` call uses."""

    llm = "llm"
    machine = "machine"


# ---------------------------------------------------------------------------
# Core data model
# ---------------------------------------------------------------------------


class PageContext(WireModel):
    """Page-level metadata used to build context-aware prompts."""

    type: ContextType = ContextType.general
    domain: str | None = None
    tone: Tone = Tone.neutral
    terminology_hints: list[str] = Field(default_factory=list)
    url: str | None = None
    title: str | None = None


class TranslationFragment(WireModel):
    """One unit of translatable text plus its language parameters."""

    model_config = ConfigDict(frozen=True)

    text: str
    source_lang: str = AUTO_LANG
    target_lang: str
    context_type: str | None = None

    @property
    def fingerprint(self) -> str:
        return fingerprint(
            self.text, self.source_lang, self.target_lang, self.context_type
        )

    @property
    def effective_context_type(self) -> str:
        return self.context_type or DEFAULT_CONTEXT_TYPE


class CachedResult(WireModel):
    """A cached translation, keyed by fragment fingerprint."""

    translated_text: str
    source_lang: str
    target_lang: str
    model: str = Field(description="Provider or model that produced the text.")
    cached_at: float = Field(default_factory=time.time)


class MemoryEntry(WireModel):
    """One durable translation memory row."""

    id: str | None = None
    fingerprint: str
    source_hash: str
    source_text: str
    target_text: str
    source_lang: str
    target_lang: str
    context_type: str = DEFAULT_CONTEXT_TYPE
    model_used: str = "unknown"
    quality_score: float = 0.0
    use_count: int = 1
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class MachineHalf(WireModel):
    translated_text: str | None = None
    provider: str | None = None
    error: str | None = None


class LLMHalf(WireModel):
    translated_text: str | None = None
    model: str | None = None
    error: str | None = None
    available: bool = False


class DualResult(WireModel):
    """Free/fast and LLM/high-quality translations of the same fragment."""

    machine: MachineHalf
    llm: LLMHalf
    source_lang: str
    target_lang: str


# ---------------------------------------------------------------------------
# Provider wire contract
# ---------------------------------------------------------------------------


class ChatMessage(WireModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatOptions(WireModel):
    temperature: float | None = None
    max_tokens: int | None = None
    model: str | None = None


class TokenUsage(WireModel):
    prompt: int = 0
    completion: int = 0
    total: int = 0


class ChatResponse(WireModel):
    content: str
    tokens_used: TokenUsage = Field(default_factory=TokenUsage)
    model: str


class FreeTranslateResult(WireModel):
    translated_text: str
    detected_source_lang: str | None = None
    provider: str


class ModelInfo(WireModel):
    id: str
    name: str
    context_window: int


class ProviderInfo(WireModel):
    id: str
    name: str
    models: list[ModelInfo]
    default_model: str
    api_key_name: str
    docs_url: str


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


class TranslationResult(WireModel):
    translated_text: str
    source_lang: str
    target_lang: str
    model: str
    cached: bool = False
    tokens_used: int = 0


class BatchResult(WireModel):
    translations: list[str]
    source_lang: str
    target_lang: str
    model: str
    cached_count: int = 0
    tokens_used: int = 0


class RefineResult(WireModel):
    refined_text: str
    model: str


class ContextAnalysis(WireModel):
    context: PageContext
    confidence: float = 0.0


class SectionSummary(WireModel):
    title: str
    summary: str
    start_index: int = 0
    end_index: int = 0


class SummaryResult(WireModel):
    """Summary, key points and optional translations of both."""

    summary: str
    key_points: list[str] = Field(default_factory=list)
    estimated_read_time: int = Field(description="Minutes at 200 words/min.")
    sections: list[SectionSummary] | None = None
    summary_translated: str | None = None
    key_points_translated: list[str] | None = None
    model: str | None = None


class DocumentSummary(WireModel):
    title: str
    title_translated: str | None = None
    summary: SummaryResult
    word_count: int
    estimated_savings: str


class MemoryStats(WireModel):
    total_entries: int = 0
    total_uses: int = 0
    language_pairs: int = 0
    avg_quality: float = 0.0
    top_pairs: list[dict] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class TranslateRequest(WireModel):
    """Input for translate / dual translate / free translate."""

    text: str = Field(min_length=1)
    target_lang: str = Field(min_length=1)
    source_lang: str | None = None
    context: PageContext | None = None
    model: str | None = Field(default=None, description="Provider name.")
    model_id: str | None = Field(default=None, description="Vendor model id.")
    api_keys: dict[str, str] = Field(default_factory=dict)
    use_cache: bool = True
    use_memory: bool = True
    mode: TranslateMode | None = None


class BatchTranslateRequest(WireModel):
    texts: list[str] = Field(min_length=1)
    target_lang: str = Field(min_length=1)
    source_lang: str | None = None
    context: PageContext | None = None
    model: str | None = None
    model_id: str | None = None
    api_keys: dict[str, str] = Field(default_factory=dict)
    use_cache: bool = True


class DetectRequest(WireModel):
    text: str = Field(min_length=1)


class RefineRequest(WireModel):
    original_text: str = Field(min_length=1)
    current_translation: str = Field(min_length=1)
    instruction: str = Field(min_length=1)
    history: list[ChatMessage] = Field(default_factory=list)
    target_lang: str = Field(min_length=1)
    source_lang: str | None = None
    api_keys: dict[str, str] = Field(default_factory=dict)
    model: str | None = None
    model_id: str | None = None


class MemoryCreateRequest(WireModel):
    source_text: str = Field(min_length=1)
    target_text: str = Field(min_length=1)
    source_lang: str = Field(min_length=1)
    target_lang: str = Field(min_length=1)
    context_type: str | None = None
    model_used: str | None = None


class QualityUpdateRequest(WireModel):
    score: float = Field(ge=0, le=10)


class MemoryExportRequest(WireModel):
    source_lang: str | None = None
    target_lang: str | None = None


class ContextAnalyzeRequest(WireModel):
    content: str = Field(min_length=1)
    url: str | None = None
    title: str | None = None
    api_keys: dict[str, str] = Field(default_factory=dict)


class QuickContextRequest(WireModel):
    url: str | None = None
    title: str | None = None


class SummaryRequest(WireModel):
    text: str = Field(min_length=1)
    target_lang: str | None = None
    max_length: int = Field(default=500, gt=0)
    include_key_points: bool = True
    include_sections: bool = False
    model: str | None = None
    api_keys: dict[str, str] = Field(default_factory=dict)


class DocumentSummaryRequest(WireModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    target_lang: str | None = None
    model: str | None = None
    api_keys: dict[str, str] = Field(default_factory=dict)


class ProgressiveSummaryRequest(WireModel):
    content: str = Field(min_length=1)
    target_lang: str | None = None
    model: str | None = None
    api_keys: dict[str, str] = Field(default_factory=dict)
