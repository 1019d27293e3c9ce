"""Translation history event types and models."""

from __future__ import annotations

import time
from enum import Enum

from pydantic import BaseModel
from pydantic import Field

from dualtrans.models.schemas import WireModel

PREVIEW_CHARS = 100


class HistoryEventType(str, Enum):
    """Operations recorded in the translation history."""

    TRANSLATE = "TRANSLATE"
    DUAL_TRANSLATE = "DUAL_TRANSLATE"
    BATCH_TRANSLATE = "BATCH_TRANSLATE"
    FREE_TRANSLATE = "FREE_TRANSLATE"
    REFINE = "REFINE"


class TranslationRecord(BaseModel):
    """What one call translated and how it was served."""

    model_config = {"frozen": True}

    source_text_preview: str
    target_lang: str
    model: str | None = None
    tokens_used: int = 0
    cached: bool = False
    processing_time_ms: float = 0.0

    @classmethod
    def of(
        cls,
        source_text: str,
        *,
        target_lang: str,
        model: str | None,
        tokens_used: int = 0,
        cached: bool = False,
        processing_time_ms: float = 0.0,
    ) -> TranslationRecord:
        return cls(
            source_text_preview=source_text[:PREVIEW_CHARS],
            target_lang=target_lang,
            model=model,
            tokens_used=tokens_used,
            cached=cached,
            processing_time_ms=round(processing_time_ms, 3),
        )


class HistoryEvent(BaseModel):
    """One immutable history line."""

    model_config = {"frozen": True}

    timestamp: float = Field(
        default_factory=time.time,
        description="Unix epoch when the call finished.",
    )
    event_type: HistoryEventType
    payload: TranslationRecord


class HistoryUsage(WireModel):
    """Usage totals over a slice of the history."""

    total_calls: int = 0
    calls_by_type: dict[str, int] = Field(default_factory=dict)
    calls_by_model: dict[str, int] = Field(default_factory=dict)
    tokens_used: int = 0
    cached_calls: int = 0
    cache_hit_rate: float = 0.0
    avg_processing_time_ms: float = 0.0
