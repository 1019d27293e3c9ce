"""Configuration dataclasses, one per subsystem.

Plain frozen defaults overridden at construction time. Environment
variables are read only by ``server.main``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CacheConfig:
    """Result cache settings (Redis)."""

    ttl_seconds: int = 60 * 60 * 24 * 7
    key_prefix: str = "dualtrans"
    context_ttl_seconds: int = 60 * 60 * 24


@dataclass(frozen=True)
class ProviderConfig:
    """Retry and sampling settings shared by every LLM provider adapter."""

    max_attempts: int = 3
    backoff_base_seconds: float = 1.0
    timeout_seconds: float = 30.0
    translate_temperature: float = 0.3
    refine_temperature: float = 0.5
    min_max_tokens: int = 1000


@dataclass(frozen=True)
class RacerConfig:
    """Free-backend race and language detection settings."""

    request_timeout_seconds: float = 10.0
    detect_timeout_seconds: float = 3.0
    detect_sample_chars: int = 100
    # Fallback heuristic: share of Han characters above which text is "zh"
    cjk_ratio_threshold: float = 0.3


@dataclass(frozen=True)
class BatchConfig:
    """Bounds for combined batch calls and page translation."""

    max_items: int = 20
    max_chars: int = 2500
    max_request_texts: int = 50


@dataclass(frozen=True)
class RefineConfig:
    """Multi-turn refinement settings."""

    # 20 messages = 10 user/assistant rounds
    history_limit: int = 20


@dataclass(frozen=True)
class AuditConfig:
    """Settings for the JSONL translation history log."""

    file_path: str = "dualtrans_history.jsonl"
    enabled: bool = True
