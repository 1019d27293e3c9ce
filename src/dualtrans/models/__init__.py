"""Models domain: fragments, results, memory rows and fingerprints."""

from __future__ import annotations

from dualtrans.models.fingerprint import DEFAULT_CONTEXT_TYPE
from dualtrans.models.fingerprint import fingerprint
from dualtrans.models.fingerprint import text_hash
from dualtrans.models.languages import cjk_ratio_language
from dualtrans.models.languages import detect_language_heuristic
from dualtrans.models.languages import language_name
from dualtrans.models.languages import normalize_lang
from dualtrans.models.schemas import AUTO_LANG
from dualtrans.models.schemas import BatchResult
from dualtrans.models.schemas import BatchTranslateRequest
from dualtrans.models.schemas import CachedResult
from dualtrans.models.schemas import ChatMessage
from dualtrans.models.schemas import ChatOptions
from dualtrans.models.schemas import ChatResponse
from dualtrans.models.schemas import ContextAnalysis
from dualtrans.models.schemas import ContextAnalyzeRequest
from dualtrans.models.schemas import ContextType
from dualtrans.models.schemas import DetectRequest
from dualtrans.models.schemas import DocumentSummary
from dualtrans.models.schemas import DocumentSummaryRequest
from dualtrans.models.schemas import DualResult
from dualtrans.models.schemas import FreeTranslateResult
from dualtrans.models.schemas import LLMHalf
from dualtrans.models.schemas import MachineHalf
from dualtrans.models.schemas import MemoryCreateRequest
from dualtrans.models.schemas import MemoryEntry
from dualtrans.models.schemas import MemoryExportRequest
from dualtrans.models.schemas import MemoryStats
from dualtrans.models.schemas import ModelInfo
from dualtrans.models.schemas import PageContext
from dualtrans.models.schemas import ProviderInfo
from dualtrans.models.schemas import ProgressiveSummaryRequest
from dualtrans.models.schemas import QualityUpdateRequest
from dualtrans.models.schemas import QuickContextRequest
from dualtrans.models.schemas import RefineRequest
from dualtrans.models.schemas import RefineResult
from dualtrans.models.schemas import SectionSummary
from dualtrans.models.schemas import SummaryRequest
from dualtrans.models.schemas import SummaryResult
from dualtrans.models.schemas import TokenUsage
from dualtrans.models.schemas import Tone
from dualtrans.models.schemas import TranslateMode
from dualtrans.models.schemas import TranslateRequest
from dualtrans.models.schemas import TranslationFragment
from dualtrans.models.schemas import TranslationResult

__all__ = [
    "AUTO_LANG",
    "DEFAULT_CONTEXT_TYPE",
    "BatchResult",
    "BatchTranslateRequest",
    "CachedResult",
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "ContextAnalysis",
    "ContextAnalyzeRequest",
    "ContextType",
    "DetectRequest",
    "DocumentSummary",
    "DocumentSummaryRequest",
    "DualResult",
    "FreeTranslateResult",
    "LLMHalf",
    "MachineHalf",
    "MemoryCreateRequest",
    "MemoryEntry",
    "MemoryExportRequest",
    "MemoryStats",
    "ModelInfo",
    "PageContext",
    "ProviderInfo",
    "ProgressiveSummaryRequest",
    "QualityUpdateRequest",
    "QuickContextRequest",
    "RefineRequest",
    "RefineResult",
    "SectionSummary",
    "SummaryRequest",
    "SummaryResult",
    "TokenUsage",
    "Tone",
    "TranslateMode",
    "TranslateRequest",
    "TranslationFragment",
    "TranslationResult",
    "cjk_ratio_language",
    "detect_language_heuristic",
    "fingerprint",
    "language_name",
    "normalize_lang",
    "text_hash",
]
