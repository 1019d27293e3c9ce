"""Engine domain: prompts, batching, context analysis and orchestration."""

from dualtrans.engine.batching import BatchItem
from dualtrans.engine.batching import demux_numbered
from dualtrans.engine.batching import number_texts
from dualtrans.engine.batching import split_batches
from dualtrans.engine.context import ContextAnalyzer
from dualtrans.engine.context import quick_context_detection
from dualtrans.engine.orchestrator import TranslateOptions
from dualtrans.engine.orchestrator import TranslationOrchestrator
from dualtrans.engine.prompt_builder import build_system_prompt
from dualtrans.engine.session import DisplayMode
from dualtrans.engine.session import TranslationSession
from dualtrans.engine.summarizer import Summarizer

__all__ = [
    "BatchItem",
    "ContextAnalyzer",
    "DisplayMode",
    "Summarizer",
    "TranslateOptions",
    "TranslationOrchestrator",
    "TranslationSession",
    "build_system_prompt",
    "demux_numbered",
    "number_texts",
    "quick_context_detection",
    "split_batches",
]
