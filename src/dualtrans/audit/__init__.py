"""Translation history: async JSONL event logging and usage queries."""

from dualtrans.audit.schemas import HistoryEvent
from dualtrans.audit.schemas import HistoryEventType
from dualtrans.audit.schemas import HistoryUsage
from dualtrans.audit.schemas import TranslationRecord
from dualtrans.audit.store import HistoryLogger

__all__ = [
    "HistoryEvent",
    "HistoryEventType",
    "HistoryLogger",
    "HistoryUsage",
    "TranslationRecord",
]
