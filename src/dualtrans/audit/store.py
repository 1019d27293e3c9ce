"""Translation history kept as JSONL, one line per completed call."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from functools import partial
from pathlib import Path

from pydantic import ValidationError

from dualtrans.audit.schemas import HistoryEvent
from dualtrans.audit.schemas import HistoryEventType
from dualtrans.audit.schemas import HistoryUsage
from dualtrans.audit.schemas import TranslationRecord
from dualtrans.config import AuditConfig

logger = logging.getLogger(__name__)


class HistoryLogger:
    """Records translation calls and answers usage queries over them.

    Appends run in a worker thread under an ``asyncio.Lock``. A failed
    append is logged and dropped: history never fails a translation.
    """

    def __init__(self, config: AuditConfig | None = None) -> None:
        self.config = config or AuditConfig()
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return Path(self.config.file_path)

    async def record(
        self, event_type: HistoryEventType, record: TranslationRecord
    ) -> HistoryEvent | None:
        """Append one event; ``None`` when disabled or the write failed."""
        if not self.config.enabled:
            return None
        event = HistoryEvent(event_type=event_type, payload=record)
        line = event.model_dump_json() + "\n"
        try:
            async with self._lock:
                await asyncio.to_thread(partial(_append_line, self.path, line))
        except OSError:
            logger.exception("Failed to append translation history to %s", self.path)
            return None
        return event

    async def read_events(
        self,
        *,
        event_type: HistoryEventType | None = None,
        since: float | None = None,
        model: str | None = None,
        target_lang: str | None = None,
        limit: int | None = None,
    ) -> list[HistoryEvent]:
        """Matching events oldest first; *limit* keeps the newest ones."""
        events = [
            evt
            for evt in await self._load()
            if (event_type is None or evt.event_type == event_type)
            and (since is None or evt.timestamp >= since)
            and (model is None or evt.payload.model == model)
            and (target_lang is None or evt.payload.target_lang == target_lang)
        ]
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    async def usage(self, *, since: float | None = None) -> HistoryUsage:
        events = await self.read_events(since=since)
        if not events:
            return HistoryUsage()
        cached = sum(1 for evt in events if evt.payload.cached)
        return HistoryUsage(
            total_calls=len(events),
            calls_by_type=dict(Counter(evt.event_type.value for evt in events)),
            calls_by_model=dict(
                Counter(evt.payload.model or "unknown" for evt in events)
            ),
            tokens_used=sum(evt.payload.tokens_used for evt in events),
            cached_calls=cached,
            cache_hit_rate=round(cached / len(events), 4),
            avg_processing_time_ms=round(
                sum(evt.payload.processing_time_ms for evt in events) / len(events),
                3,
            ),
        )

    async def _load(self) -> list[HistoryEvent]:
        if not self.path.exists():
            return []
        async with self._lock:
            raw = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        events: list[HistoryEvent] = []
        for line_no, line in enumerate(raw.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                events.append(HistoryEvent.model_validate_json(line))
            except ValidationError:
                logger.warning(
                    "Skipping malformed history line %d in %s", line_no, self.path
                )
        return events


def _append_line(path: Path, line: str) -> None:
    with path.open("a", encoding="utf-8") as fh:
        fh.write(line)
