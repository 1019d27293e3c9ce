"""Unit tests for the translation history log."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from dualtrans.audit import HistoryEventType
from dualtrans.audit import HistoryLogger
from dualtrans.audit import TranslationRecord
from dualtrans.config import AuditConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _record(
    *,
    text: str = "Hello",
    target_lang: str = "fr",
    model: str | None = "gpt-4o-mini",
    tokens_used: int = 0,
    cached: bool = False,
    processing_time_ms: float = 0.0,
) -> TranslationRecord:
    return TranslationRecord.of(
        text,
        target_lang=target_lang,
        model=model,
        tokens_used=tokens_used,
        cached=cached,
        processing_time_ms=processing_time_ms,
    )


def _config(tmp_path: Path, *, enabled: bool = True) -> AuditConfig:
    return AuditConfig(file_path=str(tmp_path / "history.jsonl"), enabled=enabled)


@pytest.fixture()
def history(tmp_path) -> HistoryLogger:
    return HistoryLogger(_config(tmp_path))


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------


class TestTranslationRecord:
    def test_preview_is_truncated(self):
        assert _record(text="a" * 250).source_text_preview == "a" * 100

    def test_processing_time_rounded(self):
        assert _record(processing_time_ms=3.14159).processing_time_ms == 3.142


# ---------------------------------------------------------------------------
# Write
# ---------------------------------------------------------------------------


class TestHistoryWrite:
    async def test_record_appends_jsonl(self, history, tmp_path):
        await history.record(HistoryEventType.TRANSLATE, _record(tokens_used=12))
        await history.record(HistoryEventType.REFINE, _record())

        lines = (tmp_path / "history.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["event_type"] == "TRANSLATE"
        assert first["payload"] == {
            "source_text_preview": "Hello",
            "target_lang": "fr",
            "model": "gpt-4o-mini",
            "tokens_used": 12,
            "cached": False,
            "processing_time_ms": 0.0,
        }

    async def test_disabled_writes_nothing(self, tmp_path):
        history = HistoryLogger(_config(tmp_path, enabled=False))
        assert await history.record(HistoryEventType.TRANSLATE, _record()) is None
        assert not (tmp_path / "history.jsonl").exists()

    async def test_write_failure_is_swallowed(self, tmp_path):
        history = HistoryLogger(AuditConfig(file_path=str(tmp_path / "no" / "h")))
        assert await history.record(HistoryEventType.TRANSLATE, _record()) is None

    async def test_non_ascii_preserved(self, history):
        await history.record(HistoryEventType.TRANSLATE, _record(text="你好"))
        events = await history.read_events()
        assert events[0].payload.source_text_preview == "你好"


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


class TestHistoryRead:
    async def test_missing_file_reads_empty(self, history):
        assert await history.read_events() == []

    async def test_filter_by_type(self, history):
        await history.record(HistoryEventType.TRANSLATE, _record())
        await history.record(HistoryEventType.BATCH_TRANSLATE, _record())

        events = await history.read_events(
            event_type=HistoryEventType.BATCH_TRANSLATE
        )

        assert [e.event_type for e in events] == [HistoryEventType.BATCH_TRANSLATE]

    async def test_filter_by_model_and_target(self, history):
        await history.record(HistoryEventType.TRANSLATE, _record(model="a"))
        await history.record(
            HistoryEventType.TRANSLATE, _record(model="b", target_lang="de")
        )
        await history.record(HistoryEventType.TRANSLATE, _record(model="b"))

        events = await history.read_events(model="b", target_lang="fr")

        assert len(events) == 1
        assert events[0].payload.model == "b"
        assert events[0].payload.target_lang == "fr"

    async def test_filter_since(self, history):
        first = await history.record(HistoryEventType.TRANSLATE, _record())
        second = await history.record(HistoryEventType.REFINE, _record())

        events = await history.read_events(since=second.timestamp)

        assert events[-1].event_type is HistoryEventType.REFINE
        assert all(e.timestamp >= second.timestamp for e in events)
        assert first.timestamp <= second.timestamp

    async def test_limit_keeps_newest(self, history):
        for text in ("one", "two", "three"):
            await history.record(HistoryEventType.TRANSLATE, _record(text=text))

        events = await history.read_events(limit=2)

        assert [e.payload.source_text_preview for e in events] == ["two", "three"]
        assert await history.read_events(limit=0) == []

    async def test_malformed_lines_skipped(self, history, tmp_path):
        await history.record(HistoryEventType.TRANSLATE, _record(text="one"))
        with open(tmp_path / "history.jsonl", "a", encoding="utf-8") as fh:
            fh.write("not json\n")
            fh.write('{"event_type": "UNKNOWN"}\n')
            fh.write("\n")
        await history.record(HistoryEventType.TRANSLATE, _record(text="two"))

        events = await history.read_events()

        assert [e.payload.source_text_preview for e in events] == ["one", "two"]


# ---------------------------------------------------------------------------
# Usage
# ---------------------------------------------------------------------------


class TestHistoryUsage:
    async def test_empty(self, history):
        usage = await history.usage()
        assert usage.total_calls == 0
        assert usage.cache_hit_rate == 0.0

    async def test_totals(self, history):
        await history.record(
            HistoryEventType.TRANSLATE,
            _record(model="gpt", tokens_used=10, processing_time_ms=10.0),
        )
        await history.record(
            HistoryEventType.TRANSLATE,
            _record(model="gpt", cached=True, processing_time_ms=2.0),
        )
        await history.record(
            HistoryEventType.FREE_TRANSLATE,
            _record(model=None, processing_time_ms=6.0),
        )

        usage = await history.usage()

        assert usage.total_calls == 3
        assert usage.calls_by_type == {"TRANSLATE": 2, "FREE_TRANSLATE": 1}
        assert usage.calls_by_model == {"gpt": 2, "unknown": 1}
        assert usage.tokens_used == 10
        assert usage.cached_calls == 1
        assert usage.cache_hit_rate == 0.3333
        assert usage.avg_processing_time_ms == 6.0

    async def test_wire_format_is_camel_case(self, history):
        await history.record(HistoryEventType.TRANSLATE, _record())
        dumped = (await history.usage()).model_dump(mode="json")
        assert dumped["totalCalls"] == 1
        assert "cacheHitRate" in dumped
