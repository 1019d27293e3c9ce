"""Neo4j-backed durable translation memory.

One ``(:TranslationMemory)`` node per unique
``(fingerprint, source_lang, target_lang)``. Repeat saves overwrite the
target text (last write wins) and increment ``use_count`` inside the same
``MERGE`` so concurrent saves never lose an increment.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from datetime import timezone

from neo4j import AsyncDriver
from neo4j import time as neo4j_time

from dualtrans.models.fingerprint import DEFAULT_CONTEXT_TYPE
from dualtrans.models.fingerprint import fingerprint
from dualtrans.models.fingerprint import text_hash
from dualtrans.models.schemas import MemoryEntry
from dualtrans.models.schemas import MemoryStats

_EXPORT_LIMIT = 1000
_TOP_PAIRS_LIMIT = 5

_FILTER_LANGS = (
    "($source_lang IS NULL OR m.source_lang = $source_lang) "
    "AND ($target_lang IS NULL OR m.target_lang = $target_lang)"
)


def _memory_key(fp: str, source_lang: str, target_lang: str) -> str:
    return f"{fp}:{source_lang}:{target_lang}"


def _neo4j_to_python(value: object) -> object:
    """Convert Neo4j temporal types to Python stdlib equivalents."""
    if isinstance(value, (neo4j_time.DateTime, neo4j_time.Date)):
        return value.to_native()
    return value


def _to_entry(props: dict) -> MemoryEntry:
    data = {k: _neo4j_to_python(v) for k, v in props.items()}
    data.pop("memory_key", None)
    return MemoryEntry.model_validate(data)


def build_memory_entry(
    *,
    source_text: str,
    target_text: str,
    source_lang: str,
    target_lang: str,
    context_type: str | None = None,
    model_used: str | None = None,
) -> MemoryEntry:
    """Factory for a new, not yet persisted, memory row."""
    ctx = context_type or DEFAULT_CONTEXT_TYPE
    return MemoryEntry(
        fingerprint=fingerprint(source_text, source_lang, target_lang, ctx),
        source_hash=text_hash(source_text),
        source_text=source_text,
        target_text=target_text,
        source_lang=source_lang,
        target_lang=target_lang,
        context_type=ctx,
        model_used=model_used or "unknown",
    )


class TranslationMemoryStore:
    """Async CRUD interface to the translation memory graph."""

    def __init__(self, driver: AsyncDriver) -> None:
        self._driver = driver

    # ----- write -----

    async def save(self, entry: MemoryEntry) -> MemoryEntry:
        """Upsert *entry*; return the stored row."""
        now = datetime.now(timezone.utc)
        query = (
            "MERGE (m:TranslationMemory {memory_key: $memory_key}) "
            "ON CREATE SET m.id = $id, m.fingerprint = $fingerprint, "
            "  m.source_hash = $source_hash, m.source_text = $source_text, "
            "  m.target_text = $target_text, m.source_lang = $source_lang, "
            "  m.target_lang = $target_lang, m.context_type = $context_type, "
            "  m.model_used = $model_used, m.quality_score = 0.0, "
            "  m.use_count = 1, m.created_at = $now, m.updated_at = $now "
            "ON MATCH SET m.target_text = $target_text, m.model_used = $model_used, "
            "  m.use_count = m.use_count + 1, m.updated_at = $now "
            "RETURN properties(m) AS props"
        )
        async with self._driver.session() as session:
            result = await session.run(
                query,
                memory_key=_memory_key(
                    entry.fingerprint, entry.source_lang, entry.target_lang
                ),
                id=entry.id or f"tm_{uuid.uuid4().hex}",
                fingerprint=entry.fingerprint,
                source_hash=entry.source_hash,
                source_text=entry.source_text,
                target_text=entry.target_text,
                source_lang=entry.source_lang,
                target_lang=entry.target_lang,
                context_type=entry.context_type,
                model_used=entry.model_used,
                now=now,
            )
            record = await result.single()
            return _to_entry(record["props"])

    async def update_quality(self, entry_id: str, score: float) -> MemoryEntry | None:
        """Set the user rating for one row. Return ``None`` if it does not exist."""
        if not 0 <= score <= 10:
            raise ValueError("Score must be a number between 0 and 10")
        query = (
            "MATCH (m:TranslationMemory {id: $id}) "
            "SET m.quality_score = $score, m.updated_at = $now "
            "RETURN properties(m) AS props"
        )
        async with self._driver.session() as session:
            result = await session.run(
                query,
                id=entry_id,
                score=float(score),
                now=datetime.now(timezone.utc),
            )
            record = await result.single()
            return _to_entry(record["props"]) if record else None

    async def delete(self, entry_id: str) -> bool:
        """Delete one row. Return ``True`` if found."""
        query = (
            "MATCH (m:TranslationMemory {id: $id}) "
            "WITH m, m.id AS id DELETE m RETURN count(id) AS cnt"
        )
        async with self._driver.session() as session:
            result = await session.run(query, id=entry_id)
            record = await result.single()
            return record["cnt"] > 0

    # ----- read -----

    async def get(self, entry_id: str) -> MemoryEntry | None:
        query = "MATCH (m:TranslationMemory {id: $id}) RETURN properties(m) AS props"
        async with self._driver.session() as session:
            result = await session.run(query, id=entry_id)
            record = await result.single()
            return _to_entry(record["props"]) if record else None

    async def list_entries(
        self,
        *,
        source_lang: str | None = None,
        target_lang: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[MemoryEntry]:
        """Most used rows first, then most recently updated."""
        query = (
            "MATCH (m:TranslationMemory) "
            f"WHERE {_FILTER_LANGS} "
            "RETURN properties(m) AS props "
            "ORDER BY m.use_count DESC, m.updated_at DESC "
            "SKIP $offset LIMIT $limit"
        )
        return await self._run_multi(
            query,
            source_lang=source_lang,
            target_lang=target_lang,
            offset=max(offset, 0),
            limit=max(limit, 0),
        )

    async def search(
        self,
        text: str,
        *,
        source_lang: str | None = None,
        target_lang: str | None = None,
    ) -> MemoryEntry | None:
        """Exact lookup by source text. A hit counts as one more use."""
        query = (
            "MATCH (m:TranslationMemory {source_hash: $source_hash}) "
            f"WHERE {_FILTER_LANGS} "
            "WITH m ORDER BY m.use_count DESC LIMIT 1 "
            "SET m.use_count = m.use_count + 1, m.updated_at = $now "
            "RETURN properties(m) AS props"
        )
        async with self._driver.session() as session:
            result = await session.run(
                query,
                source_hash=text_hash(text),
                source_lang=source_lang,
                target_lang=target_lang,
                now=datetime.now(timezone.utc),
            )
            record = await result.single()
            return _to_entry(record["props"]) if record else None

    async def stats(self) -> MemoryStats:
        totals_query = (
            "MATCH (m:TranslationMemory) "
            "RETURN count(m) AS total_entries, "
            "coalesce(sum(m.use_count), 0) AS total_uses, "
            "count(DISTINCT m.source_lang + '-' + m.target_lang) AS language_pairs, "
            "coalesce(avg(m.quality_score), 0.0) AS avg_quality"
        )
        pairs_query = (
            "MATCH (m:TranslationMemory) "
            "RETURN m.source_lang AS source_lang, m.target_lang AS target_lang, "
            "count(*) AS count ORDER BY count DESC LIMIT $limit"
        )
        async with self._driver.session() as session:
            result = await session.run(totals_query)
            totals = await result.single()
            result = await session.run(pairs_query, limit=_TOP_PAIRS_LIMIT)
            pairs = [record.data() async for record in result]

        return MemoryStats(
            total_entries=totals["total_entries"],
            total_uses=totals["total_uses"],
            language_pairs=totals["language_pairs"],
            avg_quality=float(totals["avg_quality"]),
            top_pairs=[
                {
                    "sourceLang": p["source_lang"],
                    "targetLang": p["target_lang"],
                    "count": p["count"],
                }
                for p in pairs
            ],
        )

    async def export(
        self,
        *,
        source_lang: str | None = None,
        target_lang: str | None = None,
    ) -> list[dict]:
        """Plain rows for a JSON export, most used first."""
        query = (
            "MATCH (m:TranslationMemory) "
            f"WHERE {_FILTER_LANGS} "
            "RETURN m.source_text AS sourceText, m.target_text AS targetText, "
            "m.source_lang AS sourceLang, m.target_lang AS targetLang, "
            "m.context_type AS contextType "
            "ORDER BY m.use_count DESC LIMIT $limit"
        )
        async with self._driver.session() as session:
            result = await session.run(
                query,
                source_lang=source_lang,
                target_lang=target_lang,
                limit=_EXPORT_LIMIT,
            )
            return [record.data() async for record in result]

    async def clear(self) -> None:
        async with self._driver.session() as session:
            await session.run("MATCH (m:TranslationMemory) DELETE m")

    async def _run_multi(self, query: str, **params: object) -> list[MemoryEntry]:
        async with self._driver.session() as session:
            result = await session.run(query, **params)
            return [_to_entry(record["props"]) async for record in result]
