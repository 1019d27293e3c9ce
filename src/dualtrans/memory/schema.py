"""Neo4j schema initialization for the translation memory.

All statements use ``IF NOT EXISTS`` so they are safe to run repeatedly.
Uniqueness of one row per ``(fingerprint, source_lang, target_lang)`` is
enforced through the derived ``memory_key`` property.
"""

from __future__ import annotations

from neo4j import AsyncDriver

_CONSTRAINTS = [
    "CREATE CONSTRAINT tm_unique_id IF NOT EXISTS "
    "FOR (m:TranslationMemory) REQUIRE m.id IS UNIQUE",
    "CREATE CONSTRAINT tm_unique_key IF NOT EXISTS "
    "FOR (m:TranslationMemory) REQUIRE m.memory_key IS UNIQUE",
]

_INDEXES = [
    "CREATE INDEX tm_source_hash IF NOT EXISTS "
    "FOR (m:TranslationMemory) ON (m.source_hash)",
    "CREATE INDEX tm_langs IF NOT EXISTS "
    "FOR (m:TranslationMemory) ON (m.source_lang, m.target_lang)",
    "CREATE INDEX tm_context IF NOT EXISTS "
    "FOR (m:TranslationMemory) ON (m.context_type)",
    "CREATE INDEX tm_use_count IF NOT EXISTS "
    "FOR (m:TranslationMemory) ON (m.use_count)",
]


async def init_schema(driver: AsyncDriver) -> None:
    """Create all indexes and constraints (idempotent).

    Runs each statement on its own so schema commands are never batched.
    """
    async with driver.session() as session:
        for stmt in _CONSTRAINTS + _INDEXES:
            await session.run(stmt)
