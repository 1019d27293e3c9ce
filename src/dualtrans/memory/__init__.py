"""Memory domain: durable translation memory (Neo4j)."""

from __future__ import annotations

from dualtrans.memory.schema import init_schema
from dualtrans.memory.store import build_memory_entry
from dualtrans.memory.store import TranslationMemoryStore

__all__ = ["TranslationMemoryStore", "build_memory_entry", "init_schema"]
