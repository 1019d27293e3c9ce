"""Deterministic fingerprints for fragments and source texts."""

from __future__ import annotations

import hashlib
import json

DEFAULT_CONTEXT_TYPE = "general"

# 32 hex chars = 128 bits
_FINGERPRINT_LENGTH = 32


def fingerprint(
    text: str,
    source_lang: str,
    target_lang: str,
    context_type: str | None = None,
) -> str:
    """Return the cache/memory key for one fragment.

    A missing *context_type* hashes exactly like ``"general"``. Fields are
    JSON-encoded before hashing so that separators inside *text* cannot
    make two different fragments collide.
    """
    payload = json.dumps(
        [text, source_lang, target_lang, context_type or DEFAULT_CONTEXT_TYPE],
        ensure_ascii=False,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return digest[:_FINGERPRINT_LENGTH]


def text_hash(text: str) -> str:
    """Full SHA-256 hex digest of *text* (memory lookup by source text)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
