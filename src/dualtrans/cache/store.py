"""Redis-backed translation result cache.

Results are stored as JSON strings keyed by ``{prefix}:trans:{fingerprint}``
with a fixed TTL that is not refreshed on read. The fingerprint already
covers text, both languages and context type. Context analyses share the
same client under ``{prefix}:context:{url_hash}``.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError
from redis.asyncio import Redis  # type: ignore[import-untyped]

from dualtrans.config import CacheConfig
from dualtrans.models.schemas import CachedResult

logger = logging.getLogger(__name__)

_CLEAR_BATCH_SIZE = 100


class ResultCache:
    """Key-value store of ``CachedResult`` objects with a fixed TTL."""

    def __init__(self, redis: Redis, config: CacheConfig | None = None) -> None:
        self._redis = redis
        self._config = config or CacheConfig()
        self._trans_prefix = f"{self._config.key_prefix}:trans"
        self._context_prefix = f"{self._config.key_prefix}:context"

    def key_for(self, fingerprint: str) -> str:
        return f"{self._trans_prefix}:{fingerprint}"

    # -- translation results --

    async def get(self, fingerprint: str) -> CachedResult | None:
        """Return the cached result, or ``None`` if absent, expired or unreadable."""
        raw = await self._redis.get(self.key_for(fingerprint))
        return self._decode(raw)

    async def set(
        self,
        fingerprint: str,
        result: CachedResult,
        ttl_seconds: int | None = None,
    ) -> None:
        """Blind overwrite of one entry; the TTL restarts from now."""
        await self._redis.set(
            self.key_for(fingerprint),
            result.model_dump_json(),
            ex=ttl_seconds or self._config.ttl_seconds,
        )

    async def batch_get(self, fingerprints: list[str]) -> dict[str, CachedResult]:
        """Fetch many fingerprints in one pipeline round-trip.

        Missing or malformed entries are simply left out of the result.
        """
        if not fingerprints:
            return {}
        unique = list(dict.fromkeys(fingerprints))
        pipe = self._redis.pipeline()
        for fp in unique:
            pipe.get(self.key_for(fp))
        raw_results = await pipe.execute()

        found: dict[str, CachedResult] = {}
        for fp, raw in zip(unique, raw_results):
            decoded = self._decode(raw)
            if decoded is not None:
                found[fp] = decoded
        return found

    # -- arbitrary JSON (context analysis) --

    async def get_json(self, key: str) -> dict | None:
        raw = await self._redis.get(f"{self._context_prefix}:{key}")
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding malformed context cache entry %s", key)
            return None

    async def set_json(
        self, key: str, value: dict, ttl_seconds: int | None = None
    ) -> None:
        await self._redis.set(
            f"{self._context_prefix}:{key}",
            json.dumps(value, default=str),
            ex=ttl_seconds or self._config.context_ttl_seconds,
        )

    # -- maintenance --

    async def clear(self) -> int:
        """Remove every key under the configured prefix; return the count."""
        deleted = 0
        batch: list = []
        async for key in self._redis.scan_iter(match=f"{self._config.key_prefix}:*"):
            batch.append(key)
            if len(batch) >= _CLEAR_BATCH_SIZE:
                deleted += await self._redis.delete(*batch)
                batch.clear()
        if batch:
            deleted += await self._redis.delete(*batch)
        return deleted

    async def close(self) -> None:
        await self._redis.aclose()

    @staticmethod
    def _decode(raw: bytes | str | None) -> CachedResult | None:
        if raw is None:
            return None
        try:
            return CachedResult.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed cache entry")
            return None
