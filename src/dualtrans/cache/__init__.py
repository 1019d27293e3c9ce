"""Cache domain: Redis-backed translation result cache."""

from dualtrans.cache.store import ResultCache

__all__ = ["ResultCache"]
