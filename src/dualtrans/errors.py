"""Error taxonomy for the translation core.

``InvalidRequestError`` and ``NoCredentialsError`` are caller mistakes and
are never retried. ``ProviderTransientError`` is raised only once a
provider's retry budget is exhausted; ``ProviderTerminalError`` is raised
on the first client-class failure.
"""

from __future__ import annotations

from dataclasses import dataclass


class TranslationError(Exception):
    """Base class for all errors raised by the translation core."""

    code = "translation_error"


class InvalidRequestError(TranslationError):
    """Missing required field, oversized batch, or otherwise malformed input."""

    code = "invalid_request"


class NoCredentialsError(TranslationError):
    """No usable provider API key was supplied."""

    code = "no_credentials"

    def __init__(self, message: str = "No API key configured") -> None:
        super().__init__(message)


class ProviderError(TranslationError):
    """An LLM vendor call failed."""

    code = "provider_error"

    def __init__(self, message: str, *, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class ProviderTransientError(ProviderError):
    """Server-class or network failure that survived every retry."""

    code = "provider_transient"


class ProviderTerminalError(ProviderError):
    """Client-class failure (4xx) or unusable vendor response."""

    code = "provider_terminal"


class FreeBackendError(TranslationError):
    """A single keyless translation backend failed."""

    code = "free_backend_error"


@dataclass(frozen=True)
class BackendFailure:
    """One genuine (non-cancellation) failure inside a race."""

    backend: str
    error: BaseException

    def describe(self) -> str:
        return f"{self.backend}: {self.error}"


class AllBackendsFailedError(TranslationError):
    """Every free backend failed for a reason other than cancellation."""

    code = "all_backends_failed"

    def __init__(self, failures: list[BackendFailure]) -> None:
        self.failures = list(failures)
        detail = "; ".join(f.describe() for f in self.failures) or "unknown error"
        super().__init__(f"All providers failed: {detail}")
