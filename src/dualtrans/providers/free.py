"""Keyless machine-translation backends and the racer that runs them.

All backends start at once for a given fragment; the first success wins
and every other in-flight backend task is cancelled. Cancelled tasks are
recognised by task state and never count as failures.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from typing import Protocol
from typing import runtime_checkable
from urllib.error import HTTPError
from urllib.error import URLError
from urllib.parse import quote
from urllib.parse import urlencode
from urllib.request import Request
from urllib.request import urlopen

from dualtrans.config import RacerConfig
from dualtrans.errors import AllBackendsFailedError
from dualtrans.errors import BackendFailure
from dualtrans.errors import FreeBackendError
from dualtrans.models.languages import cjk_ratio_language
from dualtrans.models.languages import DEFAULT_SOURCE_LANG
from dualtrans.models.languages import normalize_lang
from dualtrans.models.schemas import AUTO_LANG
from dualtrans.models.schemas import FreeTranslateResult
from dualtrans.observability import record_race_winner

logger = logging.getLogger(__name__)

_BROWSER_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


@runtime_checkable
class FreeBackend(Protocol):
    """One keyless translation endpoint."""

    name: str

    async def translate(
        self, text: str, source_lang: str, target_lang: str
    ) -> FreeTranslateResult: ...


class HTTPFreeBackend:
    """GET-a-JSON-document backend running ``urllib`` in a worker thread."""

    name = "http"

    def __init__(self, *, timeout_seconds: float = 10.0) -> None:
        self._timeout_seconds = timeout_seconds

    async def translate(
        self, text: str, source_lang: str, target_lang: str
    ) -> FreeTranslateResult:
        raise NotImplementedError

    async def _get_json(
        self, url: str, headers: dict[str, str] | None = None
    ) -> object:
        return await asyncio.to_thread(self._get_json_sync, url, headers or {})

    def _get_json_sync(self, url: str, headers: dict[str, str]) -> object:
        request = Request(url=url, headers=headers, method="GET")
        try:
            with urlopen(request, timeout=self._timeout_seconds) as response:
                raw = response.read().decode("utf-8")
        except HTTPError as exc:
            raise FreeBackendError(f"{self.name} error: {exc.code}") from exc
        except URLError as exc:
            raise FreeBackendError(
                f"{self.name} network error: {exc.reason}"
            ) from exc
        except OSError as exc:
            raise FreeBackendError(f"{self.name} IO error: {exc}") from exc
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise FreeBackendError(f"{self.name} returned invalid JSON") from exc


class GoogleDirectBackend(HTTPFreeBackend):
    """Unofficial Google endpoint; also reports the detected language."""

    name = "google-direct"
    base_url = "https://translate.googleapis.com/translate_a/single"

    async def translate(
        self, text: str, source_lang: str, target_lang: str
    ) -> FreeTranslateResult:
        query = urlencode(
            {
                "client": "gtx",
                "sl": source_lang,
                "tl": target_lang,
                "dt": "t",
                "q": text,
            }
        )
        data = await self._get_json(
            f"{self.base_url}?{query}", {"User-Agent": _BROWSER_UA}
        )
        # [[["translated","original",null,null,10], ...], null, "en", ...]
        if not isinstance(data, list) or not data or not isinstance(data[0], list):
            raise FreeBackendError("Invalid Google response format")
        translated = "".join(
            str(item[0])
            for item in data[0]
            if isinstance(item, list) and item and item[0]
        )
        if not translated:
            raise FreeBackendError("Empty Google translation")
        detected = data[2] if len(data) > 2 and isinstance(data[2], str) else None
        return FreeTranslateResult(
            translated_text=translated,
            detected_source_lang=detected,
            provider=self.name,
        )


class MyMemoryBackend(HTTPFreeBackend):
    """MyMemory public API (daily word quota without a key)."""

    name = "mymemory"
    base_url = "https://api.mymemory.translated.net/get"

    async def translate(
        self, text: str, source_lang: str, target_lang: str
    ) -> FreeTranslateResult:
        src = "autodetect" if source_lang == AUTO_LANG else source_lang
        query = urlencode({"q": text, "langpair": f"{src}|{target_lang}"})
        data = await self._get_json(f"{self.base_url}?{query}")
        if not isinstance(data, dict):
            raise FreeBackendError("Invalid MyMemory response format")
        status = data.get("responseStatus")
        if status not in (200, "200"):
            raise FreeBackendError(f"MyMemory translation failed: {status}")
        if data.get("quotaFinished"):
            raise FreeBackendError("MyMemory daily quota exceeded")
        payload = data.get("responseData") or {}
        translated = payload.get("translatedText")
        if not translated:
            raise FreeBackendError("MyMemory returned an empty translation")
        return FreeTranslateResult(
            translated_text=translated,
            detected_source_lang=payload.get("detectedLanguage"),
            provider=self.name,
        )


class LingvaBackend(HTTPFreeBackend):
    """Lingva, an open Google Translate front-end."""

    name = "lingva"
    base_url = "https://lingva.ml/api/v1"

    async def translate(
        self, text: str, source_lang: str, target_lang: str
    ) -> FreeTranslateResult:
        url = (
            f"{self.base_url}/{quote(source_lang)}/{quote(target_lang)}/"
            f"{quote(text, safe='')}"
        )
        data = await self._get_json(url, {"User-Agent": "WebTranslator/1.0"})
        if not isinstance(data, dict) or not data.get("translation"):
            raise FreeBackendError("Invalid Lingva response format")
        return FreeTranslateResult(
            translated_text=data["translation"], provider=self.name
        )


def default_backends(config: RacerConfig | None = None) -> list[FreeBackend]:
    timeout = (config or RacerConfig()).request_timeout_seconds
    return [
        GoogleDirectBackend(timeout_seconds=timeout),
        MyMemoryBackend(timeout_seconds=timeout),
        LingvaBackend(timeout_seconds=timeout),
    ]


class FreeTranslationRacer:
    """Race every configured backend; keep the first success."""

    def __init__(
        self,
        backends: Sequence[FreeBackend] | None = None,
        config: RacerConfig | None = None,
    ) -> None:
        self._config = config or RacerConfig()
        self._backends = (
            list(backends) if backends is not None else default_backends(self._config)
        )
        if not self._backends:
            raise ValueError("FreeTranslationRacer needs at least one backend")

    @property
    def backend_names(self) -> list[str]:
        return [b.name for b in self._backends]

    async def translate(
        self,
        text: str,
        target_lang: str,
        source_lang: str = AUTO_LANG,
    ) -> FreeTranslateResult:
        """Return the first successful backend result.

        Raises ``AllBackendsFailedError`` listing each genuine failure when
        no backend succeeds.
        """
        src = normalize_lang(source_lang or AUTO_LANG)
        tgt = normalize_lang(target_lang)
        logger.debug("Racing %d backends for %r", len(self._backends), text[:30])

        tasks: dict[asyncio.Task, FreeBackend] = {
            asyncio.create_task(
                backend.translate(text, src, tgt), name=f"free:{backend.name}"
            ): backend
            for backend in self._backends
        }
        failures: list[BackendFailure] = []
        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    backend = tasks[task]
                    if task.cancelled():
                        continue
                    exc = task.exception()
                    if exc is None:
                        result = task.result()
                        logger.info("Free translation winner: %s", backend.name)
                        record_race_winner(backend.name)
                        return result
                    logger.debug("Backend %s failed: %s", backend.name, exc)
                    failures.append(BackendFailure(backend.name, exc))
        finally:
            losers = [t for t in tasks if not t.done()]
            for task in losers:
                task.cancel()
            if losers:
                await asyncio.gather(*losers, return_exceptions=True)

        raise AllBackendsFailedError(failures)

    async def detect_language(self, text: str) -> str:
        """Network detection with a short timeout, heuristic fallback."""
        sample = text[: self._config.detect_sample_chars]
        backend = next(
            (b for b in self._backends if b.name == GoogleDirectBackend.name),
            self._backends[0],
        )
        try:
            result = await asyncio.wait_for(
                backend.translate(sample, AUTO_LANG, DEFAULT_SOURCE_LANG),
                timeout=self._config.detect_timeout_seconds,
            )
        except (asyncio.TimeoutError, FreeBackendError) as exc:
            logger.info("Network language detection unavailable: %s", exc)
            return cjk_ratio_language(text, self._config.cjk_ratio_threshold)
        if result.detected_source_lang:
            return normalize_lang(result.detected_source_lang)
        return DEFAULT_SOURCE_LANG
