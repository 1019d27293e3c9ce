"""Provider contract and the shared HTTP/retry machinery.

Every vendor implements ``chat(messages, options) -> ChatResponse``.
Outbound calls use ``urllib`` in a worker thread so the event loop is
never blocked.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Protocol
from typing import runtime_checkable
from urllib.error import HTTPError
from urllib.error import URLError
from urllib.request import Request
from urllib.request import urlopen

from dualtrans.config import ProviderConfig
from dualtrans.errors import ProviderTerminalError
from dualtrans.errors import ProviderTransientError
from dualtrans.models.schemas import ChatMessage
from dualtrans.models.schemas import ChatOptions
from dualtrans.models.schemas import ChatResponse

logger = logging.getLogger(__name__)


@runtime_checkable
class ChatProvider(Protocol):
    """Uniform chat capability implemented once per vendor."""

    name: str

    async def chat(
        self,
        messages: list[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse: ...


class BaseChatProvider:
    """JSON-over-HTTP vendor with exponential backoff on transient failures.

    5xx responses and network errors are retried up to
    ``config.max_attempts`` times, sleeping ``base * 2**attempt`` seconds
    between attempts. 4xx responses raise ``ProviderTerminalError`` at once.
    """

    name = "base"
    default_base_url = ""
    default_model = ""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        default_model: str | None = None,
        config: ProviderConfig | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or self.default_base_url).rstrip("/")
        self._default_model = default_model or self.default_model
        self._config = config or ProviderConfig()

    async def chat(
        self,
        messages: list[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        raise NotImplementedError

    def _model_for(self, options: ChatOptions | None) -> str:
        if options is not None and options.model:
            return options.model
        return self._default_model

    async def _post_json(
        self,
        url: str,
        payload: dict,
        headers: dict[str, str],
    ) -> dict:
        attempts = max(self._config.max_attempts, 1)
        last_error: ProviderTransientError | None = None
        for attempt in range(attempts):
            try:
                return await asyncio.to_thread(
                    self._post_json_sync,
                    url,
                    payload,
                    headers,
                    self._config.timeout_seconds,
                )
            except ProviderTransientError as exc:
                last_error = exc
                logger.warning(
                    "provider=%s attempt=%d/%d transient failure: %s",
                    self.name,
                    attempt + 1,
                    attempts,
                    exc,
                )
            if attempt < attempts - 1:
                await asyncio.sleep(self._config.backoff_base_seconds * (2**attempt))

        assert last_error is not None
        raise last_error

    def _post_json_sync(
        self,
        url: str,
        payload: dict,
        headers: dict[str, str],
        timeout_seconds: float,
    ) -> dict:
        request = Request(
            url=url,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json", **headers},
            method="POST",
        )
        try:
            with urlopen(request, timeout=timeout_seconds) as response:
                raw = response.read().decode("utf-8")
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")[:200]
            if 400 <= exc.code < 500:
                raise ProviderTerminalError(
                    f"API error {exc.code}: {detail}", provider=self.name
                ) from exc
            raise ProviderTransientError(
                f"HTTP {exc.code}: {detail}", provider=self.name
            ) from exc
        except URLError as exc:
            raise ProviderTransientError(
                f"network error: {exc.reason}", provider=self.name
            ) from exc
        except OSError as exc:
            raise ProviderTransientError(
                f"IO error: {exc}", provider=self.name
            ) from exc

        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise ProviderTerminalError(
                "provider returned invalid JSON", provider=self.name
            ) from exc
        if not isinstance(data, dict):
            raise ProviderTerminalError(
                "provider returned a non-object JSON body", provider=self.name
            )
        return data
