"""Concrete vendor adapters.

Six vendors speak the OpenAI chat-completions dialect and differ only in
base URL and default model. Claude and Gemini have their own wire formats.
"""

from __future__ import annotations

from dualtrans.errors import ProviderTerminalError
from dualtrans.models.schemas import ChatMessage
from dualtrans.models.schemas import ChatOptions
from dualtrans.models.schemas import ChatResponse
from dualtrans.models.schemas import TokenUsage
from dualtrans.providers.base import BaseChatProvider

_DEFAULT_MAX_TOKENS = 4096
_DEFAULT_TEMPERATURE = 0.7


def _split_system(messages: list[ChatMessage]) -> tuple[str, list[ChatMessage]]:
    """Separate the system prompt from the conversation turns."""
    system = "\n\n".join(m.content for m in messages if m.role == "system")
    return system, [m for m in messages if m.role != "system"]


class OpenAICompatibleProvider(BaseChatProvider):
    """OpenAI-compatible ``/chat/completions`` adapter."""

    name = "openai"
    default_base_url = "https://api.openai.com/v1"
    default_model = "gpt-4o-mini"

    async def chat(
        self,
        messages: list[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        options = options or ChatOptions()
        model = self._model_for(options)
        payload = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": (
                options.temperature
                if options.temperature is not None
                else _DEFAULT_TEMPERATURE
            ),
            "max_tokens": options.max_tokens or _DEFAULT_MAX_TOKENS,
        }
        data = await self._post_json(
            f"{self._base_url}/chat/completions",
            payload,
            {"Authorization": f"Bearer {self._api_key}"},
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderTerminalError(
                "provider response missing choices[0].message.content",
                provider=self.name,
            ) from exc
        usage = data.get("usage") or {}
        return ChatResponse(
            content=content or "",
            tokens_used=TokenUsage(
                prompt=usage.get("prompt_tokens", 0),
                completion=usage.get("completion_tokens", 0),
                total=usage.get("total_tokens", 0),
            ),
            model=data.get("model") or model,
        )


class DeepSeekProvider(OpenAICompatibleProvider):
    name = "deepseek"
    default_base_url = "https://api.deepseek.com"
    default_model = "deepseek-chat"


class QwenProvider(OpenAICompatibleProvider):
    name = "qwen"
    default_base_url = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    default_model = "qwen-turbo"


class MoonshotProvider(OpenAICompatibleProvider):
    name = "moonshot"
    default_base_url = "https://api.moonshot.cn/v1"
    default_model = "moonshot-v1-8k"


class ZhipuProvider(OpenAICompatibleProvider):
    name = "zhipu"
    default_base_url = "https://open.bigmodel.cn/api/paas/v4"
    default_model = "glm-4-flash"


class GroqProvider(OpenAICompatibleProvider):
    name = "groq"
    default_base_url = "https://api.groq.com/openai/v1"
    default_model = "llama-3.1-8b-instant"


class ClaudeProvider(BaseChatProvider):
    """Anthropic Messages API adapter; the system prompt is a top-level field."""

    name = "claude"
    default_base_url = "https://api.anthropic.com/v1"
    default_model = "claude-3-haiku-20240307"

    async def chat(
        self,
        messages: list[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        options = options or ChatOptions()
        model = self._model_for(options)
        system, turns = _split_system(messages)
        payload: dict = {
            "model": model,
            "max_tokens": options.max_tokens or _DEFAULT_MAX_TOKENS,
            "system": system,
            "messages": [{"role": m.role, "content": m.content} for m in turns],
        }
        if options.temperature is not None:
            payload["temperature"] = options.temperature
        data = await self._post_json(
            f"{self._base_url}/messages",
            payload,
            {"x-api-key": self._api_key, "anthropic-version": "2023-06-01"},
        )
        blocks = data.get("content") or []
        text = next(
            (
                b.get("text")
                for b in blocks
                if isinstance(b, dict) and b.get("type") == "text"
            ),
            None,
        )
        if not isinstance(text, str):
            raise ProviderTerminalError(
                "provider response missing a text content block",
                provider=self.name,
            )
        usage = data.get("usage") or {}
        prompt_tokens = usage.get("input_tokens", 0)
        completion_tokens = usage.get("output_tokens", 0)
        return ChatResponse(
            content=text,
            tokens_used=TokenUsage(
                prompt=prompt_tokens,
                completion=completion_tokens,
                total=prompt_tokens + completion_tokens,
            ),
            model=data.get("model") or model,
        )


class GeminiProvider(BaseChatProvider):
    """Google ``generateContent`` adapter; ``assistant`` turns become ``model``."""

    name = "gemini"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"
    default_model = "gemini-1.5-flash"

    async def chat(
        self,
        messages: list[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        options = options or ChatOptions()
        model = self._model_for(options)
        system, turns = _split_system(messages)
        payload: dict = {
            "contents": [
                {
                    "role": "model" if m.role == "assistant" else "user",
                    "parts": [{"text": m.content}],
                }
                for m in turns
            ],
            "generationConfig": {
                "temperature": (
                    options.temperature
                    if options.temperature is not None
                    else _DEFAULT_TEMPERATURE
                ),
                "maxOutputTokens": options.max_tokens or _DEFAULT_MAX_TOKENS,
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        data = await self._post_json(
            f"{self._base_url}/models/{model}:generateContent?key={self._api_key}",
            payload,
            {},
        )
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            reason = (data.get("promptFeedback") or {}).get("blockReason")
            raise ProviderTerminalError(
                f"provider response blocked: {reason}"
                if reason
                else "provider response missing candidates[0].content.parts[0].text",
                provider=self.name,
            ) from exc
        usage = data.get("usageMetadata") or {}
        return ChatResponse(
            content=text,
            tokens_used=TokenUsage(
                prompt=usage.get("promptTokenCount", 0),
                completion=usage.get("candidatesTokenCount", 0),
                total=usage.get("totalTokenCount", 0),
            ),
            model=model,
        )
