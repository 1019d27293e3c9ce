"""Provider catalog, lookup table and credential-based selection."""

from __future__ import annotations

from dualtrans.config import ProviderConfig
from dualtrans.errors import InvalidRequestError
from dualtrans.errors import NoCredentialsError
from dualtrans.models.schemas import ModelInfo
from dualtrans.models.schemas import ProviderInfo
from dualtrans.providers.adapters import ClaudeProvider
from dualtrans.providers.adapters import DeepSeekProvider
from dualtrans.providers.adapters import GeminiProvider
from dualtrans.providers.adapters import GroqProvider
from dualtrans.providers.adapters import MoonshotProvider
from dualtrans.providers.adapters import OpenAICompatibleProvider
from dualtrans.providers.adapters import QwenProvider
from dualtrans.providers.adapters import ZhipuProvider
from dualtrans.providers.base import BaseChatProvider
from dualtrans.providers.base import ChatProvider

PROVIDER_CLASSES: dict[str, type[BaseChatProvider]] = {
    "openai": OpenAICompatibleProvider,
    "claude": ClaudeProvider,
    "deepseek": DeepSeekProvider,
    "gemini": GeminiProvider,
    "qwen": QwenProvider,
    "moonshot": MoonshotProvider,
    "zhipu": ZhipuProvider,
    "groq": GroqProvider,
}

# Auto-selection order when the caller did not ask for a provider.
PROVIDER_PRIORITY = (
    "claude",
    "openai",
    "deepseek",
    "gemini",
    "groq",
    "qwen",
    "moonshot",
    "zhipu",
)


def _models(*rows: tuple[str, str, int]) -> list[ModelInfo]:
    return [ModelInfo(id=i, name=n, context_window=w) for i, n, w in rows]


PROVIDER_CATALOG: dict[str, ProviderInfo] = {
    "openai": ProviderInfo(
        id="openai",
        name="OpenAI",
        models=_models(
            ("gpt-4o", "GPT-4o", 128000),
            ("gpt-4o-mini", "GPT-4o Mini", 128000),
            ("gpt-4-turbo", "GPT-4 Turbo", 128000),
            ("gpt-3.5-turbo", "GPT-3.5 Turbo", 16385),
        ),
        default_model="gpt-4o-mini",
        api_key_name="OPENAI_API_KEY",
        docs_url="https://platform.openai.com/api-keys",
    ),
    "claude": ProviderInfo(
        id="claude",
        name="Anthropic Claude",
        models=_models(
            ("claude-sonnet-4-20250514", "Claude Sonnet 4", 200000),
            ("claude-3-5-sonnet-latest", "Claude 3.5 Sonnet", 200000),
            ("claude-3-haiku-20240307", "Claude 3 Haiku (Fast)", 200000),
        ),
        default_model="claude-3-5-sonnet-latest",
        api_key_name="ANTHROPIC_API_KEY",
        docs_url="https://console.anthropic.com/settings/keys",
    ),
    "deepseek": ProviderInfo(
        id="deepseek",
        name="DeepSeek",
        models=_models(
            ("deepseek-chat", "DeepSeek Chat", 64000),
            ("deepseek-coder", "DeepSeek Coder", 64000),
        ),
        default_model="deepseek-chat",
        api_key_name="DEEPSEEK_API_KEY",
        docs_url="https://platform.deepseek.com/api_keys",
    ),
    "gemini": ProviderInfo(
        id="gemini",
        name="Google Gemini",
        models=_models(
            ("gemini-1.5-flash", "Gemini 1.5 Flash", 1000000),
            ("gemini-1.5-pro", "Gemini 1.5 Pro", 2000000),
            ("gemini-pro", "Gemini Pro", 32000),
        ),
        default_model="gemini-1.5-flash",
        api_key_name="GOOGLE_API_KEY",
        docs_url="https://aistudio.google.com/app/apikey",
    ),
    "qwen": ProviderInfo(
        id="qwen",
        name="Qwen",
        models=_models(
            ("qwen-turbo", "Qwen Turbo", 8000),
            ("qwen-plus", "Qwen Plus", 32000),
            ("qwen-max", "Qwen Max", 32000),
        ),
        default_model="qwen-turbo",
        api_key_name="DASHSCOPE_API_KEY",
        docs_url="https://dashscope.console.aliyun.com/apiKey",
    ),
    "moonshot": ProviderInfo(
        id="moonshot",
        name="Moonshot Kimi",
        models=_models(
            ("moonshot-v1-8k", "Moonshot 8K", 8000),
            ("moonshot-v1-32k", "Moonshot 32K", 32000),
            ("moonshot-v1-128k", "Moonshot 128K", 128000),
        ),
        default_model="moonshot-v1-8k",
        api_key_name="MOONSHOT_API_KEY",
        docs_url="https://platform.moonshot.cn/console/api-keys",
    ),
    "zhipu": ProviderInfo(
        id="zhipu",
        name="Zhipu GLM",
        models=_models(
            ("glm-4-flash", "GLM-4 Flash (Free)", 128000),
            ("glm-4", "GLM-4", 128000),
            ("glm-4-plus", "GLM-4 Plus", 128000),
        ),
        default_model="glm-4-flash",
        api_key_name="ZHIPU_API_KEY",
        docs_url="https://open.bigmodel.cn/usercenter/apikeys",
    ),
    "groq": ProviderInfo(
        id="groq",
        name="Groq (Fast)",
        models=_models(
            ("llama-3.1-8b-instant", "Llama 3.1 8B", 131072),
            ("llama-3.1-70b-versatile", "Llama 3.1 70B", 131072),
            ("mixtral-8x7b-32768", "Mixtral 8x7B", 32768),
        ),
        default_model="llama-3.1-8b-instant",
        api_key_name="GROQ_API_KEY",
        docs_url="https://console.groq.com/keys",
    ),
}


def usable_keys(api_keys: dict[str, str] | None) -> dict[str, str]:
    """Drop unknown providers and blank keys."""
    if not api_keys:
        return {}
    return {
        name: key.strip()
        for name, key in api_keys.items()
        if name in PROVIDER_CLASSES and isinstance(key, str) and key.strip()
    }


def has_credentials(api_keys: dict[str, str] | None) -> bool:
    """``True`` when at least one known provider has a non-blank key."""
    return bool(usable_keys(api_keys))


def select_provider(
    api_keys: dict[str, str] | None,
    preferred: str | None = None,
) -> tuple[str, str]:
    """Pick ``(provider, api_key)``.

    The explicitly requested provider wins when its key is present;
    otherwise the first provider in ``PROVIDER_PRIORITY`` with a key.
    """
    keys = usable_keys(api_keys)
    if preferred and preferred in keys:
        return preferred, keys[preferred]
    for name in PROVIDER_PRIORITY:
        if name in keys:
            return name, keys[name]
    raise NoCredentialsError()


def build_provider(
    name: str,
    api_key: str,
    config: ProviderConfig | None = None,
) -> ChatProvider:
    """Instantiate the adapter registered under *name*."""
    provider_cls = PROVIDER_CLASSES.get(name)
    if provider_cls is None:
        supported = ", ".join(sorted(PROVIDER_CLASSES))
        raise InvalidRequestError(
            f"Unknown provider '{name}'. Supported providers: {supported}."
        )
    return provider_cls(
        api_key,
        default_model=PROVIDER_CATALOG[name].default_model,
        config=config,
    )


def default_model_for(name: str) -> str:
    return PROVIDER_CATALOG[name].default_model


def list_providers() -> list[ProviderInfo]:
    return list(PROVIDER_CATALOG.values())
