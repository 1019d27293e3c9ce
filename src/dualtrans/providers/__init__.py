"""Providers domain: LLM vendor adapters and keyless translation backends."""

from dualtrans.providers.adapters import ClaudeProvider
from dualtrans.providers.adapters import GeminiProvider
from dualtrans.providers.adapters import OpenAICompatibleProvider
from dualtrans.providers.base import BaseChatProvider
from dualtrans.providers.base import ChatProvider
from dualtrans.providers.free import FreeBackend
from dualtrans.providers.free import FreeTranslationRacer
from dualtrans.providers.free import GoogleDirectBackend
from dualtrans.providers.free import LingvaBackend
from dualtrans.providers.free import MyMemoryBackend
from dualtrans.providers.registry import build_provider
from dualtrans.providers.registry import has_credentials
from dualtrans.providers.registry import list_providers
from dualtrans.providers.registry import PROVIDER_CATALOG
from dualtrans.providers.registry import PROVIDER_PRIORITY
from dualtrans.providers.registry import select_provider

__all__ = [
    "BaseChatProvider",
    "ChatProvider",
    "ClaudeProvider",
    "FreeBackend",
    "FreeTranslationRacer",
    "GeminiProvider",
    "GoogleDirectBackend",
    "LingvaBackend",
    "MyMemoryBackend",
    "OpenAICompatibleProvider",
    "PROVIDER_CATALOG",
    "PROVIDER_PRIORITY",
    "build_provider",
    "has_credentials",
    "list_providers",
    "select_provider",
]
