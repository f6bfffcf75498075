"""Provider adapters, transports and export integrations."""

from settlescan.integrations.anthropic_extractor import (
    ClaudeAdapter,
    ExtractionIncompleteError,
    ExtractionRefusedError,
)
from settlescan.integrations.base import (
    AdapterRegistry,
    ExtractionError,
    ProviderAdapter,
    ProviderResponseError,
    ProviderTransportError,
    ResponseParseError,
)
from settlescan.integrations.gemini import GeminiAdapter
from settlescan.integrations.ollama import OllamaAdapter
from settlescan.integrations.openai_chat import OpenAIAdapter
from settlescan.integrations.registry import build_registry
from settlescan.integrations.upstage import UpstageAdapter

__all__ = [
    "AdapterRegistry",
    "ClaudeAdapter",
    "ExtractionError",
    "ExtractionIncompleteError",
    "ExtractionRefusedError",
    "GeminiAdapter",
    "OllamaAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "ProviderResponseError",
    "ProviderTransportError",
    "ResponseParseError",
    "UpstageAdapter",
    "build_registry",
]
