"""Wiring of the concrete adapters into an AdapterRegistry."""

import httpx

from settlescan.config import AppConfig
from settlescan.integrations.anthropic_extractor import ClaudeAdapter
from settlescan.integrations.base import AdapterRegistry
from settlescan.integrations.gemini import GeminiAdapter
from settlescan.integrations.ollama import OllamaAdapter
from settlescan.integrations.openai_chat import OpenAIAdapter
from settlescan.integrations.prompts import PromptLibrary
from settlescan.integrations.transport import Transport
from settlescan.integrations.upstage import UpstageAdapter


def build_registry(
    transport: Transport,
    client: httpx.AsyncClient,
    config: AppConfig,
    prompts: PromptLibrary | None = None,
) -> AdapterRegistry:
    """Register one adapter per supported provider."""
    prompts = prompts or PromptLibrary()
    return AdapterRegistry(
        [
            GeminiAdapter(transport, prompts),
            OpenAIAdapter(transport, prompts),
            UpstageAdapter(transport, prompts),
            OllamaAdapter(client, config.ollama_endpoint, prompts),
            ClaudeAdapter(prompts, timeout=config.request_timeout),
        ]
    )
