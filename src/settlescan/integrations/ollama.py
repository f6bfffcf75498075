"""Ollama adapter for local vision models; called directly, never relayed."""

import logging
from typing import Any

import httpx

from settlescan.catalog import ModelInfo, Provider
from settlescan.integrations.prompts import PromptLibrary
from settlescan.integrations.shapes import extract_embedded_json
from settlescan.integrations.transport import probe, send
from settlescan.models import PageItem, ProviderSettings

logger = logging.getLogger(__name__)


class OllamaAdapter:
    """
    Local Ollama server adapter.

    Example:
        >>> adapter = OllamaAdapter(client, "http://localhost:11434")
        >>> raw = await adapter.extract(page, settings, None)
    """

    provider = Provider.OLLAMA

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        prompts: PromptLibrary | None = None,
        temperature: float = 0.1,
    ) -> None:
        self.client = client
        self.endpoint = endpoint.rstrip("/")
        self.prompts = prompts or PromptLibrary()
        self.temperature = temperature

    def instruction_text(self, settings: ProviderSettings) -> str:
        return self.prompts.chat_instruction()

    def build_payload(self, page: PageItem, model: str) -> dict[str, Any]:
        return {
            "model": model,
            "prompt": self.prompts.chat_instruction(),
            "images": [page.image_bytes],
            "stream": False,
            "options": {"temperature": self.temperature, "top_p": 0.9},
        }

    async def extract(
        self,
        page: PageItem,
        settings: ProviderSettings,
        credentials: str | None,
    ) -> dict[str, Any]:
        response = await send(
            self.client,
            self.provider.value,
            f"{self.endpoint}/api/generate",
            json=self.build_payload(page, settings.model),
        )
        content = response.get("response") if isinstance(response, dict) else None
        return extract_embedded_json(content)

    async def is_available(self, timeout: float = 1.0) -> bool:
        return await probe(self.client, f"{self.endpoint}/api/tags", timeout=timeout)

    async def list_models(self) -> list[ModelInfo]:
        """Models installed on the local server; empty when it cannot be reached."""
        try:
            response = await self.client.get(f"{self.endpoint}/api/tags")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Failed to fetch models for ollama: %s", e)
            return []

        return [
            ModelInfo(
                id=model["name"],
                name=model["name"],
                description=(model.get("details") or {}).get("parameter_size", "Ollama model"),
            )
            for model in data.get("models", [])
            if isinstance(model, dict) and model.get("name")
        ]
