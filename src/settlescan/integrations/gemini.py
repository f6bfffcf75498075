"""Gemini adapter: one instruction part plus one inline image, JSON response mode."""

import logging
from typing import Any

from settlescan.catalog import Provider
from settlescan.integrations.prompts import PromptLibrary
from settlescan.integrations.shapes import unwrap_single_json_text
from settlescan.integrations.transport import Transport
from settlescan.models import PageItem, ProviderSettings

logger = logging.getLogger(__name__)


class GeminiAdapter:
    provider = Provider.GEMINI

    def __init__(self, transport: Transport, prompts: PromptLibrary | None = None) -> None:
        self.transport = transport
        self.prompts = prompts or PromptLibrary()

    def instruction_text(self, settings: ProviderSettings) -> str:
        return self.prompts.instruction()

    def build_payload(self, page: PageItem) -> dict[str, Any]:
        return {
            "contents": {
                "parts": [
                    {"text": self.prompts.instruction()},
                    {"inlineData": {"mimeType": page.mime_type, "data": page.image_bytes}},
                ]
            },
            "generationConfig": {"responseMimeType": "application/json"},
        }

    async def extract(
        self,
        page: PageItem,
        settings: ProviderSettings,
        credentials: str | None,
    ) -> dict[str, Any]:
        logger.debug("Sending %s to Gemini model %s", page.label, settings.model)
        response = await self.transport.post_json(
            self.provider, settings.model, self.build_payload(page), credentials or ""
        )
        return unwrap_single_json_text(response)
