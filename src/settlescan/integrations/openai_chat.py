"""OpenAI adapter: chat turn with a text block and a data-URI image block."""

from typing import Any

from settlescan.catalog import Provider
from settlescan.integrations.prompts import PromptLibrary
from settlescan.integrations.shapes import unwrap_chat_message_json
from settlescan.integrations.transport import Transport
from settlescan.models import PageItem, ProviderSettings


def data_uri(page: PageItem) -> str:
    return f"data:{page.mime_type};base64,{page.image_bytes}"


def chat_messages(instruction: str, page: PageItem) -> list[dict[str, Any]]:
    """A single user turn carrying the instruction and the page image."""
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": instruction},
                {"type": "image_url", "image_url": {"url": data_uri(page)}},
            ],
        }
    ]


class OpenAIAdapter:
    provider = Provider.OPENAI

    def __init__(self, transport: Transport, prompts: PromptLibrary | None = None) -> None:
        self.transport = transport
        self.prompts = prompts or PromptLibrary()

    def instruction_text(self, settings: ProviderSettings) -> str:
        return self.prompts.chat_instruction()

    def build_payload(self, page: PageItem, model: str) -> dict[str, Any]:
        return {
            "model": model,
            "messages": chat_messages(self.prompts.chat_instruction(), page),
            "response_format": {"type": "json_object"},
        }

    async def extract(
        self,
        page: PageItem,
        settings: ProviderSettings,
        credentials: str | None,
    ) -> dict[str, Any]:
        response = await self.transport.post_json(
            self.provider,
            settings.model,
            self.build_payload(page, settings.model),
            credentials or "",
        )
        return unwrap_chat_message_json(response)
