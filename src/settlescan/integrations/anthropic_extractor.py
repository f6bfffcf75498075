"""Claude adapter built on the Anthropic SDK.

Claude is called directly through the SDK rather than the relay; the SDK
handles authentication and the API version header.
"""

import logging
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from settlescan.catalog import Provider
from settlescan.integrations.base import (
    ExtractionError,
    ProviderResponseError,
    ProviderTransportError,
)
from settlescan.integrations.prompts import PromptLibrary
from settlescan.integrations.shapes import extract_embedded_json
from settlescan.models import PageItem, ProviderSettings

logger = logging.getLogger(__name__)


class ExtractionRefusedError(ExtractionError):
    """Raised when the model refuses to process the request."""


class ExtractionIncompleteError(ExtractionError):
    """Raised when the response is truncated due to token limits."""


class ClaudeAdapter:
    """
    Claude vision adapter.

    Sends the page as a base64 image block followed by the chat instruction
    and reads the JSON object out of the text blocks of the reply.
    """

    provider = Provider.CLAUDE

    def __init__(
        self,
        prompts: PromptLibrary | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.0,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the Claude adapter.

        Args:
            prompts: Prompt templates (default: the packaged templates)
            max_tokens: Maximum tokens for response (default: 4000)
            temperature: Sampling temperature (default: 0.0 for deterministic)
            timeout: Request timeout in seconds (default: SDK default)
        """
        self.prompts = prompts or PromptLibrary()
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self._clients: dict[str, AsyncAnthropic] = {}

    def client_for(self, api_key: str) -> AsyncAnthropic:
        """Return a cached SDK client for ``api_key``."""
        client = self._clients.get(api_key)
        if client is None:
            kwargs: dict[str, Any] = {"api_key": api_key}
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            client = AsyncAnthropic(**kwargs)
            self._clients[api_key] = client
        return client

    def instruction_text(self, settings: ProviderSettings) -> str:
        return self.prompts.chat_instruction()

    def build_messages(self, page: PageItem) -> list[dict[str, Any]]:
        return [
            {
                "role": "user",
                "content": [
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": page.mime_type,
                            "data": page.image_bytes,
                        },
                    },
                    {"type": "text", "text": self.prompts.chat_instruction()},
                ],
            }
        ]

    async def extract(
        self,
        page: PageItem,
        settings: ProviderSettings,
        credentials: str | None,
    ) -> dict[str, Any]:
        """
        Extract the raw settlement fields of one page.

        Raises:
            ExtractionRefusedError: If the model refuses the request
            ExtractionIncompleteError: If response is truncated
            ProviderTransportError: If the API cannot be reached
            ProviderResponseError: If the API answers with an error status
            ResponseParseError: If no JSON object is found in the reply
        """
        client = self.client_for(credentials or "")
        try:
            response = await client.messages.create(
                model=settings.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=self.build_messages(page),  # type: ignore[arg-type]
            )
        except anthropic.APIConnectionError as e:
            raise ProviderTransportError(f"claude request failed: {e}") from e
        except anthropic.APIStatusError as e:
            raise ProviderResponseError(self.provider.value, e.status_code, e.message) from e

        if response.stop_reason == "refusal":
            raise ExtractionRefusedError("Model refused to process the request")

        if response.stop_reason == "max_tokens":
            raise ExtractionIncompleteError(
                "Response truncated due to token limit. Try increasing max_tokens."
            )

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        logger.debug(
            "Claude usage: input=%s output=%s",
            response.usage.input_tokens,
            response.usage.output_tokens,
        )
        return extract_embedded_json(text)
