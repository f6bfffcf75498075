"""Upstage adapter with a vision-chat and a structured-parse sub-mode.

``solar-docvision-preview`` is a chat model answering with JSON wrapped in
prose. Every other model goes through document parsing: the raw page is
uploaded and the settlement fields are mined out of the returned layout
elements.
"""

import base64
import binascii
import json
import logging
from typing import Any

from settlescan.catalog import Provider
from settlescan.integrations.base import ResponseParseError
from settlescan.integrations.openai_chat import chat_messages
from settlescan.integrations.prompts import PromptLibrary
from settlescan.integrations.shapes import (
    fallback_text,
    unwrap_chat_embedded_json,
    unwrap_element_list,
)
from settlescan.integrations.transport import UPSTAGE_DOCVISION_MODEL, Transport
from settlescan.integrations.upstage_mining import mine_elements, mine_text
from settlescan.models import PageItem, ProviderSettings

logger = logging.getLogger(__name__)

PARSE_MODEL = "document-parse"


def parse_form_fields() -> dict[str, str]:
    return {
        "model": PARSE_MODEL,
        "ocr": "auto",
        "output_formats": json.dumps(["text"]),
    }


def document_filename(mime_type: str) -> str:
    return "document.png" if "png" in mime_type else "document.jpg"


class UpstageAdapter:
    provider = Provider.UPSTAGE

    def __init__(self, transport: Transport, prompts: PromptLibrary | None = None) -> None:
        self.transport = transport
        self.prompts = prompts or PromptLibrary()

    @staticmethod
    def is_vision_chat(settings: ProviderSettings) -> bool:
        return settings.model == UPSTAGE_DOCVISION_MODEL

    def instruction_text(self, settings: ProviderSettings) -> str:
        if self.is_vision_chat(settings):
            return self.prompts.chat_instruction()
        return ""  # document parsing takes no prompt

    async def extract(
        self,
        page: PageItem,
        settings: ProviderSettings,
        credentials: str | None,
    ) -> dict[str, Any]:
        if self.is_vision_chat(settings):
            return await self._extract_vision_chat(page, settings, credentials or "")
        return await self._extract_structured(page, settings, credentials or "")

    async def _extract_vision_chat(
        self, page: PageItem, settings: ProviderSettings, api_key: str
    ) -> dict[str, Any]:
        payload = {
            "model": settings.model,
            "messages": chat_messages(self.prompts.chat_instruction(), page),
            "stream": False,
        }
        response = await self.transport.post_json(
            self.provider, settings.model, payload, api_key
        )
        return unwrap_chat_embedded_json(response)

    async def _extract_structured(
        self, page: PageItem, settings: ProviderSettings, api_key: str
    ) -> dict[str, Any]:
        try:
            document = base64.b64decode(page.image_bytes, validate=True)
        except binascii.Error as e:
            raise ResponseParseError(f"Page image of {page.label} is not valid base64") from e

        files = {"document": (document_filename(page.mime_type), document, page.mime_type)}
        response = await self.transport.post_form(
            self.provider, settings.model, parse_form_fields(), files, api_key
        )
        return self.mine_response(response)

    @staticmethod
    def mine_response(response: Any) -> dict[str, Any]:
        """Turn a document-parse response into a partial field mapping."""
        elements = unwrap_element_list(response)
        if elements is not None:
            logger.debug("Mining %d layout elements", len(elements))
            return mine_elements(elements)

        logger.debug("No layout elements in response, mining flat text")
        return mine_text(fallback_text(response))
