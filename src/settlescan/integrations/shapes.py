"""Unwrapping of the provider response envelopes.

Every provider answer falls into one of a few shapes; each shape has one
unwrap function turning the envelope into a raw mapping.
"""

import json
import re
from enum import Enum
from typing import Any

from settlescan.integrations.base import ResponseParseError

_EMBEDDED_OBJECT = re.compile(r"\{[\s\S]*?\}")


class ResponseShape(Enum):
    SINGLE_JSON_TEXT = "single_json_text"  # candidates[0].content.parts[0].text
    CHAT_MESSAGE_JSON = "chat_message_json"  # choices[0].message.content
    EMBEDDED_JSON = "embedded_json"  # first {...} block inside prose
    ELEMENT_LIST = "element_list"  # layout elements, mined by keyword


def _dig(payload: Any, *path: str | int) -> Any:
    current = payload
    for key in path:
        try:
            current = current[key]
        except (KeyError, IndexError, TypeError):
            return None
    return current


def parse_json_object(text: str) -> dict[str, Any]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Answer is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ResponseParseError("Answer JSON is not an object")
    return parsed


def unwrap_single_json_text(payload: Any) -> dict[str, Any]:
    """Read the first candidate's first text part and parse it."""
    text = _dig(payload, "candidates", 0, "content", "parts", 0, "text")
    if not isinstance(text, str) or not text.strip():
        raise ResponseParseError("The AI response is empty")
    return parse_json_object(text.strip())


def unwrap_chat_message_json(payload: Any) -> dict[str, Any]:
    """Parse the first choice's message content."""
    content = _dig(payload, "choices", 0, "message", "content")
    if not isinstance(content, str) or not content.strip():
        raise ResponseParseError("No message content in chat response")
    return parse_json_object(content)


def extract_embedded_json(text: str | None) -> dict[str, Any]:
    """Parse the first ``{...}`` block of ``text``; models may wrap JSON in prose."""
    if not text:
        raise ResponseParseError("The AI response is empty")
    match = _EMBEDDED_OBJECT.search(text)
    if match is None:
        raise ResponseParseError(f"No JSON object found in response: {text[:100]}")
    return parse_json_object(match.group(0))


def unwrap_chat_embedded_json(payload: Any) -> dict[str, Any]:
    return extract_embedded_json(_dig(payload, "choices", 0, "message", "content"))


def unwrap_element_list(payload: Any) -> list[dict[str, Any]] | None:
    """Return the ``elements`` list of a layout response, or None when absent."""
    elements = _dig(payload, "elements")
    if isinstance(elements, list) and elements:
        return [el for el in elements if isinstance(el, dict)]
    return None


def fallback_text(payload: Any) -> str:
    """Flat text of a layout response that has no element list."""
    content = _dig(payload, "content")
    if not isinstance(content, dict):
        raise ResponseParseError("Unexpected response structure")
    text = content.get("text") or content.get("markdown")
    if text is None:
        raise ResponseParseError("Unexpected response structure")
    if not str(text).strip():
        raise ResponseParseError("Extracted text is empty")
    return str(text)
