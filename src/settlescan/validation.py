"""Coerce free-form provider output into an ExtractedRecord.

Provider answers are derived from model-generated text and are frequently
malformed: thousands separators, currency symbols, missing keys, nulls.
Nothing here raises; unusable values fall back to ``0`` (or ``''`` for the
date).
"""

import math
import re
from collections.abc import Mapping
from typing import Any

from settlescan.models import RECORD_FIELDS, ExtractedRecord

# Thousands separators, whitespace and the currency markers OCR and models emit
_NOISE = re.compile(r"US\$|[,\s₩$\\원]")

KOREAN_DATE = re.compile(r"(\d{4})년\s*(\d{1,2})월\s*(\d{1,2})일")
DOTTED_DATE = re.compile(r"(\d{4}\.\d{1,2}\.\d{1,2})(?!\d)")
ISO_DATE = re.compile(r"(\d{4}-\d{2}-\d{2})")
# Dash-separated already, including unpadded dotted dates
DASHED_DATE = re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$")


def to_number(value: Any) -> float:
    """Parse ``value`` as a finite float, returning 0 when that is impossible."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
    elif isinstance(value, str):
        cleaned = _NOISE.sub("", value)
        if not cleaned:
            return 0.0
        try:
            number = float(cleaned)
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_date(text: str) -> str:
    """Find a date in ``text`` and return it dash-separated, or ``''``.

    ``2024년 3월 5일`` becomes ``2024-03-05``. Dotted dates only have their
    dots replaced, so ``2024.3.5`` becomes ``2024-3-5``.
    """
    if match := KOREAN_DATE.search(text):
        year, month, day = match.groups()
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    if match := DOTTED_DATE.search(text):
        return match.group(1).replace(".", "-")
    if match := ISO_DATE.search(text):
        return match.group(1)
    return ""


def to_date(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    text = value.strip()
    if DASHED_DATE.match(text):
        return text
    return parse_date(text)


def normalize(raw: Any) -> ExtractedRecord:
    """Build a complete record from whatever a provider returned."""
    if not isinstance(raw, Mapping):
        return ExtractedRecord()

    values: dict[str, Any] = {"date": to_date(raw.get("date"))}
    for field in RECORD_FIELDS[1:]:
        values[field] = to_number(raw.get(field))
    return ExtractedRecord.model_validate(values)
