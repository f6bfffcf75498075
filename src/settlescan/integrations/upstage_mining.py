"""Keyword heuristics that recover settlement fields from layout-parse output.

The document-parse endpoint returns OCR'd layout elements, not the fields we
want, so the fields are mined out of element text with regular expressions.
These functions are pure: text in, partial field mapping out. Fields that
cannot be found are simply absent from the result.
"""

import re
from collections.abc import Iterable
from typing import Any

from settlescan.validation import parse_date, to_number

# OCR renders the won sign as ₩, a backslash, or the 원 character
CURRENCY = r"[₩\\원]?"
USD = r"US\s*\$\s*([\d,]+(?:\.\d+)?)"

LABELED_QUANTITY = re.compile(r"수\s*량\s*([\d,]+)\s*GT", re.IGNORECASE)
QUANTITY = re.compile(r"([\d,]+)\s*GT", re.IGNORECASE)

INVOICE_CHARGE = re.compile(
    rf"COMMERCIAL\s+INVOICE\s+CH?AR?GE?\s+{CURRENCY}([\d,]+)\s+{CURRENCY}[\d,]+\s+{USD}",
    re.IGNORECASE,
)
COMMISSION = re.compile(
    rf"COMMISSION\s+{CURRENCY}([\d,]+)\s+{CURRENCY}[\d,]+\s+{USD}",
    re.IGNORECASE,
)
SECOND_TOTAL = re.compile(
    rf"TOTAL\s+2번\s+{CURRENCY}([\d,]+)\s+{CURRENCY}[\d,]+\s+{USD}",
    re.IGNORECASE,
)
BALANCE = re.compile(rf"잔\s*액\s*{CURRENCY}\s*([\d,]+)")

AMOUNT_TABLE_LABELS = ("COMMERCIAL INVOICE", "COMMISSION", "제품비용")
BALANCE_LABELS = ("잔 액", "잔액")


def parse_quantity(text: str) -> float | None:
    match = LABELED_QUANTITY.search(text) or QUANTITY.search(text)
    if match is None:
        return None
    return to_number(match.group(1))


def parse_amount_table(text: str) -> dict[str, float]:
    """Pull invoice charge, commission and the second total out of a charges table."""
    fields: dict[str, float] = {}
    if match := INVOICE_CHARGE.search(text):
        fields["amountUSD"] = to_number(match.group(2))
    if match := COMMISSION.search(text):
        fields["commissionUSD"] = to_number(match.group(2))
    if match := SECOND_TOTAL.search(text):
        fields["totalKRW"] = to_number(match.group(1))
        fields["totalUSD"] = to_number(match.group(2))
    return fields


def parse_balance(text: str) -> float | None:
    match = BALANCE.search(text)
    if match is None:
        return None
    return to_number(match.group(1))


def element_text(element: dict[str, Any]) -> str:
    content = element.get("content")
    if isinstance(content, dict) and isinstance(content.get("text"), str):
        return content["text"]
    return ""


def _first(elements: Iterable[dict[str, Any]], predicate) -> str | None:
    for element in elements:
        text = element_text(element)
        if text and predicate(element, text):
            return text
    return None


def mine_elements(elements: list[dict[str, Any]]) -> dict[str, Any]:
    """Mine the settlement fields out of layout elements."""
    fields: dict[str, Any] = {}

    for element in elements:
        date = parse_date(element_text(element))
        if date:
            fields["date"] = date
            break

    quantity_text = _first(elements, lambda _el, text: "GT" in text)
    if quantity_text is not None:
        quantity = parse_quantity(quantity_text)
        if quantity is not None:
            fields["quantity"] = quantity

    table_text = _first(
        elements,
        lambda el, text: el.get("category") == "table"
        and any(label in text for label in AMOUNT_TABLE_LABELS),
    )
    if table_text is not None:
        fields.update(parse_amount_table(table_text))

    balance_text = _first(
        elements, lambda _el, text: any(label in text for label in BALANCE_LABELS)
    )
    if balance_text is not None:
        balance = parse_balance(balance_text)
        if balance is not None:
            fields["balanceKRW"] = balance

    return fields


def mine_text(text: str) -> dict[str, Any]:
    """Degraded mining over a flat text blob: only date and quantity."""
    fields: dict[str, Any] = {}
    date = parse_date(text)
    if date:
        fields["date"] = date
    quantity = QUANTITY.search(text)
    if quantity is not None:
        fields["quantity"] = to_number(quantity.group(1))
    return fields
