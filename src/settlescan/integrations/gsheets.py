"""Google Sheets integration for appending extracted settlement rows.

Note: The Google API Client library uses dynamic method creation at runtime.
Methods like .spreadsheets() are added to Resource objects when build() is called,
so type checkers can't detect them. We use # type: ignore[attr-defined] to
suppress these warnings where appropriate.
"""

import logging
import re
from typing import Any
from urllib.parse import urlparse

from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from settlescan.models import ExtractedRecord
from settlescan.table import record_to_sheet_row

logger = logging.getLogger(__name__)

# Google Sheets URLs: /spreadsheets/d/{ID}/edit
SPREADSHEET_PATTERN = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")


class SpreadsheetIdError(ValueError):
    """Raised when a spreadsheet ID cannot be taken from user input."""


def parse_spreadsheet_id(input_str: str) -> str:
    """
    Extracts the spreadsheet ID from a Google Sheets URL.
    If the input is already an ID, it returns it as-is.
    """
    if not input_str or not input_str.strip():
        raise SpreadsheetIdError("Spreadsheet ID cannot be empty or whitespace")

    input_str = input_str.strip()
    if not input_str.startswith("http"):
        return input_str

    parsed = urlparse(input_str)
    if parsed.netloc != "docs.google.com":
        raise SpreadsheetIdError("Unsupported URL domain")

    match = SPREADSHEET_PATTERN.search(parsed.path)
    if match:
        return match.group(1)

    raise SpreadsheetIdError("Could not find spreadsheet ID in URL")


def _is_retryable_error(exception: BaseException) -> bool:
    """Retry rate limits (429), unavailability (503) and network errors only."""
    if isinstance(exception, ConnectionError | TimeoutError | OSError):
        return True

    if isinstance(exception, HttpError):
        return exception.resp.status in (429, 503)

    return False


class GSheetsClient:
    """Appends settlement rows to a Google Sheets spreadsheet.

    Attributes:
        spreadsheet_id: Google Sheets spreadsheet ID
        range_name: A1 range the rows are appended after
    """

    def __init__(self, spreadsheet_id: str, range_name: str = "Sheet1!A1"):
        self._service: Resource | None = None
        self.spreadsheet_id = spreadsheet_id
        self.range_name = range_name

    @property
    def service(self) -> Resource:
        """Lazily build the Sheets service on first use."""
        if self._service is None:
            self._service = build("sheets", "v4")
        return self._service

    @retry(
        retry=retry_if_exception(_is_retryable_error),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    def append_rows(self, rows: list[list[Any]]) -> dict[str, Any]:
        """Append rows in a single batch call.

        Raises:
            HttpError: For non-retryable errors or after max retries
        """
        # Note: spreadsheets() is dynamically added by googleapiclient at runtime
        return (
            self.service.spreadsheets()  # type: ignore[attr-defined]
            .values()
            .append(
                spreadsheetId=self.spreadsheet_id,
                range=self.range_name,
                valueInputOption="USER_ENTERED",
                body={"values": rows},
            )
            .execute()
        )

    def append_records(self, records: list[ExtractedRecord]) -> int:
        """Append records in the settlement workbook layout; returns rows written."""
        if not records:
            return 0
        rows = [record_to_sheet_row(record) for record in records]
        self.append_rows(rows)
        logger.info("Appended %d rows to spreadsheet %s", len(rows), self.spreadsheet_id)
        return len(rows)
