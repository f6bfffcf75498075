"""Unit tests for GSheetsClient write operations."""

import unittest.mock as mock

import pytest

from settlescan.integrations.gsheets import (
    GSheetsClient,
    SpreadsheetIdError,
    parse_spreadsheet_id,
)
from settlescan.models import ExtractedRecord

pytestmark = pytest.mark.unit


@pytest.fixture
def mock_google_build():
    """Mock the build function and return a mock service."""
    with mock.patch("settlescan.integrations.gsheets.build") as m:
        mock_service = mock.Mock()
        m.return_value = mock_service
        yield m


@pytest.fixture
def mock_values(mock_google_build):
    """Mock of spreadsheets().values() returning a successful append."""
    mock_append = mock.Mock()
    mock_append.execute.return_value = {"updates": {"updatedRows": 2}}
    values = mock.Mock()
    values.append.return_value = mock_append
    mock_spreadsheets = mock.Mock()
    mock_spreadsheets.values.return_value = values
    mock_google_build.return_value.spreadsheets.return_value = mock_spreadsheets
    return values


def test_init_does_not_call_build(mock_google_build):
    """__init__ should not call build(); the service is created on first use."""
    GSheetsClient(spreadsheet_id="test-sheet-123")
    mock_google_build.assert_not_called()


def test_service_is_built_once(mock_google_build):
    client = GSheetsClient(spreadsheet_id="test-sheet-123")

    service1 = client.service
    service2 = client.service

    mock_google_build.assert_called_once_with("sheets", "v4")
    assert service1 is service2


def test_append_rows_batch(mock_values):
    """Test appending multiple rows in a single call."""
    client = GSheetsClient(spreadsheet_id="test-sheet-123")
    rows = [["a", 1], ["b", 2]]

    result = client.append_rows(rows)

    mock_values.append.assert_called_once_with(
        spreadsheetId="test-sheet-123",
        range="Sheet1!A1",
        valueInputOption="USER_ENTERED",
        body={"values": rows},
    )
    assert result["updates"]["updatedRows"] == 2


def test_append_records_uses_ledger_layout(mock_values):
    """Records are written as 10-column rows with blank manual columns."""
    client = GSheetsClient(spreadsheet_id="test-sheet-123", range_name="정산!A2")
    records = [
        ExtractedRecord(date="2024-03-05", quantity=1200, commission_usd=222.34),
        ExtractedRecord(date="2024-03-06", balance_krw=500),
    ]

    count = client.append_records(records)

    assert count == 2
    body = mock_values.append.call_args.kwargs["body"]
    assert body["values"] == [
        ["", "2024-03-05", 1200, 0, 222.34, 0, 0, "", 0, ""],
        ["", "2024-03-06", 0, 0, 0, 0, 0, "", 500, ""],
    ]
    assert mock_values.append.call_args.kwargs["range"] == "정산!A2"


def test_append_no_records(mock_values):
    client = GSheetsClient(spreadsheet_id="test-sheet-123")

    assert client.append_records([]) == 0
    mock_values.append.assert_not_called()


class TestParseSpreadsheetId:
    """Test cases for spreadsheet ID parsing."""

    @pytest.mark.parametrize(
        ("input_str", "expected"),
        [
            ("1AbC-xyz_123", "1AbC-xyz_123"),
            ("https://docs.google.com/spreadsheets/d/1AbC-xyz_123/edit#gid=0", "1AbC-xyz_123"),
            ("  https://docs.google.com/spreadsheets/d/ID_9/edit  ", "ID_9"),
        ],
    )
    def test_valid(self, input_str, expected):
        assert parse_spreadsheet_id(input_str) == expected

    @pytest.mark.parametrize(
        ("input_str", "message"),
        [
            ("", "empty"),
            ("https://example.com/spreadsheets/d/abc", "Unsupported URL domain"),
            ("https://docs.google.com/document/d/abc/edit", "Could not find"),
        ],
    )
    def test_invalid(self, input_str, message):
        with pytest.raises(SpreadsheetIdError, match=message):
            parse_spreadsheet_id(input_str)
