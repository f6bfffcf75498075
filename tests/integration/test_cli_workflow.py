"""End-to-end integration tests for the settlescan CLI workflow.

Tests the complete flow: CLI -> document loading -> provider -> result table

Requirements:
- Environment variables in .env:
  - GEMINI_API_KEY: key used for the live extraction
  - TEST_SETTLEMENT_FILE: path to a settlement statement image or PDF
  - TEST_SETTLEMENT_PAGES: number of pages in that file (default: 1)

Run with: pytest -m integration

Note: Tests skip gracefully if credentials or environment variables are not configured.
"""

import os

import pytest
from typer.testing import CliRunner

from settlescan.main import app
from tests.integration.utils import (
    skip_if_missing_env_vars,
    verify_cli_error,
    verify_cli_success,
)

# Mark all tests in this module as integration tests
pytestmark = pytest.mark.integration

TEST_FILE = os.getenv("TEST_SETTLEMENT_FILE")
EXPECTED_PAGE_COUNT = int(os.getenv("TEST_SETTLEMENT_PAGES", "1"))

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_data_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("SETTLESCAN_DATA_DIR", str(tmp_path / "data"))


@skip_if_missing_env_vars(["GEMINI_API_KEY", "TEST_SETTLEMENT_FILE"])
def test_process_with_gemini_direct():
    """Extract every page of the test file straight from Gemini."""
    result = runner.invoke(
        app, ["process", TEST_FILE, "--provider", "gemini", "--direct"]
    )

    verify_cli_success(result, EXPECTED_PAGE_COUNT)
    assert "Rate this result with" in result.output


@skip_if_missing_env_vars(["GEMINI_API_KEY", "TEST_SETTLEMENT_FILE"])
def test_usage_is_recorded_after_live_run():
    runner.invoke(app, ["process", TEST_FILE, "--provider", "gemini", "--direct"])

    result = runner.invoke(app, ["stats"])

    assert result.exit_code == 0
    assert "gemini / gemini-2.5-flash: 1 runs" in result.output


@skip_if_missing_env_vars(["TEST_SETTLEMENT_FILE"])
def test_process_with_invalid_key(monkeypatch):
    """Provider errors are reported per page and the run exits non-zero."""
    monkeypatch.setenv("GEMINI_API_KEY", "invalid-key-for-testing")

    result = runner.invoke(
        app, ["process", TEST_FILE, "--provider", "gemini", "--direct"]
    )

    verify_cli_error(result, 1, "Error while processing page 1")
