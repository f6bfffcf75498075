"""Runs the selected pages through the active provider, one page at a time."""

import json
import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

from settlescan.catalog import Provider
from settlescan.integrations.base import AdapterRegistry, ExtractionError
from settlescan.ledger import UsageLedger, estimate_tokens
from settlescan.models import PageError, PageItem, ProviderSettings, RunResult
from settlescan.table import ResultTable
from settlescan.validation import normalize

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]


class RunConfigurationError(Exception):
    """Raised before any provider call when a run cannot start."""


class NoPagesSelectedError(RunConfigurationError):
    """Raised when a run is started without selected pages."""


class MissingCredentialError(RunConfigurationError):
    """Raised when the active provider has no usable API key."""


class UnsupportedProviderError(RunConfigurationError):
    """Raised when no adapter is registered for the active provider."""


class CredentialSource(Protocol):
    def get(self, provider: Provider) -> str | None: ...

    def has_credential(self, provider: Provider) -> bool: ...


def _output_text(raw: dict[str, Any]) -> str:
    return json.dumps(raw, ensure_ascii=False, separators=(",", ":"), default=str)


class ExtractionOrchestrator:
    """Sequential extraction over a page selection.

    Pages are awaited one after another so provider rate limits are not hit
    in bursts and every error maps to exactly one page. A failing page is
    reported and skipped; the run always completes.

    Attributes:
        registry: Adapters keyed by provider
        credentials: Resolves API keys per provider
        ledger: Optional usage ledger receiving one entry per run
        table: Optional result table receiving one row per success
        on_progress: Optional callback for progress updates (event_type, message)
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        credentials: CredentialSource,
        ledger: UsageLedger | None = None,
        table: ResultTable | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.registry = registry
        self.credentials = credentials
        self.ledger = ledger
        self.table = table
        self.on_progress = on_progress

    def _emit(self, event_type: str, message: str) -> None:
        if self.on_progress:
            self.on_progress(event_type, message)

    def _check_ready(self, pages: list[PageItem], settings: ProviderSettings) -> None:
        if not pages:
            raise NoPagesSelectedError("Select an image or PDF page first.")
        if settings.provider not in self.registry:
            raise UnsupportedProviderError(
                f"Unsupported AI provider: {settings.provider.value}"
            )
        if not self.credentials.has_credential(settings.provider):
            raise MissingCredentialError(
                f"No API key configured for {settings.provider.value.upper()}. "
                "Check your settings."
            )

    async def run(
        self, selected_pages: list[PageItem], settings: ProviderSettings
    ) -> RunResult:
        """Extract every selected page with the provider in ``settings``.

        Args:
            selected_pages: Pages in processing order
            settings: Active provider and model

        Returns:
            RunResult with the normalized rows, counts and page errors

        Raises:
            RunConfigurationError: If there is nothing to process or the
                provider cannot be used; no request is made in that case
        """
        self._check_ready(selected_pages, settings)

        adapter = self.registry.get(settings.provider)
        api_key = self.credentials.get(settings.provider)
        total = len(selected_pages)
        result = RunResult(total_count=total)

        log_id = None
        if self.ledger is not None:
            log_id = self.ledger.start(settings.provider.value, settings.model, total)
            result.log_id = log_id

        started = time.perf_counter()
        input_tokens = 0
        output_tokens = 0
        prompt = adapter.instruction_text(settings)

        try:
            for number, page in enumerate(selected_pages, start=1):
                self._emit("page_start", f"Analyzing page {number}/{total}: {page.label}")
                try:
                    raw = await adapter.extract(page, settings, api_key)
                    record = normalize(raw)
                    page_output_tokens = estimate_tokens(_output_text(raw))
                except ExtractionError as e:
                    self._record_failure(result, number, page, str(e))
                    continue
                except Exception as e:
                    logger.exception("Unexpected error on page %d", number)
                    self._record_failure(result, number, page, f"Unexpected error: {e}")
                    continue

                result.rows.append(record)
                result.success_count += 1
                if self.table is not None:
                    self.table.add_row(record)

                input_tokens += estimate_tokens(prompt, is_image=True)
                output_tokens += page_output_tokens
                self._emit(
                    "page_success", f"Extracted page {number}/{total}: {page.label}"
                )
        finally:
            if self.ledger is not None and log_id is not None:
                duration_ms = (time.perf_counter() - started) * 1000
                self.ledger.end(log_id, duration_ms, input_tokens, output_tokens)

        if result.success_count < total:
            self._emit(
                "run_incomplete",
                f"Only {result.success_count} / {total} pages were processed successfully.",
            )
        result.offer_feedback = result.success_count > 0
        logger.info(
            "Run finished with %s/%s: %d/%d pages",
            settings.provider.value,
            settings.model,
            result.success_count,
            total,
        )
        return result

    def _record_failure(
        self, result: RunResult, number: int, page: PageItem, message: str
    ) -> None:
        logger.warning("Page %d (%s) failed: %s", number, page.label, message)
        result.errors.append(PageError(page_number=number, page=page, message=message))
        self._emit("page_error", f"Error while processing page {number}: {message}")
