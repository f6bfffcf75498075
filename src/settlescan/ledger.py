"""Usage, cost and rating bookkeeping for extraction runs."""

import csv
import logging
import math
import secrets
import time
from datetime import UTC, datetime
from pathlib import Path

from settlescan.catalog import calculate_cost
from settlescan.models import ModelStats, Rating, UsageLogEntry
from settlescan.storage import StateStore

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "timestamp",
    "provider",
    "model",
    "processingTimeSec",
    "pages",
    "inputTokens",
    "outputTokens",
    "costUSD",
    "rating",
    "ratedAt",
]

# Flat token allowance for one page image
IMAGE_TOKENS = 1000


def estimate_tokens(text: str, is_image: bool = False) -> int:
    """Rough token count: one token per four characters, plus an image allowance.

    These are estimates for comparing models against each other, not
    billing figures.
    """
    tokens = math.ceil(len(text) / 4)
    if is_image:
        return IMAGE_TOKENS + tokens
    return tokens


def _new_log_id() -> str:
    return f"{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class UsageLedger:
    """Append-only log of orchestration runs.

    Entries are persisted through ``store`` after every change when a store
    is given.
    """

    def __init__(
        self,
        entries: list[UsageLogEntry] | None = None,
        store: StateStore | None = None,
    ) -> None:
        self._entries: list[UsageLogEntry] = list(entries or [])
        self._store = store
        self._current_id: str | None = None

    @classmethod
    def from_store(cls, store: StateStore) -> "UsageLedger":
        return cls(entries=store.load_usage_logs(), store=store)

    @property
    def entries(self) -> list[UsageLogEntry]:
        return list(self._entries)

    def start(self, provider: str, model: str, page_count: int) -> str:
        """Open a zero-valued entry for a run and return its id."""
        entry = UsageLogEntry(
            id=_new_log_id(),
            provider=provider,
            model=model,
            pages_processed=page_count,
        )
        self._entries.append(entry)
        self._current_id = entry.id
        self._save()
        return entry.id

    def add_tokens(self, input_tokens: int, output_tokens: int) -> None:
        """Accumulate tokens onto the run that is currently open."""
        entry = self._find(self._current_id)
        if entry is None:
            return
        entry.input_tokens_estimate += input_tokens
        entry.output_tokens_estimate += output_tokens
        entry.cost_usd = calculate_cost(
            entry.model, entry.input_tokens_estimate, entry.output_tokens_estimate
        )

    def end(
        self,
        log_id: str,
        duration_ms: float,
        input_tokens: int = 0,
        output_tokens: int = 0,
    ) -> UsageLogEntry | None:
        """Fill in duration, tokens and cost of a started run."""
        self._current_id = None
        entry = self._find(log_id)
        if entry is None:
            logger.warning("No usage entry with id %s", log_id)
            return None
        entry.duration_ms = duration_ms
        entry.input_tokens_estimate = input_tokens
        entry.output_tokens_estimate = output_tokens
        entry.cost_usd = calculate_cost(entry.model, input_tokens, output_tokens)
        self._save()
        return entry

    def rate(self, rating: Rating) -> UsageLogEntry | None:
        """Attach ``rating`` to the most recent entry only."""
        if not self._entries:
            return None
        entry = self._entries[-1]
        entry.rating = rating
        entry.rated_at = datetime.now(UTC)
        self._save()
        return entry

    def aggregate(self) -> list[ModelStats]:
        """Per provider/model statistics, best preference score first."""
        stats_by_key: dict[tuple[str, str], ModelStats] = {}

        for entry in self._entries:
            key = (entry.provider, entry.model)
            stats = stats_by_key.get(key)
            if stats is None:
                stats = ModelStats(provider=entry.provider, model=entry.model)
                stats_by_key[key] = stats

            stats.total_usage += 1
            stats.total_pages += entry.pages_processed
            stats.average_duration_ms = (
                stats.average_duration_ms * (stats.total_usage - 1) + entry.duration_ms
            ) / stats.total_usage
            stats.total_input_tokens += entry.input_tokens_estimate
            stats.total_output_tokens += entry.output_tokens_estimate
            stats.total_cost_usd += entry.cost_usd
            stats.average_cost_per_page = (
                stats.total_cost_usd / stats.total_pages if stats.total_pages else 0.0
            )
            if entry.rating == "like":
                stats.like_count += 1
            elif entry.rating == "dislike":
                stats.dislike_count += 1
            stats.preference_score = (
                stats.like_count - stats.dislike_count
            ) / stats.total_usage

        return sorted(
            stats_by_key.values(), key=lambda s: s.preference_score, reverse=True
        )

    def recent(self, limit: int = 10) -> list[UsageLogEntry]:
        """Newest entries first."""
        return sorted(self._entries, key=lambda e: e.timestamp, reverse=True)[:limit]

    def clear(self) -> None:
        self._entries.clear()
        self._current_id = None
        self._save()

    def export_csv(self, path: Path) -> int:
        """Write every entry to ``path`` and return the number of rows written."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, mode="w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_HEADER)
            for entry in self._entries:
                writer.writerow(
                    [
                        entry.timestamp.isoformat(),
                        entry.provider,
                        entry.model,
                        f"{entry.duration_ms / 1000:.2f}",
                        entry.pages_processed,
                        entry.input_tokens_estimate,
                        entry.output_tokens_estimate,
                        f"{entry.cost_usd:.4f}",
                        entry.rating or "",
                        entry.rated_at.isoformat() if entry.rated_at else "",
                    ]
                )
        return len(self._entries)

    def _find(self, log_id: str | None) -> UsageLogEntry | None:
        if log_id is None:
            return None
        return next((e for e in self._entries if e.id == log_id), None)

    def _save(self) -> None:
        if self._store is not None:
            self._store.save_usage_logs(self._entries)
