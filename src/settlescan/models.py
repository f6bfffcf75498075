"""Data models for settlement extraction, page selection and usage tracking."""

import logging
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from settlescan.catalog import Provider, default_model, is_known_model

logger = logging.getLogger(__name__)

Rating = Literal["like", "dislike"]

RECORD_FIELDS = (
    "date",
    "quantity",
    "amountUSD",
    "commissionUSD",
    "totalUSD",
    "totalKRW",
    "balanceKRW",
)


class ExtractedRecord(BaseModel):
    """Canonical seven-field result of one page, whichever provider produced it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: str = ""  # YYYY-MM-DD or empty
    quantity: float = 0
    amount_usd: float = Field(0, alias="amountUSD")
    commission_usd: float = Field(0, alias="commissionUSD")
    total_usd: float = Field(0, alias="totalUSD")
    total_krw: float = Field(0, alias="totalKRW")
    balance_krw: float = Field(0, alias="balanceKRW")

    def to_wire(self) -> dict[str, str | float]:
        """Dump with the camelCase field names providers are asked for."""
        return self.model_dump(by_alias=True)


class PageItem(BaseModel):
    """A single page image ready to be sent to a provider."""

    model_config = ConfigDict(frozen=True)

    image_bytes: str  # base64
    mime_type: str
    source_file_name: str
    page_index: int | None = None  # 1-based, PDFs only

    @property
    def label(self) -> str:
        if self.page_index is None:
            return self.source_file_name
        return f"{self.source_file_name} p.{self.page_index}"


class ProviderSettings(BaseModel):
    """Active provider and model.

    A model that does not belong to the provider is replaced by the
    provider's default model.
    """

    provider: Provider = Provider.GEMINI
    model: str = ""

    @model_validator(mode="after")
    def _reset_unknown_model(self) -> "ProviderSettings":
        if not is_known_model(self.provider, self.model):
            fallback = default_model(self.provider)
            if self.model:
                logger.info(
                    "Model %s is not offered by %s, using %s",
                    self.model,
                    self.provider.value,
                    fallback,
                )
            self.model = fallback
        return self


class UsageLogEntry(BaseModel):
    """One orchestration run as recorded by the usage ledger."""

    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    provider: str
    model: str
    duration_ms: float = 0
    pages_processed: int = 0
    input_tokens_estimate: int = 0
    output_tokens_estimate: int = 0
    cost_usd: float = 0.0
    rating: Rating | None = None
    rated_at: datetime | None = None


class ModelStats(BaseModel):
    """Usage aggregated over every run of one provider/model pair."""

    provider: str
    model: str
    total_usage: int = 0
    total_pages: int = 0
    average_duration_ms: float = 0.0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost_usd: float = 0.0
    average_cost_per_page: float = 0.0
    like_count: int = 0
    dislike_count: int = 0
    preference_score: float = 0.0


class PageError(BaseModel):
    """A page that failed during a run."""

    page_number: int  # 1-based position within the run
    page: PageItem
    message: str


class RunResult(BaseModel):
    """Outcome of one orchestration run."""

    rows: list[ExtractedRecord] = Field(default_factory=list)
    success_count: int = 0
    total_count: int = 0
    errors: list[PageError] = Field(default_factory=list)
    log_id: str | None = None
    offer_feedback: bool = False
