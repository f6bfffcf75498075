"""Adapter contract, error taxonomy and the provider registry."""

from typing import Any, Protocol, runtime_checkable

from settlescan.catalog import Provider
from settlescan.models import PageItem, ProviderSettings


class ExtractionError(Exception):
    """Base exception for a page that could not be extracted."""


class ProviderTransportError(ExtractionError):
    """Raised when the relay or provider cannot be reached."""


class ProviderResponseError(ExtractionError):
    """Raised when a provider answers with a non-2xx status."""

    def __init__(self, provider: str, status_code: int, detail: str = "") -> None:
        self.provider = provider
        self.status_code = status_code
        self.detail = detail
        message = f"{provider} API error: {status_code}"
        if detail:
            message = f"{message} - {detail}"
        super().__init__(message)


class ResponseParseError(ExtractionError):
    """Raised when an answer is empty, not JSON, or lacks the expected envelope."""


@runtime_checkable
class ProviderAdapter(Protocol):
    """Translates between a page and one provider's wire format.

    ``extract`` resolves with a best-effort raw mapping that still has to go
    through :func:`settlescan.validation.normalize`.
    """

    provider: Provider

    def instruction_text(self, settings: ProviderSettings) -> str:
        """Prompt text sent alongside the page, used for token estimates."""
        ...

    async def extract(
        self,
        page: PageItem,
        settings: ProviderSettings,
        credentials: str | None,
    ) -> dict[str, Any]: ...


class AdapterRegistry:
    """Adapters keyed by provider."""

    def __init__(self, adapters: list[ProviderAdapter] | None = None) -> None:
        self._adapters: dict[Provider, ProviderAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: ProviderAdapter) -> None:
        self._adapters[adapter.provider] = adapter

    def get(self, provider: Provider) -> ProviderAdapter:
        try:
            return self._adapters[provider]
        except KeyError:
            raise KeyError(f"No adapter registered for provider {provider.value}") from None

    def __contains__(self, provider: object) -> bool:
        return provider in self._adapters

    @property
    def providers(self) -> list[Provider]:
        return list(self._adapters)
