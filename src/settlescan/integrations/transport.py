"""HTTP transports for provider calls: through the relay or straight upstream.

Both transports and the relay server share the upstream route table so a
provider request looks the same whichever path it takes.
"""

import logging
from enum import Enum
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict

from settlescan.catalog import Provider
from settlescan.config import AppConfig
from settlescan.integrations.base import (
    ProviderResponseError,
    ProviderTransportError,
    ResponseParseError,
)

logger = logging.getLogger(__name__)

UPSTAGE_DOCVISION_MODEL = "solar-docvision-preview"
ANTHROPIC_VERSION = "2023-06-01"


class AuthStyle(Enum):
    QUERY_KEY = "query_key"  # ?key=...
    BEARER = "bearer"  # Authorization: Bearer ...
    X_API_KEY = "x_api_key"  # x-api-key header


class ProviderRoute(BaseModel):
    """Where and how an upstream provider endpoint is called."""

    model_config = ConfigDict(frozen=True)

    url: str  # may contain {model}
    auth: AuthStyle
    model_in_url: bool = False
    extra_headers: dict[str, str] = {}

    def upstream(self, model: str, api_key: str) -> tuple[str, dict[str, str], dict[str, str]]:
        """Return the URL, headers and query parameters for one call."""
        url = self.url.format(model=model)
        headers = dict(self.extra_headers)
        params: dict[str, str] = {}
        if self.auth is AuthStyle.QUERY_KEY:
            params["key"] = api_key
        elif self.auth is AuthStyle.BEARER:
            headers["Authorization"] = f"Bearer {api_key}"
        else:
            headers["x-api-key"] = api_key
        return url, headers, params


GEMINI_ROUTE = ProviderRoute(
    url="https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
    auth=AuthStyle.QUERY_KEY,
    model_in_url=True,
)
OPENAI_ROUTE = ProviderRoute(
    url="https://api.openai.com/v1/chat/completions", auth=AuthStyle.BEARER
)
UPSTAGE_CHAT_ROUTE = ProviderRoute(
    url="https://api.upstage.ai/v1/solar/chat/completions", auth=AuthStyle.BEARER
)
UPSTAGE_PARSE_ROUTE = ProviderRoute(
    url="https://api.upstage.ai/v1/document-digitization", auth=AuthStyle.BEARER
)
CLAUDE_ROUTE = ProviderRoute(
    url="https://api.anthropic.com/v1/messages",
    auth=AuthStyle.X_API_KEY,
    extra_headers={"anthropic-version": ANTHROPIC_VERSION},
)

RELAYED_PROVIDERS = frozenset(
    {Provider.GEMINI, Provider.OPENAI, Provider.UPSTAGE, Provider.CLAUDE}
)


def resolve_route(provider: Provider, model: str | None) -> ProviderRoute:
    """Pick the upstream route; Upstage has one per sub-mode."""
    if provider is Provider.GEMINI:
        return GEMINI_ROUTE
    if provider is Provider.OPENAI:
        return OPENAI_ROUTE
    if provider is Provider.UPSTAGE:
        if model == UPSTAGE_DOCVISION_MODEL:
            return UPSTAGE_CHAT_ROUTE
        return UPSTAGE_PARSE_ROUTE
    if provider is Provider.CLAUDE:
        return CLAUDE_ROUTE
    raise ValueError(f"Provider {provider.value} has no upstream route")


def error_detail(response: httpx.Response) -> str:
    """Best-effort message from an error response of the relay or a provider."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(body, dict):
        if body.get("details"):
            return str(body["details"])
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error)
        if error:
            return str(error)
    return response.text.strip()


async def send(
    client: httpx.AsyncClient,
    label: str,
    url: str,
    **kwargs: Any,
) -> Any:
    """POST and return the decoded JSON body, classifying every failure.

    Raises:
        ProviderTransportError: The endpoint could not be reached
        ProviderResponseError: The endpoint answered with a non-2xx status
        ResponseParseError: The body was not JSON
    """
    try:
        response = await client.post(url, **kwargs)
    except httpx.HTTPError as e:
        raise ProviderTransportError(f"{label} request failed: {e}") from e

    if response.is_error:
        detail = error_detail(response)
        logger.debug("%s answered %s: %s", label, response.status_code, detail)
        raise ProviderResponseError(label, response.status_code, detail)

    try:
        return response.json()
    except ValueError as e:
        raise ResponseParseError(f"{label} returned a non-JSON body") from e


async def probe(client: httpx.AsyncClient, url: str, timeout: float = 1.0) -> bool:
    """Return True when ``url`` answers a GET with a 2xx status within ``timeout``."""
    try:
        response = await client.get(url, timeout=timeout)
    except httpx.HTTPError:
        return False
    return response.is_success


class Transport(Protocol):
    """Delivers provider request bodies and returns the provider's JSON."""

    async def post_json(
        self,
        provider: Provider,
        model: str,
        payload: dict[str, Any],
        api_key: str,
    ) -> Any: ...

    async def post_form(
        self,
        provider: Provider,
        model: str,
        data: dict[str, str],
        files: dict[str, tuple[str, bytes, str]],
        api_key: str,
    ) -> Any: ...


class RelayTransport:
    """Sends requests to the relay, which attaches credentials and forwards them."""

    def __init__(self, client: httpx.AsyncClient, relay_url: str) -> None:
        self.client = client
        self.relay_url = relay_url.rstrip("/")

    def _endpoint(self, provider: Provider) -> str:
        return f"{self.relay_url}/api/{provider.value}"

    async def post_json(
        self,
        provider: Provider,
        model: str,
        payload: dict[str, Any],
        api_key: str,
    ) -> Any:
        body = {"model": model, **payload, "apiKey": api_key}
        return await send(self.client, provider.value, self._endpoint(provider), json=body)

    async def post_form(
        self,
        provider: Provider,
        model: str,
        data: dict[str, str],
        files: dict[str, tuple[str, bytes, str]],
        api_key: str,
    ) -> Any:
        fields = {**data, "apiKey": api_key}
        return await send(
            self.client, provider.value, self._endpoint(provider), data=fields, files=files
        )


class DirectTransport:
    """Calls provider endpoints directly with provider-specific authentication."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def post_json(
        self,
        provider: Provider,
        model: str,
        payload: dict[str, Any],
        api_key: str,
    ) -> Any:
        route = resolve_route(provider, model)
        url, headers, params = route.upstream(model, api_key)
        return await send(
            self.client, provider.value, url, json=payload, headers=headers, params=params
        )

    async def post_form(
        self,
        provider: Provider,
        model: str,
        data: dict[str, str],
        files: dict[str, tuple[str, bytes, str]],
        api_key: str,
    ) -> Any:
        route = resolve_route(provider, model)
        url, headers, params = route.upstream(model, api_key)
        return await send(
            self.client,
            provider.value,
            url,
            data=data,
            files=files,
            headers=headers,
            params=params,
        )


async def select_transport(
    client: httpx.AsyncClient, config: AppConfig
) -> RelayTransport | DirectTransport:
    """Use the relay when its health check answers, otherwise go direct."""
    if await probe(client, f"{config.relay_url}/health", timeout=config.probe_timeout):
        logger.info("Using relay at %s", config.relay_url)
        return RelayTransport(client, config.relay_url)
    logger.info("Relay at %s unreachable, calling providers directly", config.relay_url)
    return DirectTransport(client)
