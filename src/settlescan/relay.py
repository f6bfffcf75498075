"""
Relay server - forwards provider requests and attaches credentials.

The relay resolves an API key from the request body (``apiKey``), the
``x-api-key`` header or the environment, in that order, forwards the rest
of the body to the upstream provider, and mirrors the upstream status on
failure as ``{error, details}``.

Run with: settlescan relay
"""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from settlescan.catalog import Provider, default_model
from settlescan.config import AppConfig, api_key_from_env, load_config
from settlescan.credentials import is_usable_key
from settlescan.integrations.transport import RELAYED_PROVIDERS, error_detail, resolve_route

logger = logging.getLogger(__name__)

PROVIDER_NAMES = {
    Provider.GEMINI: "Gemini",
    Provider.OPENAI: "OpenAI",
    Provider.UPSTAGE: "Upstage",
    Provider.CLAUDE: "Claude",
}


def _key_source(body_key: str | None, header_key: str | None) -> str:
    if body_key:
        return "request body"
    if header_key:
        return "header"
    return "env"


async def _read_request(
    request: Request,
) -> tuple[dict[str, Any], dict[str, tuple[str, bytes, str]] | None]:
    """Split a relay request into body fields and, for multipart, uploaded files."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        fields: dict[str, Any] = {}
        files: dict[str, tuple[str, bytes, str]] = {}
        for name, value in form.multi_items():
            if isinstance(value, str):
                fields[name] = value
            else:
                files[name] = (
                    value.filename or name,
                    await value.read(),
                    value.content_type or "application/octet-stream",
                )
        return fields, files

    body = await request.json()
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body, None


def create_app(
    config: AppConfig | None = None, client: httpx.AsyncClient | None = None
) -> FastAPI:
    """Create the relay application.

    Args:
        config: Relay configuration (default: read from the environment)
        client: HTTP client used for upstream calls (default: created on startup)
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_client = app.state.client is None
        if owns_client:
            app.state.client = httpx.AsyncClient(timeout=config.request_timeout)
        logger.info("Relay ready for %s", ", ".join(p.value for p in RELAYED_PROVIDERS))
        yield
        if owns_client:
            await app.state.client.aclose()
            app.state.client = None

    app = FastAPI(title="settlescan relay", lifespan=lifespan)
    app.state.client = client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization", "x-api-key"],
    )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "OK", "timestamp": datetime.now(UTC).isoformat()}

    @app.post("/api/{provider_name}")
    async def relay(provider_name: str, request: Request) -> JSONResponse:
        try:
            provider = Provider(provider_name)
        except ValueError:
            provider = None
        if provider not in RELAYED_PROVIDERS:
            return JSONResponse(
                status_code=404, content={"error": f"Unknown provider: {provider_name}"}
            )
        name = PROVIDER_NAMES[provider]

        try:
            body, files = await _read_request(request)
        except ValueError as e:
            return JSONResponse(
                status_code=400, content={"error": "Invalid request body", "details": str(e)}
            )

        body_key = body.pop("apiKey", None) or None
        header_key = request.headers.get("x-api-key") or None
        api_key = body_key or header_key or api_key_from_env(provider)
        logger.info("%s API key source: %s", name, _key_source(body_key, header_key))
        if not is_usable_key(api_key):
            return JSONResponse(
                status_code=400, content={"error": f"{name} API key not configured"}
            )

        model = body.get("model") or default_model(provider)
        route = resolve_route(provider, model)
        if route.model_in_url:
            body.pop("model", None)
        else:
            body.setdefault("model", model)
        url, headers, params = route.upstream(model, api_key)  # type: ignore[arg-type]

        upstream_client: httpx.AsyncClient = request.app.state.client
        try:
            if files is None:
                response = await upstream_client.post(
                    url, json=body, headers=headers, params=params
                )
            else:
                response = await upstream_client.post(
                    url, data=body, files=files, headers=headers, params=params
                )
        except httpx.HTTPError as e:
            logger.error("%s API error: %s", name, e)
            return JSONResponse(
                status_code=500,
                content={"error": f"{name} API error: 500", "details": str(e)},
            )

        if response.is_error:
            detail = error_detail(response)
            logger.error("%s API error: %s %s", name, response.status_code, detail)
            return JSONResponse(
                status_code=response.status_code,
                content={
                    "error": f"{name} API error: {response.status_code}",
                    "details": detail,
                },
            )

        try:
            payload = response.json()
        except ValueError:
            return JSONResponse(
                status_code=502,
                content={
                    "error": f"{name} API error: 502",
                    "details": "Upstream returned a non-JSON body",
                },
            )
        return JSONResponse(content=payload)

    return app
