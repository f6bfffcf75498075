"""Runtime configuration read from the environment and an optional .env file."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from settlescan.catalog import Provider

DEFAULT_RELAY_URL = "http://localhost:3003"
DEFAULT_OLLAMA_ENDPOINT = "http://localhost:11434"
DEFAULT_ALLOWED_ORIGINS = ["http://localhost:3000", "http://localhost:3001"]

# Environment variables holding provider API keys
API_KEY_ENV_VARS: dict[Provider, str] = {
    Provider.GEMINI: "GEMINI_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.UPSTAGE: "UPSTAGE_API_KEY",
    Provider.CLAUDE: "CLAUDE_API_KEY",
}


class AppConfig(BaseModel):
    """Settings shared by the CLI, the transports and the relay."""

    relay_url: str = DEFAULT_RELAY_URL
    relay_port: int = 3003
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".settlescan")
    ollama_endpoint: str = DEFAULT_OLLAMA_ENDPOINT
    request_timeout: float = 120.0
    probe_timeout: float = 1.0
    allowed_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS)
    )


def load_config() -> AppConfig:
    """Build the configuration from ``SETTLESCAN_*`` environment variables."""
    load_dotenv()
    values: dict[str, object] = {}

    if relay_url := os.getenv("SETTLESCAN_RELAY_URL"):
        values["relay_url"] = relay_url.rstrip("/")
    if relay_port := os.getenv("SETTLESCAN_RELAY_PORT"):
        values["relay_port"] = relay_port
    if data_dir := os.getenv("SETTLESCAN_DATA_DIR"):
        values["data_dir"] = Path(data_dir).expanduser()
    if ollama_endpoint := os.getenv("OLLAMA_ENDPOINT"):
        values["ollama_endpoint"] = ollama_endpoint.rstrip("/")
    if timeout := os.getenv("SETTLESCAN_REQUEST_TIMEOUT"):
        values["request_timeout"] = timeout
    if origins := os.getenv("SETTLESCAN_ALLOWED_ORIGINS"):
        values["allowed_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

    return AppConfig.model_validate(values)


def api_key_from_env(provider: Provider) -> str | None:
    env_var = API_KEY_ENV_VARS.get(provider)
    if env_var is None:
        return None
    return os.getenv(env_var) or None
