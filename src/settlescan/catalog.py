"""Provider catalog: supported providers, their models and per-token prices."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class Provider(StrEnum):
    """AI services a page can be sent to."""

    GEMINI = "gemini"
    OPENAI = "openai"
    UPSTAGE = "upstage"
    OLLAMA = "ollama"
    CLAUDE = "claude"


class ModelInfo(BaseModel):
    """One selectable model of a provider."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""


class ModelPrice(BaseModel):
    """USD price per one million tokens."""

    model_config = ConfigDict(frozen=True)

    input: float
    output: float


PROVIDER_MODELS: dict[Provider, list[ModelInfo]] = {
    Provider.GEMINI: [
        ModelInfo(id="gemini-2.5-flash", name="Gemini 2.5 Flash", description="Best price/performance"),
        ModelInfo(id="gemini-2.5-pro", name="Gemini 2.5 Pro", description="Strongest reasoning model"),
        ModelInfo(
            id="gemini-2.5-flash-lite-preview-06-17",
            name="Gemini 2.5 Flash Lite",
            description="Lowest cost, fastest",
        ),
    ],
    Provider.OPENAI: [
        ModelInfo(id="o4-mini", name="o4-mini", description="Small next-generation model"),
        ModelInfo(id="gpt-4.1", name="GPT-4.1", description="Latest GPT-4.1 model"),
        ModelInfo(id="gpt-4o-mini", name="GPT-4o mini"),
        ModelInfo(id="gpt-4o", name="GPT-4o"),
    ],
    Provider.UPSTAGE: [
        ModelInfo(id="document-parse", name="Document Parse", description="Layout text extraction"),
        ModelInfo(
            id="solar-docvision-preview",
            name="Solar DocVision",
            description="Document vision chat model",
        ),
    ],
    Provider.OLLAMA: [
        ModelInfo(id="llama3.2-vision:11b", name="Llama 3.2 Vision 11B", description="Local vision model"),
        ModelInfo(id="llava:13b", name="LLaVA 13B", description="Local multimodal model"),
        ModelInfo(id="moondream:latest", name="Moondream", description="Lightweight vision model"),
    ],
    Provider.CLAUDE: [
        ModelInfo(id="claude-sonnet-4-20250514", name="Claude Sonnet 4"),
        ModelInfo(id="claude-opus-4-20250514", name="Claude Opus 4"),
        ModelInfo(id="claude-3-5-sonnet-20241022", name="Claude 3.5 Sonnet"),
    ],
}

MODEL_PRICING: dict[str, ModelPrice] = {
    "gemini-2.5-flash": ModelPrice(input=0.075, output=0.30),
    "gemini-2.5-pro": ModelPrice(input=1.25, output=5.00),
    "gemini-2.5-flash-lite-preview-06-17": ModelPrice(input=0.075, output=0.30),
    "o4-mini": ModelPrice(input=0.15, output=0.60),
    "gpt-4.1": ModelPrice(input=10.00, output=30.00),
    "gpt-4o-mini": ModelPrice(input=0.15, output=0.60),
    "gpt-4o": ModelPrice(input=2.50, output=10.00),
    "document-parse": ModelPrice(input=0.50, output=1.00),
    "claude-sonnet-4-20250514": ModelPrice(input=3.00, output=15.00),
    "claude-opus-4-20250514": ModelPrice(input=15.00, output=75.00),
    "claude-3-5-sonnet-20241022": ModelPrice(input=3.00, output=15.00),
    # Local models are free
    "llama3.2-vision:11b": ModelPrice(input=0, output=0),
    "llava:13b": ModelPrice(input=0, output=0),
    "moondream:latest": ModelPrice(input=0, output=0),
}

# Providers that run on the user's machine and need no API key
LOCAL_PROVIDERS = frozenset({Provider.OLLAMA})


def models_for(provider: Provider) -> list[ModelInfo]:
    """Return the selectable models of ``provider``."""
    return list(PROVIDER_MODELS.get(provider, []))


def default_model(provider: Provider) -> str:
    """Return the first listed model of ``provider``."""
    models = PROVIDER_MODELS.get(provider)
    if not models:
        return PROVIDER_MODELS[Provider.GEMINI][0].id
    return models[0].id


def is_known_model(provider: Provider, model: str) -> bool:
    return any(m.id == model for m in PROVIDER_MODELS.get(provider, []))


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Price a call in USD; models missing from the price table cost nothing."""
    price = MODEL_PRICING.get(model)
    if price is None:
        return 0.0
    return (input_tokens / 1_000_000) * price.input + (
        output_tokens / 1_000_000
    ) * price.output
