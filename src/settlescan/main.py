import asyncio
import logging
from pathlib import Path

import httpx
import typer
from dotenv import load_dotenv

from settlescan.catalog import LOCAL_PROVIDERS, Provider, default_model, models_for
from settlescan.config import AppConfig, load_config
from settlescan.credentials import CredentialStore, is_usable_key
from settlescan.integrations.documents import UnsupportedDocumentError, load_document
from settlescan.integrations.gsheets import (
    GSheetsClient,
    SpreadsheetIdError,
    parse_spreadsheet_id,
)
from settlescan.integrations.local_export import LocalExporter
from settlescan.integrations.ollama import OllamaAdapter
from settlescan.integrations.prompts import PromptLibrary
from settlescan.integrations.registry import build_registry
from settlescan.integrations.transport import DirectTransport, probe, select_transport
from settlescan.ledger import UsageLedger
from settlescan.models import ProviderSettings, RunResult
from settlescan.orchestrator import ExtractionOrchestrator, RunConfigurationError
from settlescan.selection import PageSelectionStore
from settlescan.storage import StateStore
from settlescan.table import ResultTable
from settlescan.utils.page_ranges import PageRangeError, parse_page_ranges

load_dotenv()

app = typer.Typer(no_args_is_help=True)
keys_app = typer.Typer(no_args_is_help=True, help="Manage stored provider API keys.")
app.add_typer(keys_app, name="keys")


@app.callback(invoke_without_command=True)
def callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Settlescan CLI tool."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def cli_progress(event_type: str, message: str):
    """Callback to handle progress events and output to CLI."""
    if "error" in event_type or "incomplete" in event_type:
        typer.echo(message, err=True)
    else:
        typer.echo(message)


def load_selection(paths: list[Path], pages: set[int] | None) -> PageSelectionStore:
    """Load every file into a selection store.

    Single images are always selected. PDF pages are selected when they fall
    in ``pages``, or all of them when no range is given.
    """
    selection = PageSelectionStore()
    for path in paths:
        items, is_image = load_document(path)
        selection.add_file(path.name, items, select=is_image)
        if not is_image:
            for item in items:
                if pages is None or item.page_index in pages:
                    selection.toggle_select(item)
        typer.echo(
            f"Loaded {path.name}: {len(items)} page(s), "
            f"{selection.selected_count(path.name)} selected"
        )
    return selection


def resolve_settings(
    current: ProviderSettings, provider: Provider | None, model: str | None
) -> ProviderSettings:
    """Apply command line overrides to the saved provider selection."""
    if provider is None and model is None:
        return current
    target = provider or current.provider
    if model is None:
        model = current.model if target == current.provider else ""
    return ProviderSettings(provider=target, model=model)


async def run_extraction(
    config: AppConfig,
    selection: PageSelectionStore,
    settings: ProviderSettings,
    credentials: CredentialStore,
    ledger: UsageLedger,
    table: ResultTable,
    direct: bool = False,
) -> RunResult:
    """Run the selected pages through the active provider.

    Args:
        config: Runtime configuration
        selection: Loaded files and selected pages
        settings: Active provider and model
        credentials: API key source
        ledger: Usage ledger receiving the run
        table: Result table receiving the extracted rows
        direct: Skip the relay even when it is reachable

    Returns:
        RunResult of the orchestration run
    """
    async with httpx.AsyncClient(timeout=config.request_timeout) as client:
        if direct:
            transport = DirectTransport(client)
        else:
            transport = await select_transport(client, config)
        registry = build_registry(transport, client, config)
        orchestrator = ExtractionOrchestrator(
            registry,
            credentials,
            ledger=ledger,
            table=table,
            on_progress=cli_progress,
        )
        return await orchestrator.run(selection.selected_pages, settings)


@app.command()
def process(
    files: list[Path] = typer.Argument(..., help="Images or PDF files to extract"),
    pages: str | None = typer.Option(
        None, "--pages", help="PDF pages to process, e.g. 1-3,5 (default: all)"
    ),
    provider: Provider | None = typer.Option(
        None, "--provider", "-p", help="AI provider for this run"
    ),
    model: str | None = typer.Option(None, "--model", "-m", help="Model for this run"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Append extracted rows to a CSV file"
    ),
    sheet: str | None = typer.Option(
        None,
        "--sheet",
        "-s",
        help="Google Sheets spreadsheet ID or URL to write results to",
    ),
    direct: bool = typer.Option(
        False, "--direct", help="Call providers directly instead of through the relay"
    ),
):
    """Extract settlement rows from images and PDF pages."""
    try:
        page_numbers = parse_page_ranges(pages) if pages else None
    except PageRangeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    config = load_config()
    state = StateStore(config.data_dir)
    settings = resolve_settings(state.load_settings(), provider, model)

    try:
        selection = load_selection(files, page_numbers)
    except (FileNotFoundError, UnsupportedDocumentError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    except Exception as e:
        typer.echo(f"Failed to load document: {e}", err=True)
        raise typer.Exit(code=1) from e

    # Initialize Google Sheets client if --sheet option is provided
    gsheets_client = None
    if sheet:
        try:
            spreadsheet_id = parse_spreadsheet_id(sheet)
            gsheets_client = GSheetsClient(spreadsheet_id=spreadsheet_id)
            typer.echo(f"Will write results to spreadsheet: {spreadsheet_id}")
        except SpreadsheetIdError as e:
            typer.echo(f"Error parsing spreadsheet ID: {e}", err=True)
            raise typer.Exit(code=1) from e

    typer.echo(f"Using {settings.provider.value} / {settings.model}")
    ledger = UsageLedger.from_store(state)
    table = ResultTable()
    try:
        result = asyncio.run(
            run_extraction(
                config,
                selection,
                settings,
                CredentialStore(config.data_dir),
                ledger,
                table,
                direct=direct,
            )
        )
    except RunConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"Processed {result.success_count} / {result.total_count} pages")
    if len(table):
        typer.echo(table.to_tsv())

    if output and result.rows:
        try:
            LocalExporter().export(result.rows, output)
            typer.echo(f"Saved {len(result.rows)} rows to {output}")
        except OSError as e:
            typer.echo(f"Failed to write {output}: {e}", err=True)

    if gsheets_client and result.rows:
        try:
            count = gsheets_client.append_records(result.rows)
            typer.echo(f"Successfully appended {count} rows to spreadsheet")
        except Exception as e:
            typer.echo(f"Failed to append rows to spreadsheet: {e}", err=True)

    if result.offer_feedback:
        typer.echo("Rate this result with: settlescan rate like|dislike")
    if result.success_count == 0:
        raise typer.Exit(code=1)


@app.command()
def rate(rating: str = typer.Argument(..., help="like or dislike")):
    """Rate the most recent run."""
    rating = rating.lower()
    if rating not in ("like", "dislike"):
        typer.echo("Error: rating must be 'like' or 'dislike'", err=True)
        raise typer.Exit(code=1)

    config = load_config()
    ledger = UsageLedger.from_store(StateStore(config.data_dir))
    entry = ledger.rate(rating)  # type: ignore[arg-type]
    if entry is None:
        typer.echo("No runs recorded yet.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Rated {entry.provider} / {entry.model} run as {rating}.")


@app.command()
def stats(
    recent: int = typer.Option(0, "--recent", "-r", help="Also list the latest N runs"),
):
    """Show usage, cost and preference per provider and model."""
    config = load_config()
    ledger = UsageLedger.from_store(StateStore(config.data_dir))
    model_stats = ledger.aggregate()
    if not model_stats:
        typer.echo("No usage recorded yet.")
        return

    for s in model_stats:
        typer.echo(
            f"{s.provider} / {s.model}: {s.total_usage} runs, {s.total_pages} pages, "
            f"avg {s.average_duration_ms / 1000:.2f}s, "
            f"${s.total_cost_usd:.4f} (${s.average_cost_per_page:.4f}/page), "
            f"{s.like_count} likes, {s.dislike_count} dislikes, "
            f"score {s.preference_score:.2f}"
        )

    if recent <= 0:
        return
    typer.echo("Recent runs:")
    for entry in ledger.recent(recent):
        typer.echo(
            f"  {entry.timestamp.isoformat()} {entry.provider} / {entry.model} "
            f"{entry.pages_processed} pages ${entry.cost_usd:.4f} {entry.rating or '-'}"
        )


@app.command("export-logs")
def export_logs(path: Path = typer.Argument(..., help="Destination CSV file")):
    """Export the usage log as CSV."""
    config = load_config()
    ledger = UsageLedger.from_store(StateStore(config.data_dir))
    try:
        count = ledger.export_csv(path)
    except OSError as e:
        typer.echo(f"Failed to write {path}: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(f"Exported {count} runs to {path}")


@app.command("clear-logs")
def clear_logs(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete every usage log entry."""
    if not yes:
        typer.confirm("Delete all usage logs?", abort=True)
    config = load_config()
    UsageLedger.from_store(StateStore(config.data_dir)).clear()
    typer.echo("Usage logs cleared.")


@app.command()
def settings(
    provider: Provider | None = typer.Option(None, "--provider", "-p"),
    model: str | None = typer.Option(None, "--model", "-m"),
):
    """Show or change the saved provider and model."""
    config = load_config()
    state = StateStore(config.data_dir)
    current = state.load_settings()
    updated = resolve_settings(current, provider, model)
    if updated != current:
        state.save_settings(updated)
        if model and updated.model != model:
            typer.echo(
                f"Model {model} is not offered by {updated.provider.value}, "
                f"using {updated.model}",
                err=True,
            )
    typer.echo(f"Provider: {updated.provider.value}")
    typer.echo(f"Model: {updated.model}")


@app.command()
def models(
    provider: Provider | None = typer.Option(None, "--provider", "-p"),
):
    """List the models offered by a provider."""
    config = load_config()
    current = StateStore(config.data_dir).load_settings()
    target = provider or current.provider

    for info in models_for(target):
        marker = "*" if target == current.provider and info.id == current.model else " "
        default = " (default)" if info.id == default_model(target) else ""
        typer.echo(f"{marker} {info.id}{default}: {info.description}")

    if target == Provider.OLLAMA:

        async def installed():
            async with httpx.AsyncClient(timeout=config.request_timeout) as client:
                adapter = OllamaAdapter(client, config.ollama_endpoint, PromptLibrary())
                return await adapter.list_models()

        local_models = asyncio.run(installed())
        if local_models:
            typer.echo("Installed on the local server:")
            for info in local_models:
                typer.echo(f"  {info.id}: {info.description}")


@keys_app.command("set")
def keys_set(
    provider: Provider = typer.Argument(..., help="Provider the key belongs to"),
    key: str = typer.Argument(..., help="API key"),
):
    """Store an API key encrypted under the data directory."""
    if provider in LOCAL_PROVIDERS:
        typer.echo(f"{provider.value} runs locally and needs no API key.", err=True)
        raise typer.Exit(code=1)
    if not is_usable_key(key):
        typer.echo("Error: that looks like a placeholder, not an API key.", err=True)
        raise typer.Exit(code=1)
    config = load_config()
    CredentialStore(config.data_dir).set(provider, key)
    typer.echo(f"Saved API key for {provider.value}.")


@keys_app.command("clear")
def keys_clear(
    provider: Provider | None = typer.Argument(None, help="Provider (default: all)"),
):
    """Remove stored API keys."""
    config = load_config()
    CredentialStore(config.data_dir).clear(provider)
    target = provider.value if provider else "all providers"
    typer.echo(f"Cleared stored API keys for {target}.")


@app.command()
def providers():
    """Show which providers can be used right now."""
    config = load_config()
    credentials = CredentialStore(config.data_dir)

    async def check_services() -> tuple[bool, bool]:
        async with httpx.AsyncClient() as client:
            relay_up = await probe(
                client, f"{config.relay_url}/health", timeout=config.probe_timeout
            )
            ollama = OllamaAdapter(client, config.ollama_endpoint, PromptLibrary())
            ollama_up = await ollama.is_available(timeout=config.probe_timeout)
            return relay_up, ollama_up

    relay_up, ollama_up = asyncio.run(check_services())
    typer.echo(f"Relay {config.relay_url}: {'reachable' if relay_up else 'unreachable'}")
    for provider in Provider:
        if provider == Provider.OLLAMA:
            status = "running" if ollama_up else f"not running at {config.ollama_endpoint}"
        elif credentials.has_credential(provider):
            status = "API key configured"
        else:
            status = "no API key"
        typer.echo(f"{provider.value}: {status}")


@app.command()
def relay(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int | None = typer.Option(None, "--port", help="Port (default: 3003)"),
):
    """Serve the provider relay."""
    import uvicorn

    from settlescan.relay import create_app

    config = load_config()
    uvicorn.run(create_app(config), host=host, port=port or config.relay_port)


def main():
    app()


if __name__ == "__main__":
    main()
