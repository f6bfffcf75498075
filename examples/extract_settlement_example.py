"""Example usage of the extraction orchestrator on a single file.

This example loads an image or PDF, selects every page, sends the pages to
the saved provider (through the relay when it is running) and prints the
normalized settlement rows.
"""

import asyncio
import sys
from pathlib import Path

import httpx

from settlescan.config import load_config
from settlescan.credentials import CredentialStore
from settlescan.integrations import build_registry
from settlescan.integrations.documents import load_document
from settlescan.integrations.transport import select_transport
from settlescan.ledger import UsageLedger
from settlescan.orchestrator import ExtractionOrchestrator
from settlescan.storage import StateStore


async def main(path: Path):
    """Example of extracting settlement rows from one document."""
    config = load_config()
    state = StateStore(config.data_dir)
    settings = state.load_settings()
    pages, _ = load_document(path)

    async with httpx.AsyncClient(timeout=config.request_timeout) as client:
        transport = await select_transport(client, config)
        orchestrator = ExtractionOrchestrator(
            build_registry(transport, client, config),
            CredentialStore(config.data_dir),
            ledger=UsageLedger.from_store(state),
            on_progress=lambda event, message: print(f"[{event}] {message}"),
        )

        try:
            result = await orchestrator.run(pages, settings)
        except Exception as e:
            print(f"Error during extraction: {e}")
            return

    for record in result.rows:
        print(record.to_wire())

    for error in result.errors:
        print(f"Page {error.page_number} failed: {error.message}")


if __name__ == "__main__":
    asyncio.run(main(Path(sys.argv[1])))
