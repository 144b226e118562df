import asyncio
import json
import sys
from typing import Any, Dict, Optional

import typer
from loguru import logger
from pydantic import ValidationError

from es_client import IndexWriterError, Record, new_client
from index_writer import Destination
from index_writer.utils import iter_ndjson
from indexer.config import Settings

app = typer.Typer(help="Index writer CLI (connectivity, NDJSON ingest)")


# ---------------------------
# Common options
# ---------------------------


def host_opt() -> Optional[str]:
    return typer.Option(None, "--host", help="Backend URL (overrides INDEX_WRITER_HOST)")


def index_opt() -> Optional[str]:
    return typer.Option(None, "--index", help="Target index (overrides INDEX_WRITER_INDEX)")


def version_opt() -> Optional[str]:
    return typer.Option(None, "--es-version", help="Backend version: 5, 6, 7 or 8")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _load_settings(**overrides: Any) -> Settings:
    """Environment/.env settings with non-empty CLI overrides applied."""
    try:
        return Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        logger.error(f"Invalid settings: {e}")
        raise typer.Exit(2)


# ---------------------------
# Commands
# ---------------------------


@app.command()
def ping(
    host: Optional[str] = host_opt(),
    index: Optional[str] = index_opt(),
    es_version: Optional[str] = version_opt(),
):
    """Check connectivity to the configured backend."""
    settings = _load_settings(host=host, index=index, version=es_version)

    async def _run() -> None:
        client = new_client(settings.version, settings.client_config())
        try:
            await client.ping()
        finally:
            await client.aclose()

    try:
        asyncio.run(_run())
    except IndexWriterError as e:
        logger.error(str(e))
        typer.echo(json.dumps({"ok": False, "error": str(e)}, indent=2))
        raise typer.Exit(1)

    logger.success(f"Backend reachable at {settings.host or 'cloud id'}")
    typer.echo(json.dumps({"ok": True}, indent=2))


@app.command("settings")
def show_settings(
    host: Optional[str] = host_opt(),
    index: Optional[str] = index_opt(),
    es_version: Optional[str] = version_opt(),
):
    """Print the effective settings (secrets masked)."""
    settings = _load_settings(host=host, index=index, version=es_version)
    typer.echo(json.dumps(settings.masked(), indent=2))


@app.command("ingest-ndjson")
def ingest_ndjson(
    path: str = typer.Argument(..., help="File path or '-' for stdin (.gz ok)"),
    host: Optional[str] = host_opt(),
    index: Optional[str] = index_opt(),
    es_version: Optional[str] = version_opt(),
    bulk_size: Optional[int] = typer.Option(None, "--bulk-size", help="Flush after N records"),
    retries: Optional[int] = typer.Option(None, "--retries", help="Retries for failed items"),
):
    """Write NDJSON records ({key, payload, metadata, created_at}) through the destination."""
    settings = _load_settings(
        host=host, index=index, version=es_version, bulk_size=bulk_size, retries=retries
    )
    try:
        counts = asyncio.run(_ingest_ndjson(settings, path))
    except (IndexWriterError, ValueError) as e:
        logger.error(f"Ingest aborted: {e}")
        raise typer.Exit(1)
    typer.echo(json.dumps(counts, indent=2))


async def _ingest_ndjson(settings: Settings, path: str) -> Dict[str, int]:
    counts = {"ingested": 0, "succeeded": 0, "failed": 0}

    def on_ack(err: Optional[BaseException]) -> None:
        if err is None:
            counts["succeeded"] += 1
        else:
            counts["failed"] += 1
            logger.warning(str(err))

    async with Destination.from_settings(settings) as dest:
        for obj in iter_ndjson(path):
            await dest.accept(Record.model_validate(obj), on_ack)
            counts["ingested"] += 1
    # Drained on exit
    return counts


if __name__ == "__main__":
    app()
