#!/usr/bin/env python3
"""
Knowledge Base Ingestion Script

Crawls the configured legal/regulatory sources, chunks and embeds them,
and upserts the result into the documents table. Safe to re-run:
unchanged text replaces its own rows instead of adding new ones.

Usage:
    Requires the database to be migrated (alembic upgrade head):
    $ python scripts/ingest_sources.py
    $ python scripts/ingest_sources.py --only-html
    $ python scripts/ingest_sources.py --source https://www.legislation.gov.uk/ukpga/2018/34
    $ python scripts/ingest_sources.py --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import httpx
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from redress.core.config import get_settings
from redress.core.database import Database
from redress.core.exceptions import ConfigError
from redress.core.logging import setup_logging
from redress.core.sources import select_sources
from redress.repositories.documents import VectorStore
from redress.services.chunking import TextChunker
from redress.services.embedding import EmbeddingClient
from redress.services.extraction import TextExtractor
from redress.services.ingestion import IngestionPipeline, IngestReport, SourceState


console = Console()

STATE_STYLES = {
    SourceState.UPSERTED: "green",
    SourceState.SKIPPED: "yellow",
    SourceState.FAILED: "red",
}


def print_report(report: IngestReport) -> None:
    """Per-source outcome table followed by the chunk counters."""
    table = Table(title="Sources", box=box.ROUNDED)
    table.add_column("State")
    table.add_column("Chunks", justify="right")
    table.add_column("Location", style="cyan", overflow="fold")
    table.add_column("Detail")

    for outcome in report.sources:
        style = STATE_STYLES.get(outcome.state, "white")
        table.add_row(
            f"[{style}]{outcome.state.value}[/{style}]",
            str(outcome.chunks),
            escape(outcome.location),
            escape(outcome.error or ""),
        )

    console.print()
    console.print(table)
    console.print(
        f"Chunks: {report.total_chunks} total, {report.unique_chunks} unique, "
        f"[green]{report.stored_chunks} stored[/green], "
        f"[red]{report.skipped_chunks} skipped[/red]"
    )


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    sources = select_sources(only_html=args.only_html, locations=args.source)
    if not sources:
        console.print("[yellow]No sources selected.[/yellow]")
        return 1

    # Fail fast on a bad window before opening any connection.
    chunker = TextChunker(settings.CHUNK_SIZE, settings.CHUNK_OVERLAP)

    database = Database(settings)
    embedder = EmbeddingClient.from_settings(settings)
    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=settings.FETCH_TIMEOUT,
        ) as http:
            store = VectorStore(database.session_factory)
            pipeline = IngestionPipeline(
                TextExtractor(http),
                chunker,
                embedder,
                store,
                fetch_timeout=settings.FETCH_TIMEOUT,
                min_text_length=settings.MIN_TEXT_LENGTH,
            )
            report = await pipeline.run(sources, dry_run=args.dry_run)
            print_report(report)
            if not args.dry_run:
                console.print(f"Documents in store: {await store.count()}")
    finally:
        await embedder.close()
        await database.dispose()

    if args.dry_run:
        return 0
    return 0 if report.succeeded else 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Embed the housing-law knowledge base")
    parser.add_argument(
        "--only-html",
        action="store_true",
        help="Skip PDF sources",
    )
    parser.add_argument(
        "--source",
        action="append",
        metavar="URL",
        help="Process only this source (repeatable; may be outside the default list)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch, extract and chunk only; nothing is embedded or stored",
    )
    args = parser.parse_args()

    try:
        return asyncio.run(run(args))
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
