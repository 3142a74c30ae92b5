"""Ingest command: crawl a website into the vector store."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.panel import Panel

from siteqa.cli.runtime import setup_pipeline
from siteqa.readers.crawl.url_validator import ValidationError
from siteqa.services.models import IngestResult
from siteqa.services.pipeline import AskPipeline


def ingest_command(
    url: str = typer.Argument(..., help="Website to crawl"),
    refresh: bool = typer.Option(
        False, "--refresh", help="Discard stored content and crawl again"
    ),
) -> None:
    """Crawl a website and store its content without asking anything."""
    console = Console()
    pipeline = setup_pipeline()
    try:
        result = asyncio.run(_run_ingest(pipeline, url, refresh))
    except ValidationError as e:
        console.print(f"[red]Invalid URL: {e}[/red]")
        raise typer.Exit(code=1)

    if result.skipped:
        console.print(
            f"[yellow]Namespace {result.namespace} already has content; "
            "use --refresh to crawl again[/yellow]"
        )
        return

    panel = Panel(
        f"Namespace: {result.namespace}\n"
        f"Pages: {result.pages_crawled}\n"
        f"Failed pages: {result.pages_failed}\n"
        f"Chunks stored: {result.chunks_stored}\n"
        f"Chunks failed: {result.chunks_failed}"
        + ("\nStopped early: crawl deadline reached" if result.truncated else ""),
        title="Ingest Summary",
    )
    console.print(panel)

    if not result.success:
        console.print(f"[red]{result.error}[/red]")
        raise typer.Exit(code=1)


async def _run_ingest(pipeline: AskPipeline, url: str, refresh: bool) -> IngestResult:
    console = Console()
    try:
        with console.status("Crawling..."):
            return await pipeline.ingest(url, refresh=refresh)
    finally:
        await pipeline.close()
