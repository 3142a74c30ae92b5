"""Ask command: answer a question about a website."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.panel import Panel

from siteqa.cli.runtime import setup_pipeline
from siteqa.services.models import AskResponse
from siteqa.services.pipeline import AskPipeline


def ask_command(
    url: str = typer.Argument(..., help="Website to ask about"),
    question: str = typer.Argument(..., help="Question to answer"),
    refresh: bool = typer.Option(
        False, "--refresh", help="Discard stored content and crawl again"
    ),
) -> None:
    """Answer a question from a website's content."""
    pipeline = setup_pipeline()
    response = asyncio.run(_run_ask(pipeline, url, question, refresh))

    console = Console()
    if not response.success:
        error = response.error.value if response.error else "error"
        console.print(f"[red]{error}: {response.message}[/red]")
        raise typer.Exit(code=1)

    metadata = response.metadata
    console.print(Panel(response.answer or "", title="Answer"))
    console.print(
        f"Namespace: {metadata.get('namespace')}  "
        f"Pages processed: {metadata.get('pages_processed')}  "
        f"Cached: {'yes' if metadata.get('cached') else 'no'}"
    )


async def _run_ask(
    pipeline: AskPipeline, url: str, question: str, refresh: bool
) -> AskResponse:
    console = Console()
    try:
        with console.status("Thinking..."):
            return await pipeline.ask(url, question, refresh=refresh)
    finally:
        await pipeline.close()
