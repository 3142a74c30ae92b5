"""Stats command: show how many chunks each site namespace holds."""

from __future__ import annotations

import asyncio

from rich.console import Console
from rich.table import Table

from siteqa.cli.runtime import setup_pipeline
from siteqa.services.pipeline import AskPipeline


def stats_command() -> None:
    """List stored namespaces with their chunk counts."""
    console = Console()
    pipeline = setup_pipeline()
    counts = asyncio.run(_run_stats(pipeline))

    if not counts:
        console.print("[yellow]No content stored yet[/yellow]")
        return

    table = Table(title="Stored Namespaces")
    table.add_column("Namespace", style="cyan")
    table.add_column("Chunks", justify="right")
    for namespace, count in sorted(counts.items()):
        table.add_row(namespace, str(count))
    table.add_row("Total", str(sum(counts.values())), style="bold")
    console.print(table)


async def _run_stats(pipeline: AskPipeline) -> dict[str, int]:
    try:
        return await pipeline.stats()
    finally:
        await pipeline.close()
