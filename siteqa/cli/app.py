"""Typer application entry point for siteqa CLI."""

import typer

from siteqa.cli.commands import ask as ask_command
from siteqa.cli.commands import ingest as ingest_command
from siteqa.cli.commands import stats as stats_command

app = typer.Typer(no_args_is_help=True, name="siteqa")

app.command(name="ask", help="Answer a question about a website")(
    ask_command.ask_command
)
app.command(name="ingest", help="Crawl a website into the vector store")(
    ingest_command.ingest_command
)
app.command(name="stats", help="Show stored chunk counts per namespace")(
    stats_command.stats_command
)


if __name__ == "__main__":
    app()
