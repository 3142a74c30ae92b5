from unittest.mock import AsyncMock, MagicMock, patch

from typer.testing import CliRunner

from siteqa.cli.app import app
from siteqa.readers.crawl.url_validator import ValidationError
from siteqa.services.models import IngestResult

runner = CliRunner()


def _pipeline(**ingest_kwargs) -> MagicMock:
    pipeline = MagicMock()
    pipeline.ingest = AsyncMock(**ingest_kwargs)
    pipeline.close = AsyncMock()
    return pipeline


def test_ingest_help() -> None:
    result = runner.invoke(app, ["ingest", "--help"])
    assert result.exit_code == 0
    assert "Crawl a website" in result.output


def test_ingest_prints_summary() -> None:
    pipeline = _pipeline(
        return_value=IngestResult(
            namespace="example_com_0123", success=True, pages_crawled=5, chunks_stored=12
        )
    )

    with patch("siteqa.cli.commands.ingest.setup_pipeline", return_value=pipeline):
        result = runner.invoke(app, ["ingest", "https://example.com"])

    assert result.exit_code == 0
    assert "Ingest Summary" in result.output
    assert "Chunks stored: 12" in result.output
    pipeline.ingest.assert_awaited_once_with("https://example.com", refresh=False)
    pipeline.close.assert_awaited_once()


def test_ingest_reports_skipped_namespace() -> None:
    pipeline = _pipeline(
        return_value=IngestResult(namespace="example_com_0123", success=True, skipped=True)
    )

    with patch("siteqa.cli.commands.ingest.setup_pipeline", return_value=pipeline):
        result = runner.invoke(app, ["ingest", "https://example.com"])

    assert result.exit_code == 0
    assert "already has content" in result.output


def test_ingest_failure_exits_non_zero() -> None:
    pipeline = _pipeline(
        return_value=IngestResult(
            namespace="example_com_0123",
            success=False,
            error="Failed to fetch start URL https://example.com",
        )
    )

    with patch("siteqa.cli.commands.ingest.setup_pipeline", return_value=pipeline):
        result = runner.invoke(app, ["ingest", "https://example.com", "--refresh"])

    assert result.exit_code == 1
    assert "Failed to fetch start URL" in result.output
    pipeline.ingest.assert_awaited_once_with("https://example.com", refresh=True)


def test_ingest_invalid_url() -> None:
    pipeline = _pipeline(side_effect=ValidationError("Localhost access not allowed"))

    with patch("siteqa.cli.commands.ingest.setup_pipeline", return_value=pipeline):
        result = runner.invoke(app, ["ingest", "http://localhost"])

    assert result.exit_code == 1
    assert "Invalid URL" in result.output
    pipeline.close.assert_awaited_once()
