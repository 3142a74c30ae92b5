"""Shared setup for CLI commands."""

from siteqa.core.config import Settings
from siteqa.core.logger import configure_logging
from siteqa.services.pipeline import AskPipeline


def setup_pipeline() -> AskPipeline:
    """Load settings, configure logging and build the pipeline."""
    settings = Settings()
    configure_logging(settings)
    return AskPipeline.from_settings(settings)
