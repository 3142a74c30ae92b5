"""Configuration module for the siteqa pipeline.

Provides Pydantic-based configuration management with environment variable support
and comprehensive field validation.

Example:
    >>> from siteqa.core.config import Settings
    >>> settings = Settings(max_depth=2)
    >>> print(settings.collection_name)
    'siteqa'
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


def is_running_in_docker() -> bool:
    """Detect if code is running inside a Docker container.

    Checks for Docker-specific files and environment markers.

    Returns:
        True if running inside Docker container, False otherwise.
    """
    # Check for .dockerenv file (exists in Docker containers)
    if Path("/.dockerenv").exists():
        return True

    # Check cgroup for docker indicators
    try:
        with Path("/proc/1/cgroup").open() as f:
            return "docker" in f.read()
    except (FileNotFoundError, PermissionError):
        pass

    # Check for explicit environment variable
    return os.getenv("RUN_IN_DOCKER", "").lower() in ("true", "1", "yes")


class Settings(BaseSettings):
    """siteqa service configuration.

    Environment-aware configuration that automatically uses:
    - Docker network URLs when running inside containers
    - Localhost URLs when running on host machine (CLI)

    Attributes:
        tei_endpoint: Text Embeddings Inference service endpoint
        embedding_dimensions: Dimension count of the embedding model output
        qdrant_url: Qdrant vector database URL
        collection_name: Qdrant collection holding every namespace
        redis_url: Redis URL for the answer cache
        llm_endpoint: OpenAI-compatible chat completions base URL
        max_depth: Deepest link level fetched from the start URL
        max_links_per_page: Outbound links followed per page
        politeness_delay_seconds: Pause between consecutive page fetches
        chunk_policy: "sentence" (byte budget) or "word" (token budget)
        namespace_scope: "url" (hash the full URL) or "domain" (hash the origin)
        cache_ttl_seconds: Lifetime of cached answers
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Raises:
        ValidationError: If values are invalid

    Example:
        >>> settings = Settings(max_depth=1, chunk_policy="word")
        >>> print(settings.chunk_max_tokens)
        500
    """

    # Service endpoints (will be set by model_validator based on environment)
    tei_endpoint: str = ""
    embedding_dimensions: int = 1024
    qdrant_url: str = ""
    collection_name: str = "siteqa"
    redis_url: str = ""
    llm_endpoint: str = ""
    llm_model: str = "llama3.1:8b"
    llm_api_key: str | None = None
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.2

    # Crawling
    max_depth: int = 3
    max_links_per_page: int = 5
    politeness_delay_seconds: float = 1.0
    fetch_timeout_seconds: float = 30.0
    fetch_max_bytes: int = 10_000_000
    fetch_max_attempts: int = 4
    fetch_retry_base_delay: float = 1.0
    crawl_deadline_seconds: float | None = None
    user_agent: str = DEFAULT_USER_AGENT

    # Chunking
    chunk_policy: Literal["sentence", "word"] = "sentence"
    chunk_max_bytes: int = 40900
    chunk_max_tokens: int = 500
    min_chunk_chars: int = 100

    # Call governance
    embed_min_interval_seconds: float = 0.1
    embed_calls_per_minute: int = 100
    llm_min_interval_seconds: float = 1.0
    llm_calls_per_minute: int = 30
    vector_calls_per_minute: int = 600
    rate_limit_cooldown_seconds: float = 10.0
    rate_limit_max_retries: int = 3

    # Retrieval
    top_k: int = 5
    min_context_chars: int = 100
    max_context_tokens: int = 3000
    context_trim_step: int = 1000

    # Namespaces and caching
    namespace_scope: Literal["url", "domain"] = "url"
    cache_ttl_seconds: int = 3600

    # Logging
    log_level: str = "INFO"
    log_file: Path = Path(".cache/siteqa.log")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def set_environment_aware_defaults(self) -> "Settings":
        """Set service URLs based on environment if not explicitly configured.

        Auto-detects if running in Docker container vs host machine and uses
        appropriate service URLs. Environment variable overrides take precedence.

        Returns:
            Settings instance with environment-aware URLs.
        """
        in_docker = is_running_in_docker()

        # Set defaults only if not explicitly configured via env vars
        if not self.redis_url:
            self.redis_url = (
                "redis://siteqa-cache:6379" if in_docker else "redis://localhost:6379"
            )

        if not self.qdrant_url:
            self.qdrant_url = (
                "http://siteqa-vectors:6333" if in_docker else "http://localhost:6333"
            )

        if not self.tei_endpoint:
            self.tei_endpoint = (
                "http://siteqa-embeddings:80" if in_docker else "http://localhost:8080"
            )

        if not self.llm_endpoint:
            self.llm_endpoint = (
                "http://siteqa-llm:11434" if in_docker else "http://localhost:11434"
            )

        return self

    @field_validator(
        "max_links_per_page",
        "fetch_timeout_seconds",
        "fetch_max_bytes",
        "fetch_max_attempts",
        "chunk_max_bytes",
        "chunk_max_tokens",
        "embed_calls_per_minute",
        "llm_calls_per_minute",
        "vector_calls_per_minute",
        "top_k",
        "max_context_tokens",
        "context_trim_step",
        "cache_ttl_seconds",
    )
    @classmethod
    def validate_positive(cls: type["Settings"], v: int | float) -> int | float:
        """Validate that sizes, budgets and counts are positive.

        Args:
            cls: The Settings class (provided by Pydantic)
            v: Value to validate

        Returns:
            Validated value

        Raises:
            ValueError: If the value is zero or negative
        """
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator(
        "max_depth",
        "politeness_delay_seconds",
        "fetch_retry_base_delay",
        "min_chunk_chars",
        "embed_min_interval_seconds",
        "llm_min_interval_seconds",
        "rate_limit_cooldown_seconds",
        "rate_limit_max_retries",
        "min_context_chars",
    )
    @classmethod
    def validate_non_negative(cls: type["Settings"], v: int | float) -> int | float:
        """Validate that delays, floors and depth are not negative.

        A zero depth crawls only the start page; zero delays disable the
        corresponding pause, which the test suite relies on.

        Args:
            cls: The Settings class (provided by Pydantic)
            v: Value to validate

        Returns:
            Validated value

        Raises:
            ValueError: If the value is negative
        """
        if v < 0:
            raise ValueError("value must not be negative")
        return v

    @field_validator("crawl_deadline_seconds")
    @classmethod
    def validate_deadline(cls: type["Settings"], v: float | None) -> float | None:
        """Validate crawl_deadline_seconds is positive when set.

        Args:
            cls: The Settings class (provided by Pydantic)
            v: Deadline in seconds, or None for no deadline

        Returns:
            Validated deadline

        Raises:
            ValueError: If the deadline is zero or negative
        """
        if v is not None and v <= 0:
            raise ValueError("crawl_deadline_seconds must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls: type["Settings"], v: str) -> str:
        """Validate log_level names a standard logging level.

        Args:
            cls: The Settings class (provided by Pydantic)
            v: Level name in any case

        Returns:
            Upper-cased level name

        Raises:
            ValueError: If the level is unknown
        """
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"invalid log_level: {v}")
        return level
