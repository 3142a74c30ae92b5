"""Service layer for crawling, retrieval and question answering."""

from siteqa.services.crawler import CrawlController, generate_run_id
from siteqa.services.generation import GenerationClient
from siteqa.services.models import (
    AnswerResult,
    AskResponse,
    CrawlTask,
    ErrorKind,
    IngestResult,
)
from siteqa.services.namespace import NamespaceManager, resolve_namespace
from siteqa.services.pipeline import AskPipeline
from siteqa.services.retrieval import (
    NO_CONTEXT_ANSWER,
    PROMPT_TEMPLATE,
    RetrievalOrchestrator,
)

__all__ = [
    "AnswerResult",
    "AskPipeline",
    "AskResponse",
    "CrawlController",
    "CrawlTask",
    "ErrorKind",
    "GenerationClient",
    "generate_run_id",
    "IngestResult",
    "NamespaceManager",
    "NO_CONTEXT_ANSWER",
    "PROMPT_TEMPLATE",
    "resolve_namespace",
    "RetrievalOrchestrator",
]
