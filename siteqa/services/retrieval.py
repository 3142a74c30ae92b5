"""Answer questions from the stored content of a namespace."""

import logging
from datetime import datetime, timezone
from typing import Any

from siteqa.core.metadata import MetadataKeys
from siteqa.processing.chunker import estimate_tokens
from siteqa.resilience.governor import CallGovernor
from siteqa.services.generation import GenerationClient
from siteqa.services.models import AnswerResult
from siteqa.storage.embeddings import EmbeddingClient
from siteqa.storage.qdrant import VectorStoreManager

logger = logging.getLogger(__name__)

NO_CONTEXT_ANSWER = (
    "I couldn't find any relevant information in the scraped data to answer "
    "your question."
)

PROMPT_TEMPLATE = (
    "You are an assistant with full context of the question. Answer accurately "
    "based on the provided context. If the context doesn't contain enough "
    "information to answer the question, say so directly.\n\n"
    "Question: {question}\n\n"
    "Context: {context}\n\n"
    "Answer:"
)

CONTEXT_SEPARATOR = "\n\n"


def trim_context(question: str, context: str, max_tokens: int, step: int) -> str:
    """Drop characters from the end of context until the prompt fits.

    Args:
        question: Question text (counted but never trimmed)
        context: Joined context
        max_tokens: Token budget for question plus context
        step: Characters removed per round

    Returns:
        Context prefix whose estimated size together with the question is
        within max_tokens (possibly empty)
    """
    while context and estimate_tokens(question + context) > max_tokens:
        context = context[:-step] if len(context) > step else ""
    return context


class RetrievalOrchestrator:
    """Embed a question, gather matching context and generate an answer.

    Args:
        embeddings: Embedding client
        vector_store: Vector store manager
        generator: Generation client
        embed_governor: Governor wrapping embedding calls
        vector_governor: Governor wrapping vector store queries
        llm_governor: Governor wrapping generation calls
        top_k: Matches retrieved per question
        min_context_chars: Matches must be longer than this to count as context
        max_context_tokens: Token budget for question plus context
        context_trim_step: Characters removed per trimming round
    """

    def __init__(
        self,
        embeddings: EmbeddingClient | Any,
        vector_store: VectorStoreManager | Any,
        generator: GenerationClient | Any,
        embed_governor: CallGovernor,
        vector_governor: CallGovernor,
        llm_governor: CallGovernor,
        top_k: int = 5,
        min_context_chars: int = 100,
        max_context_tokens: int = 3000,
        context_trim_step: int = 1000,
    ) -> None:
        self.embeddings = embeddings
        self.vector_store = vector_store
        self.generator = generator
        self.embed_governor = embed_governor
        self.vector_governor = vector_governor
        self.llm_governor = llm_governor
        self.top_k = top_k
        self.min_context_chars = min_context_chars
        self.max_context_tokens = max_context_tokens
        self.context_trim_step = context_trim_step

    async def answer(self, question: str, namespace: str, url: str) -> AnswerResult:
        """Answer a question from the namespace's stored chunks.

        When no stored chunk qualifies as context, the fixed NO_CONTEXT_ANSWER
        is returned and the generation service is not called.
        """
        vector = await self.embed_governor.execute(
            lambda: self.embeddings.embed_single(question),
            operation_name="Embed question",
        )
        matches = await self.vector_governor.execute(
            lambda: self.vector_store.query(namespace, vector, self.top_k),
            operation_name="Query vectors",
        )

        selected = [
            match
            for match in matches
            if len(match.get(MetadataKeys.CONTENT) or "") > self.min_context_chars
        ]
        sources = tuple(
            dict.fromkeys(str(match.get(MetadataKeys.SOURCE_URL, "")) for match in selected)
        )

        if not selected:
            logger.info(f"No usable context in namespace {namespace}")
            return self._result(NO_CONTEXT_ANSWER, namespace, url, False, ())

        context = CONTEXT_SEPARATOR.join(match[MetadataKeys.CONTENT] for match in selected)
        trimmed = trim_context(
            question, context, self.max_context_tokens, self.context_trim_step
        )
        if len(trimmed) < len(context):
            logger.debug(f"Context trimmed from {len(context)} to {len(trimmed)} chars")

        prompt = PROMPT_TEMPLATE.format(question=question, context=trimmed)
        answer = await self.llm_governor.execute(
            lambda: self.generator.generate(prompt), operation_name="Generate answer"
        )
        return self._result(answer, namespace, url, True, sources)

    def _result(
        self,
        answer: str,
        namespace: str,
        url: str,
        context_found: bool,
        sources: tuple[str, ...],
    ) -> AnswerResult:
        return AnswerResult(
            answer=answer,
            namespace=namespace,
            url=url,
            processed_at=datetime.now(timezone.utc).isoformat(),
            context_found=context_found,
            sources=sources,
        )
