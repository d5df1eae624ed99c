"""LangChain BaseRetriever wrapping the query orchestrator."""

import asyncio
import logging
import threading
from typing import Any

from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever

from code_analyzer.rag.models import CodeMatch
from code_analyzer.rag.orchestrator import QueryOrchestrator

logger = logging.getLogger(__name__)

_loop: asyncio.AbstractEventLoop | None = None
_loop_lock = threading.Lock()


def _background_loop() -> asyncio.AbstractEventLoop:
    """Event loop running forever on a daemon thread, started on first use."""
    global _loop
    with _loop_lock:
        if _loop is None:
            _loop = asyncio.new_event_loop()
            threading.Thread(target=_loop.run_forever, name="CodebaseRetrieverLoop", daemon=True).start()
        return _loop


def to_document(match: CodeMatch) -> Document:
    metadata: dict[str, Any] = {
        "id": match.id,
        "similarity": match.similarity,
        "type": match.kind or "",
        "class_name": match.class_name or "",
        "method_name": match.method_name or "",
        "package_name": match.package_name or "",
        "file_path": match.file_path or "",
        "annotations": match.annotations,
    }
    return Document(page_content=match.code, metadata=metadata)


class CodebaseRetriever(BaseRetriever):
    """LangChain retriever over the indexed Java codebase.

    Returns Document objects with page_content (chunk code) and metadata
    (type, class/method/package names, file_path, similarity). Compatible with
    create_retrieval_chain and other retriever consumers.
    """

    orchestrator: QueryOrchestrator
    """Orchestrator whose embedder and vector index serve the search."""

    top_k: int = 8
    """Maximum number of documents to return."""

    filters: dict[str, Any] | None = None
    """Optional metadata equality filter, e.g. {"isEndpoint": True}."""

    async def _aget_relevant_documents(self, query: str, **kwargs: Any) -> list[Document]:
        result = await self.orchestrator.answer(query, self.top_k, self.filters, want_explanation=False)
        if not result.matches and result.explanation:
            logger.warning("CodebaseRetriever: %s", result.explanation)
        logger.info("CodebaseRetriever: retrieved %d documents for query", result.total_matches)
        return [to_document(m) for m in result.matches]

    def _get_relevant_documents(self, query: str, **kwargs: Any) -> list[Document]:
        """Blocking retrieval for sync callers; async code should use ainvoke().

        The search runs on a shared event loop in a daemon thread, so this also
        works when the calling thread already has a running loop.
        """
        future = asyncio.run_coroutine_threadsafe(self._aget_relevant_documents(query), _background_loop())
        return future.result()
