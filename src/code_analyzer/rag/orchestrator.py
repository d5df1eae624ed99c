"""Answer natural-language questions from the vector index.

answer() embeds the query, searches, converts rows into CodeMatch records and
optionally asks the explainer for prose. It never raises: any failure becomes
a QueryResult with no matches and an error explanation.
"""

import logging
import time
from typing import Any, Mapping, Sequence

from code_analyzer.rag.embedder import BatchEmbedder
from code_analyzer.rag.errors import EmbeddingFailedError
from code_analyzer.rag.explainer import Explainer
from code_analyzer.rag.models import ChunkKind, CodeMatch, QueryResult, SearchResult
from code_analyzer.rag.vector_store import VectorIndexClient

logger = logging.getLogger(__name__)

CONTEXT_MATCHES = 5
ENDPOINT_RESULTS = 10
BUSINESS_LOGIC_RESULTS = 8

SUGGESTIONS = (
    "What REST endpoints are available?",
    "Show me the controller classes",
    "How is user authentication handled?",
    "What services are available?",
    "Show me database operations",
    "What are the main business logic flows?",
    "How does the application handle errors?",
    "What external APIs does this application call?",
    "Show me the data models",
    "How is dependency injection configured?",
)
FILTER_KEYS = ("type", "className", "packageName", "isSpringComponent", "isEndpoint", "isController", "isService")


def to_code_match(result: SearchResult) -> CodeMatch:
    """Similarity is 1 - distance; typed fields come from the metadata map."""
    metadata = result.metadata or {}
    annotations = metadata.get("annotations") or ""
    return CodeMatch(
        id=result.id,
        code=result.document,
        similarity=1.0 - result.distance,
        kind=metadata.get("type"),
        class_name=metadata.get("className"),
        method_name=metadata.get("methodName"),
        package_name=metadata.get("packageName"),
        file_path=metadata.get("filePath"),
        annotations=annotations.split(",") if annotations else [],
        metadata=dict(metadata),
    )


def build_context(matches: Sequence[CodeMatch], limit: int = CONTEXT_MATCHES) -> str:
    """Concatenate the top matches, each under a '// KIND from Class (similarity: 0.87)' header."""
    parts = [
        f"// {m.kind} from {m.class_name} (similarity: {m.similarity:.2f})\n{m.code}\n\n"
        for m in matches[:limit]
    ]
    return "".join(parts)


def error_result(query: str, error: BaseException, started: float) -> QueryResult:
    return QueryResult(
        query=query,
        explanation=f"Sorry, I encountered an error while searching the code: {error}",
        processing_time_ms=_elapsed_ms(started),
    )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class QueryOrchestrator:
    def __init__(self, embedder: BatchEmbedder, store: VectorIndexClient, explainer: Explainer | None = None):
        self.embedder = embedder
        self.store = store
        self.explainer = explainer

    async def answer(
        self,
        query: str,
        top_k: int = 5,
        filters: Mapping[str, Any] | None = None,
        want_explanation: bool = True,
    ) -> QueryResult:
        started = time.monotonic()
        logger.info("orchestrator: query %r (top_k=%d, filters=%s)", query, top_k, dict(filters or {}))
        try:
            matches = await self._matches(query, top_k, filters)
            explanation = None
            if want_explanation and matches and self.explainer is not None:
                explanation = await self.explainer.explain(query, build_context(matches))
        except Exception as e:
            logger.error("orchestrator: query %r failed: %s", query, e)
            return error_result(query, e, started)
        result = QueryResult(query, matches, explanation, _elapsed_ms(started))
        logger.info("orchestrator: %d matches in %dms", result.total_matches, result.processing_time_ms)
        return result

    async def _matches(self, query: str, top_k: int, filters: Mapping[str, Any] | None) -> list[CodeMatch]:
        vector = await self.embedder.embed_query(query)
        if not vector:
            raise EmbeddingFailedError("Failed to generate query embedding")
        results = await self.store.search(vector, top_k, filters)
        return [to_code_match(r) for r in results]

    async def search_by_kind(self, kind: ChunkKind | str, top_k: int = 10) -> QueryResult:
        """Chunks of one kind (type metadata), no explanation."""
        kind = ChunkKind(kind)
        logger.info("orchestrator: searching for kind %s", kind.value)
        return await self.answer(f"Find {kind.value} code", top_k, {"type": kind.value}, want_explanation=False)

    async def search_components(self, top_k: int = 10) -> QueryResult:
        return await self.answer(
            "Find Spring Boot components", top_k, {"isSpringComponent": True}, want_explanation=False
        )

    async def find_endpoints(self) -> QueryResult:
        """Endpoint methods plus an endpoint-focused explanation."""
        return await self._specialized(
            "What REST API endpoints are available?",
            ENDPOINT_RESULTS,
            {"isEndpoint": True},
            lambda context: self.explainer.analyze_endpoints(context),
        )

    async def analyze_business_logic(self, query: str) -> QueryResult:
        return await self._specialized(
            query,
            BUSINESS_LOGIC_RESULTS,
            None,
            lambda context: self.explainer.analyze_business_logic(query, context),
        )

    async def _specialized(self, query, top_k, filters, explain) -> QueryResult:
        result = await self.answer(query, top_k, filters, want_explanation=False)
        if not result.matches:
            logger.warning("orchestrator: no matches for %r", query)
            return result
        if self.explainer is None:
            return result
        started = time.monotonic()
        try:
            result.explanation = await explain(build_context(result.matches))
        except Exception as e:
            logger.error("orchestrator: analysis for %r failed: %s", query, e)
            return error_result(query, e, started)
        result.processing_time_ms += _elapsed_ms(started)
        return result

    def suggestions(self) -> list[str]:
        return list(SUGGESTIONS)

    async def search_stats(self) -> dict[str, Any]:
        """Index stats plus the filter keys and kinds callers can search by."""
        stats = await self.store.stats()
        return {
            "totalDocuments": stats.get("count", 0),
            "collectionInfo": stats,
            "availableFilters": list(FILTER_KEYS),
            "supportedTypes": [kind.value for kind in ChunkKind],
        }
