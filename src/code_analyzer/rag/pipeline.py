"""CodeAnalyzer facade: chunk -> embed -> store, plus querying and repository analysis runs."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

import httpx

from code_analyzer.config.settings import Settings, settings
from code_analyzer.rag.chunker import Chunker, java_files
from code_analyzer.rag.declarations import JavaFile
from code_analyzer.rag.embedder import BatchEmbedder
from code_analyzer.rag.errors import AnalysisError
from code_analyzer.rag.explainer import ChatExplainer, Explainer
from code_analyzer.rag.models import Chunk, Embedding, QueryResult, SearchResult
from code_analyzer.rag.orchestrator import QueryOrchestrator
from code_analyzer.rag.progress import AnalysisProgress, AnalysisResult, AnalysisStatus, count_by_kind
from code_analyzer.rag.vector_store import VectorIndexClient

logger = logging.getLogger(__name__)


def repository_key(repo_path: Path | str) -> str:
    return str(Path(repo_path).resolve())


class CodeAnalyzer:
    """Wires the chunker, embedder, vector index and orchestrator together."""

    def __init__(
        self,
        chunker: Chunker,
        embedder: BatchEmbedder,
        store: VectorIndexClient,
        explainer: Explainer | None = None,
    ):
        self.chunker = chunker
        self.embedder = embedder
        self.store = store
        self.orchestrator = QueryOrchestrator(embedder, store, explainer)
        self._progress: dict[str, AnalysisProgress] = {}

    @classmethod
    def from_settings(
        cls,
        config: Settings | None = None,
        explainer: Explainer | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> "CodeAnalyzer":
        cfg = config or settings
        return cls(
            Chunker.from_settings(cfg),
            BatchEmbedder.from_settings(cfg, client=client),
            VectorIndexClient.from_settings(cfg),
            explainer or ChatExplainer(config=cfg),
        )

    async def aclose(self) -> None:
        await self.embedder.aclose()
        await self.store.aclose()

    async def __aenter__(self) -> "CodeAnalyzer":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def chunk_file(self, parsed: JavaFile, path: str) -> list[Chunk]:
        return self.chunker.chunk_file(parsed, path)

    def chunk_repository(self, repo_path: Path | str) -> list[Chunk]:
        return self.chunker.chunk_repository(repo_path)

    async def embed_chunks(self, chunks: Sequence[Chunk]) -> list[Embedding]:
        return await self.embedder.embed_all(chunks)

    async def embed_query(self, text: str) -> list[float]:
        return await self.embedder.embed_query(text)

    async def ensure_index_ready(self) -> bool:
        return await self.store.ensure_collection()

    async def store_embeddings(self, embeddings: Sequence[Embedding]) -> bool:
        return await self.store.add_all(embeddings)

    async def search(
        self, vector: Sequence[float], top_k: int, filters: Mapping[str, Any] | None = None
    ) -> list[SearchResult]:
        return await self.store.search(vector, top_k, filters)

    async def answer_query(
        self,
        text: str,
        top_k: int = 5,
        filters: Mapping[str, Any] | None = None,
        want_explanation: bool = True,
    ) -> QueryResult:
        return await self.orchestrator.answer(text, top_k, filters, want_explanation)

    def progress(self, repo_path: Path | str) -> AnalysisProgress | None:
        return self._progress.get(repository_key(repo_path))

    async def analyze_repository(self, repo_path: Path | str) -> AnalysisResult:
        """Index every Java file under repo_path. Failures end in a FAILED result, never an exception."""
        root = Path(repo_path).resolve()
        return await self._analyze(root, lambda: java_files(root))

    async def analyze_files(self, repo_path: Path | str, relative_paths: Sequence[str]) -> AnalysisResult:
        root = Path(repo_path).resolve()
        return await self._analyze(root, lambda: [Path(p) for p in relative_paths])

    async def _analyze(self, root: Path, list_files: Callable[[], list[Path]]) -> AnalysisResult:
        key = repository_key(root)
        progress = AnalysisProgress()
        self._progress[key] = progress
        logger.info("pipeline: starting analysis of %s", key)
        chunks: list[Chunk] = []
        stored = 0
        try:
            progress.advance(AnalysisStatus.INITIALIZING, "Initializing vector store")
            if not await self.ensure_index_ready():
                raise AnalysisError("Vector store is not available")

            progress.advance(AnalysisStatus.PARSING, "Parsing Java files")
            files = list_files()
            progress.total_files = len(files)

            def on_file(n: int) -> None:
                progress.processed_files = n

            chunks = await asyncio.to_thread(self.chunker.chunk_files, root, files, on_file)
            progress.total_chunks = len(chunks)
            progress.message = f"Found {len(chunks)} code chunks"
            if not chunks:
                raise AnalysisError("No Java code chunks found in repository")

            progress.advance(AnalysisStatus.GENERATING_EMBEDDINGS, "Generating embeddings")
            embeddings = await self.embed_chunks(chunks)
            progress.processed_chunks = len(embeddings)
            progress.message = f"Generated {len(embeddings)} embeddings"

            progress.advance(AnalysisStatus.STORING_VECTORS, "Storing embeddings in vector database")
            if not await self.store_embeddings(embeddings):
                raise AnalysisError("Failed to store embeddings in vector database")
            stored = len(embeddings)
        except Exception as e:
            progress.finish(AnalysisStatus.FAILED, "Analysis failed", error=str(e))
            logger.error("pipeline: analysis of %s failed: %s", key, e)
            return AnalysisResult(
                repository=key,
                status=AnalysisStatus.FAILED,
                total_chunks=len(chunks),
                processing_time_ms=progress.duration_ms,
                chunks_by_kind=count_by_kind(chunks),
                errors=[str(e)],
            )

        progress.finish(AnalysisStatus.COMPLETED, "Analysis completed successfully")
        logger.info(
            "pipeline: analyzed %s: %d chunks, %d stored (%dms)", key, len(chunks), stored, progress.duration_ms
        )
        return AnalysisResult(
            repository=key,
            status=AnalysisStatus.COMPLETED,
            total_chunks=len(chunks),
            stored_embeddings=stored,
            processing_time_ms=progress.duration_ms,
            chunks_by_kind=count_by_kind(chunks),
        )

    async def analysis_summary(self) -> dict[str, Any]:
        """Progress of every analyzed repository plus the index stats."""
        statuses = [p.status for p in self._progress.values()]
        completed = statuses.count(AnalysisStatus.COMPLETED)
        failed = statuses.count(AnalysisStatus.FAILED)
        return {
            "vectorStore": await self.store.stats(),
            "repositories": dict(self._progress),
            "totalRepositories": len(statuses),
            "completedRepositories": completed,
            "failedRepositories": failed,
            "inProgressRepositories": len(statuses) - completed - failed,
        }

    async def health(self) -> dict[str, bool]:
        embedding_ok, store_ok = await asyncio.gather(self.embedder.health(), self.store.health())
        return {"embeddingService": embedding_ok, "vectorStore": store_ok, "overall": embedding_ok and store_ok}
