"""Embed chunks through an Ollama-compatible embedding service.

Chunks go out in batches of embedding_batch_size, with at most
embedding_concurrency batches in flight and a short pause after each
batch. A chunk whose embedding still fails after retries is dropped; the
rest of the run carries on, so the result can be shorter than the input.
"""

import asyncio
import logging
import time
from typing import Any, Sequence

import httpx

from code_analyzer.config.settings import Settings, settings
from code_analyzer.rag.batching import make_batches
from code_analyzer.rag.chunk_rules import is_framework_component
from code_analyzer.rag.errors import EmbeddingError
from code_analyzer.rag.models import Chunk, ChunkKind, Embedding
from code_analyzer.rag.retry import Sleep, retry_async

logger = logging.getLogger(__name__)

EMBEDDINGS_PATH = "/api/embeddings"


def is_bad_request(error: BaseException) -> bool:
    """400 means the request itself is malformed; retrying cannot help."""
    return isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 400


def metadata_for_chunk(chunk: Chunk) -> dict[str, Any]:
    """Chunk metadata plus the chunk-level facts stored next to its vector."""
    metadata = dict(chunk.metadata)
    metadata.update(
        {
            "chunkId": chunk.id,
            "type": chunk.kind.value,
            "className": chunk.class_name,
            "packageName": chunk.package_name,
            "filePath": chunk.file_path,
            "contentLength": len(chunk.content),
            "hasAnnotations": bool(chunk.annotations),
            "annotations": ",".join(chunk.annotations),
            "isSpringComponent": is_framework_component(chunk.annotations),
        }
    )
    if chunk.kind is ChunkKind.METHOD and chunk.method_name:
        metadata["methodName"] = chunk.method_name
        metadata["fullMethodName"] = f"{chunk.class_name}.{chunk.method_name}"
    return metadata


class BatchEmbedder:
    """Async client for POST /api/embeddings with batching, retries and truncation."""

    def __init__(
        self,
        base_url: str,
        model: str,
        *,
        timeout: float = 30.0,
        batch_size: int = 5,
        concurrency: int = 2,
        batch_delay: float = 0.5,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        max_chars: int = 8000,
        query_prefix: str = "Java Spring Boot code: ",
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.batch_size = batch_size
        self.concurrency = concurrency
        self.batch_delay = batch_delay
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.max_chars = max_chars
        self.query_prefix = query_prefix
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls, config: Settings | None = None, client: httpx.AsyncClient | None = None
    ) -> "BatchEmbedder":
        cfg = config or settings
        return cls(
            cfg.ollama_base_url,
            cfg.embedding_model,
            timeout=cfg.embedding_timeout,
            batch_size=cfg.embedding_batch_size,
            concurrency=cfg.embedding_concurrency,
            batch_delay=cfg.embedding_batch_delay,
            max_retries=cfg.embedding_max_retries,
            retry_backoff=cfg.embedding_retry_backoff,
            max_chars=cfg.embedding_max_chars,
            query_prefix=cfg.query_prefix,
            client=client,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "BatchEmbedder":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def model_info(self) -> str:
        return f"Model: {self.model}, Service: {self.base_url}"

    def _truncate(self, text: str) -> str:
        if len(text) <= self.max_chars:
            return text
        logger.debug("embedder: truncating text from %d to %d chars", len(text), self.max_chars)
        return text[: self.max_chars] + "..."

    async def embed_one(self, text: str) -> list[float]:
        """Vector for text; [] for blank text. Raises after retries are exhausted."""
        if not text or not text.strip():
            logger.debug("embedder: skipping empty text")
            return []
        prompt = self._truncate(text)

        async def call() -> list[float]:
            response = await self._client.post(
                f"{self.base_url}{EMBEDDINGS_PATH}",
                json={"model": self.model, "prompt": prompt},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return [float(x) for x in response.json().get("embedding") or []]

        try:
            vector = await retry_async(
                call,
                max_retries=self.max_retries,
                base_delay=self.retry_backoff,
                should_retry=lambda e: not is_bad_request(e),
                sleep=self._sleep,
                label="embedding",
            )
        except Exception as e:
            logger.error("embedder: failed to embed text of length %d: %s", len(prompt), e)
            raise
        logger.debug("embedder: embedded %d chars -> dim %d", len(prompt), len(vector))
        return vector

    async def embed_query(self, query: str) -> list[float]:
        """Embed a user query with the code-domain prefix."""
        logger.info("embedder: embedding query %r", query)
        return await self.embed_one(f"{self.query_prefix}{query}")

    async def embed_all(self, chunks: Sequence[Chunk]) -> list[Embedding]:
        """Embed chunks in bounded-concurrency batches; failed chunks are dropped."""
        if not chunks:
            return []
        t0 = time.monotonic()
        batches = make_batches(chunks, self.batch_size)
        logger.info(
            "embedder: embedding %d chunks in %d batches (size=%d, concurrency=%d)",
            len(chunks), len(batches), self.batch_size, self.concurrency,
        )
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run(batch: list[Chunk]) -> list[Embedding]:
            async with semaphore:
                result = await self._embed_batch(batch)
                # The pause keeps the slot, so it throttles the next batch.
                await self._sleep(self.batch_delay)
                return result

        results = await asyncio.gather(*(run(b) for b in batches))
        embeddings = [e for batch in results for e in batch]
        logger.info(
            "embedder: %d/%d chunks embedded (%.1fs)", len(embeddings), len(chunks), time.monotonic() - t0
        )
        if len(embeddings) < len(chunks):
            logger.warning("embedder: %d chunks failed to embed", len(chunks) - len(embeddings))
        return embeddings

    async def _embed_batch(self, batch: list[Chunk]) -> list[Embedding]:
        t0 = time.monotonic()
        results = await asyncio.gather(*(self._embed_chunk(c) for c in batch))
        embeddings = [e for e in results if e is not None]
        logger.debug(
            "embedder: batch of %d done in %.0fms, %d embeddings",
            len(batch), (time.monotonic() - t0) * 1000, len(embeddings),
        )
        return embeddings

    async def _embed_chunk(self, chunk: Chunk) -> Embedding | None:
        try:
            vector = await self.embed_one(chunk.content)
            if not vector:
                raise EmbeddingError("empty embedding", chunk_id=chunk.id)
        except Exception as e:
            logger.warning(
                "embedder: dropped chunk %s (type=%s, class=%s): %s",
                chunk.id, chunk.kind.value, chunk.class_name, e,
            )
            return None
        return Embedding(
            chunk_id=chunk.id,
            vector=vector,
            content=chunk.content,
            metadata=metadata_for_chunk(chunk),
        )

    async def health(self) -> bool:
        """True if the service returns a non-empty vector for a probe text."""
        try:
            healthy = bool(await self.embed_one("test"))
        except Exception as e:
            logger.error("embedder: health check failed: %s", e)
            return False
        logger.info("embedder: health check %s", "HEALTHY" if healthy else "UNHEALTHY")
        return healthy
