"""chromadb client wrapper for one tenant/database-scoped collection.

The server client and the collection are resolved lazily and cached. Remote
failures on add, search, stats and delete are logged and degrade to
False / [] / {}.
"""

import asyncio
import logging
from typing import Any, Literal, Mapping, Sequence

import chromadb
import httpx
from chromadb.api import AsyncClientAPI
from chromadb.api.models.AsyncCollection import AsyncCollection
from chromadb.errors import NotFoundError

from code_analyzer.config.settings import Settings, settings
from code_analyzer.rag.batching import make_batches
from code_analyzer.rag.chroma_payloads import (
    UNINITIALIZED,
    CollectionState,
    Ready,
    add_kwargs,
    collection_metadata,
    query_kwargs,
    to_search_results,
)
from code_analyzer.rag.models import Embedding, SearchResult
from code_analyzer.rag.retry import Sleep

logger = logging.getLogger(__name__)

HEARTBEAT_TIMEOUT = 5.0


class VectorIndexClient:
    """Owns one named collection in a Chroma server."""

    def __init__(
        self,
        base_url: str,
        collection_name: str,
        *,
        tenant: str = "default_tenant",
        database: str = "default_database",
        timeout: float = 10.0,
        batch_size: int = 50,
        batch_delay: float = 0.1,
        write_mode: Literal["add", "upsert"] = "add",
        client: AsyncClientAPI | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.collection_name = collection_name
        self.tenant = tenant
        self.database = database
        self.timeout = timeout
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.write_mode = write_mode
        self._client = client
        self._client_lock = asyncio.Lock()
        self._sleep = sleep
        self._state: CollectionState = UNINITIALIZED

    @classmethod
    def from_settings(
        cls, config: Settings | None = None, client: AsyncClientAPI | None = None
    ) -> "VectorIndexClient":
        cfg = config or settings
        return cls(
            cfg.chroma_base_url,
            cfg.chroma_collection,
            tenant=cfg.chroma_tenant,
            database=cfg.chroma_database,
            timeout=cfg.chroma_timeout,
            batch_size=cfg.store_batch_size,
            batch_delay=cfg.store_batch_delay,
            write_mode=cfg.chroma_write_mode,
            client=client,
        )

    async def aclose(self) -> None:
        self._state = UNINITIALIZED

    async def __aenter__(self) -> "VectorIndexClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def state(self) -> CollectionState:
        return self._state

    def connection_args(self) -> dict[str, Any]:
        """chromadb.AsyncHttpClient arguments parsed from base_url."""
        url = httpx.URL(self.base_url)
        ssl = url.scheme == "https"
        return {
            "host": url.host,
            "port": url.port or (443 if ssl else 8000),
            "ssl": ssl,
            "tenant": self.tenant,
            "database": self.database,
        }

    async def _get_client(self) -> AsyncClientAPI:
        async with self._client_lock:
            if self._client is None:
                self._client = await asyncio.wait_for(
                    chromadb.AsyncHttpClient(**self.connection_args()), self.timeout
                )
            return self._client

    async def ensure_collection(self) -> bool:
        """Resolve the collection, creating it if it does not exist."""
        if isinstance(self._state, Ready):
            return True
        try:
            client = await self._get_client()
            # get_or_create makes concurrent first-time creation return the same collection.
            collection = await asyncio.wait_for(
                client.get_or_create_collection(
                    self.collection_name, metadata=collection_metadata(), embedding_function=None
                ),
                self.timeout,
            )
        except Exception as e:
            logger.error("vector_store: failed to initialize collection %s: %s", self.collection_name, e)
            return False
        logger.info("vector_store: collection %s ready", self.collection_name)
        self._state = Ready(collection)
        return True

    async def _collection(self) -> AsyncCollection | None:
        """Cached collection, initializing lazily. None if the index is unavailable."""
        if isinstance(self._state, Ready) or await self.ensure_collection():
            return self._state.collection
        return None

    async def add_all(self, embeddings: Sequence[Embedding]) -> bool:
        """Store embeddings in batches. True only if every batch landed."""
        if not embeddings:
            logger.warning("vector_store: no embeddings to store")
            return True
        collection = await self._collection()
        if collection is None:
            return False

        batches = make_batches(embeddings, self.batch_size)
        logger.info(
            "vector_store: storing %d embeddings in %d batches (%s)",
            len(embeddings), len(batches), self.collection_name,
        )
        results: list[bool] = []
        for n, batch in enumerate(batches, start=1):
            logger.debug("vector_store: batch %d/%d with %d embeddings", n, len(batches), len(batch))
            results.append(await self._add_batch(collection, batch))
            if n < len(batches):
                await self._sleep(self.batch_delay)
        stored = sum(results)
        logger.info("vector_store: stored %d/%d batches", stored, len(results))
        return stored == len(results)

    async def _add_batch(self, collection: AsyncCollection, batch: list[Embedding]) -> bool:
        write = collection.upsert if self.write_mode == "upsert" else collection.add
        try:
            await asyncio.wait_for(write(**add_kwargs(batch)), self.timeout * 2)
        except Exception as e:
            logger.error("vector_store: failed to store batch of %d embeddings: %s", len(batch), e)
            return False
        return True

    async def search(
        self, vector: Sequence[float], top_k: int, filters: Mapping[str, Any] | None = None
    ) -> list[SearchResult]:
        """Nearest chunks to vector. The where clause is sent only for a non-empty filter map."""
        if not vector or top_k < 1:
            return []
        collection = await self._collection()
        if collection is None:
            return []
        try:
            payload = await asyncio.wait_for(
                collection.query(**query_kwargs(vector, top_k, filters)), self.timeout
            )
            results = to_search_results(payload)
        except Exception as e:
            logger.error("vector_store: search failed: %s", e)
            return []
        logger.debug("vector_store: search returned %d results (top_k=%d)", len(results), top_k)
        return results

    async def stats(self) -> dict[str, Any]:
        """Collection record plus its document count; {} if unavailable."""
        collection = await self._collection()
        if collection is None:
            return {}
        try:
            count = await asyncio.wait_for(collection.count(), self.timeout)
        except Exception as e:
            logger.error("vector_store: failed to get collection stats: %s", e)
            return {}
        return {
            "id": str(collection.id),
            "name": collection.name,
            "metadata": dict(collection.metadata or {}),
            "count": int(count),
        }

    async def health(self) -> bool:
        try:
            client = await self._get_client()
            beat = await asyncio.wait_for(client.heartbeat(), HEARTBEAT_TIMEOUT)
        except Exception as e:
            logger.warning("vector_store: health check failed: %s", e)
            return False
        healthy = isinstance(beat, int) and beat > 0
        logger.debug("vector_store: health check %s", "healthy" if healthy else "unhealthy")
        return healthy

    async def delete_collection(self) -> bool:
        """Delete the collection and forget it. A missing collection counts as deleted."""
        try:
            client = await self._get_client()
            await asyncio.wait_for(client.delete_collection(self.collection_name), self.timeout)
        except NotFoundError:
            logger.info("vector_store: collection %s does not exist", self.collection_name)
        except Exception as e:
            logger.error("vector_store: failed to delete collection %s: %s", self.collection_name, e)
            return False
        else:
            logger.info("vector_store: deleted collection %s", self.collection_name)
        self._state = UNINITIALIZED
        return True
