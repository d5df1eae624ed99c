"""Collection state and the argument/result shapes passed through the chromadb client."""

import time
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from chromadb.api.models.AsyncCollection import AsyncCollection

from code_analyzer.rag.models import Embedding, SearchResult

QUERY_INCLUDE = ["documents", "metadatas", "distances"]


@dataclass(frozen=True)
class Uninitialized:
    """No collection resolved yet."""


@dataclass(frozen=True)
class Ready:
    collection: AsyncCollection


CollectionState = Uninitialized | Ready
UNINITIALIZED = Uninitialized()


def collection_metadata() -> dict[str, Any]:
    return {"description": "Java code repository analysis", "created_at": int(time.time() * 1000)}


def add_kwargs(batch: Sequence[Embedding]) -> dict[str, list]:
    """Parallel arrays, one entry per embedding."""
    return {
        "ids": [e.chunk_id for e in batch],
        "embeddings": [list(e.vector) for e in batch],
        "documents": [e.content for e in batch],
        "metadatas": [e.metadata for e in batch],
    }


def query_kwargs(
    vector: Sequence[float], top_k: int, filters: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    """An empty filter map is not the same as no filter, so where is omitted unless set."""
    kwargs: dict[str, Any] = {
        "query_embeddings": [list(vector)],
        "n_results": top_k,
        "include": list(QUERY_INCLUDE),
    }
    if filters:
        kwargs["where"] = dict(filters)
    return kwargs


def to_search_results(payload: Mapping[str, Any]) -> list[SearchResult]:
    """Flatten the single-query result rows ({ids: [[...]], ...}) into SearchResults."""
    ids = payload.get("ids") or []
    if not ids or not ids[0]:
        return []
    row_ids = ids[0]
    documents = (payload.get("documents") or [[]])[0] or [None] * len(row_ids)
    metadatas = (payload.get("metadatas") or [[]])[0] or [None] * len(row_ids)
    distances = (payload.get("distances") or [[]])[0] or [1.0] * len(row_ids)
    return [
        SearchResult(id=i, document=doc or "", metadata=dict(meta or {}), distance=float(dist))
        for i, doc, meta, dist in zip(row_ids, documents, metadatas, distances)
    ]
