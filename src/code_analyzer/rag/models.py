"""Records passed between the chunker, embedder, vector index and query stages."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ChunkKind(str, Enum):
    """What a chunk holds. Method-group kinds double as group names."""

    CLASS = "CLASS"
    INTERFACE = "INTERFACE"
    METHOD = "METHOD"
    CLASS_METADATA = "CLASS_METADATA"
    FIELDS = "FIELDS"
    REST_ENDPOINTS = "REST_ENDPOINTS"
    BUSINESS_LOGIC = "BUSINESS_LOGIC"
    CRUD_OPERATIONS = "CRUD_OPERATIONS"
    ACCESSORS = "ACCESSORS"


# Emission order for adaptive chunking: endpoints first, accessors last.
GROUP_ORDER = (
    ChunkKind.REST_ENDPOINTS,
    ChunkKind.BUSINESS_LOGIC,
    ChunkKind.CRUD_OPERATIONS,
    ChunkKind.ACCESSORS,
)


class ChunkingStrategy(str, Enum):
    ADAPTIVE = "ADAPTIVE"
    CLASS_ONLY = "CLASS_ONLY"
    METHOD_ONLY = "METHOD_ONLY"


@dataclass(frozen=True)
class Chunk:
    """A bounded unit of Java source plus the facts derived from its declaration.

    id is reproducible from (file_path, class_name, method_name, kind).
    """

    id: str
    content: str
    kind: ChunkKind
    class_name: str
    file_path: str
    package_name: str = ""
    method_name: str | None = None
    annotations: tuple[str, ...] = ()
    imports: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Embedding:
    """Vector for one chunk, stored with its text and flattened metadata."""

    chunk_id: str
    vector: list[float]
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchResult:
    """One nearest-neighbour row from the vector index (lower distance = closer)."""

    id: str
    document: str
    metadata: dict[str, Any]
    distance: float


@dataclass
class CodeMatch:
    """A search result with typed fields pulled out of its metadata."""

    id: str
    code: str
    similarity: float
    kind: str | None = None
    class_name: str | None = None
    method_name: str | None = None
    package_name: str | None = None
    file_path: str | None = None
    annotations: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class QueryResult:
    query: str
    matches: list[CodeMatch] = field(default_factory=list)
    explanation: str | None = None
    processing_time_ms: int = 0

    @property
    def total_matches(self) -> int:
        return len(self.matches)
