"""Progress and outcome records for one repository analysis run."""

import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from code_analyzer.rag.models import Chunk


class AnalysisStatus(str, Enum):
    INITIALIZING = "INITIALIZING"
    PARSING = "PARSING"
    GENERATING_EMBEDDINGS = "GENERATING_EMBEDDINGS"
    STORING_VECTORS = "STORING_VECTORS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class AnalysisProgress:
    """Live state of one run, updated as each stage starts and finishes."""

    status: AnalysisStatus = AnalysisStatus.INITIALIZING
    message: str = "Starting repository analysis"
    total_files: int = 0
    processed_files: int = 0
    total_chunks: int = 0
    processed_chunks: int = 0
    started_at: int = field(default_factory=_now_ms)
    ended_at: int = 0
    error: str | None = None

    def advance(self, status: AnalysisStatus, message: str) -> None:
        self.status = status
        self.message = message

    def finish(self, status: AnalysisStatus, message: str, error: str | None = None) -> None:
        self.advance(status, message)
        self.error = error
        self.ended_at = _now_ms()

    @property
    def is_finished(self) -> bool:
        return self.status in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)

    @property
    def progress_percentage(self) -> float:
        if self.total_chunks == 0:
            return 0.0
        return self.processed_chunks / self.total_chunks * 100.0

    @property
    def duration_ms(self) -> int:
        return (self.ended_at or _now_ms()) - self.started_at


@dataclass
class AnalysisResult:
    repository: str
    status: AnalysisStatus
    total_chunks: int = 0
    stored_embeddings: int = 0
    processing_time_ms: int = 0
    chunks_by_kind: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is AnalysisStatus.COMPLETED


def count_by_kind(chunks: Iterable[Chunk]) -> dict[str, int]:
    return dict(Counter(chunk.kind.value for chunk in chunks))
