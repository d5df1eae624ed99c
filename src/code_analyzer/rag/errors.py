"""Exceptions raised inside the indexing pipeline.

Most of them never reach callers: each stage recovers by skipping the
failing unit (file, class, chunk) and logging.
"""


class CodeAnalyzerError(Exception):
    """Base error for code-analyzer."""


class JavaParseError(CodeAnalyzerError):
    """A source file could not be parsed into declarations."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class EmbeddingError(CodeAnalyzerError):
    """The embedding service returned no usable vector."""

    def __init__(self, message: str, chunk_id: str | None = None):
        super().__init__(message)
        self.chunk_id = chunk_id


class EmbeddingFailedError(CodeAnalyzerError):
    """A query could not be embedded, so there is nothing to search with."""


class AnalysisError(CodeAnalyzerError):
    """A repository analysis run cannot continue (no chunks, index down, store failed)."""
