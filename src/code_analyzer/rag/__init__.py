"""RAG – Java codebase chunking, embedding and semantic search.

Chunking (chunker.Chunker): parses Java with tree-sitter and splits each class into
metadata, whole-class, method-group, method and field chunks.
Indexing (pipeline.CodeAnalyzer): embeds chunks through an Ollama-compatible service in
bounded-concurrency batches and stores them in a Chroma collection.
Querying (orchestrator.QueryOrchestrator): embeds the question, searches the collection and
optionally asks a LangChain chat model to explain the top matches.
"""

from code_analyzer.rag.chunker import Chunker, should_index_path
from code_analyzer.rag.models import Chunk, ChunkingStrategy, ChunkKind, CodeMatch, QueryResult

__all__ = [
    "Chunk",
    "ChunkKind",
    "ChunkingStrategy",
    "Chunker",
    "CodeMatch",
    "QueryResult",
    "should_index_path",
    "CodeAnalyzer",
    "CodebaseRetriever",
    "ChatExplainer",
]


def __getattr__(name: str):
    """Lazy import for heavy deps (httpx clients, langchain)."""
    if name == "CodeAnalyzer":
        from code_analyzer.rag.pipeline import CodeAnalyzer
        return CodeAnalyzer
    if name == "CodebaseRetriever":
        from code_analyzer.rag.retriever import CodebaseRetriever
        return CodebaseRetriever
    if name == "ChatExplainer":
        from code_analyzer.rag.explainer import ChatExplainer
        return ChatExplainer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
