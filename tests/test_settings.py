"""Tests for settings defaults and component wiring from settings."""

from code_analyzer.config.llm_config import get_llm_model, get_llm_options
from code_analyzer.config.settings import Settings
from code_analyzer.rag.chunker import Chunker
from code_analyzer.rag.embedder import BatchEmbedder
from code_analyzer.rag.models import ChunkingStrategy
from code_analyzer.rag.vector_store import VectorIndexClient


def test_defaults():
    cfg = Settings(_env_file=None)
    assert cfg.embedding_batch_size == 5
    assert cfg.embedding_concurrency == 2
    assert cfg.chroma_collection == "java_code_chunks"
    assert cfg.chroma_write_mode == "add"
    assert cfg.chunk_max_size == 3000
    assert cfg.query_prefix == "Java Spring Boot code: "


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("EMBEDDING_BATCH_SIZE", "7")
    monkeypatch.setenv("CHUNK_STRATEGY", "METHOD_ONLY")
    monkeypatch.setenv("ANTHROPIC_LLM_MODEL", "claude-sonnet-4-5")
    cfg = Settings(_env_file=None)
    assert cfg.embedding_batch_size == 7
    assert Chunker.from_settings(cfg).strategy is ChunkingStrategy.METHOD_ONLY
    assert get_llm_model(cfg) == "claude-sonnet-4-5"
    assert get_llm_options(cfg) == {"temperature": 0.1, "max_tokens": 500}


def test_components_from_settings():
    cfg = Settings(_env_file=None, chroma_tenant="acme", chroma_base_url="http://chroma:8001", store_batch_size=10)
    store = VectorIndexClient.from_settings(cfg)
    assert store.connection_args() == {
        "host": "chroma",
        "port": 8001,
        "ssl": False,
        "tenant": "acme",
        "database": "default_database",
    }
    assert store.batch_size == 10
    embedder = BatchEmbedder.from_settings(cfg)
    assert embedder.model_info() == "Model: nomic-embed-text, Service: http://localhost:11434"


def test_chunking_settings_match_chunker():
    """Each chunking key maps to a Chunker argument."""
    chunking = {name for name in Settings.model_fields if name.startswith("chunk_")}
    assert chunking == {"chunk_max_size", "chunk_strategy"}
    chunker = Chunker.from_settings(Settings(_env_file=None, chunk_max_size=1200))
    assert chunker.max_chunk_size == 1200
