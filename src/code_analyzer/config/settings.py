"""Pydantic settings for code-analyzer configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Embedding service (Ollama-compatible POST /api/embeddings).
    ollama_base_url: str = "http://localhost:11434"
    embedding_model: str = "nomic-embed-text"
    embedding_timeout: float = 30.0
    embedding_batch_size: int = 5
    embedding_concurrency: int = 2
    embedding_batch_delay: float = 0.5
    embedding_max_retries: int = 3
    embedding_retry_backoff: float = 1.0
    embedding_max_chars: int = 8000
    # Prepended to user queries so the query vector leans toward code.
    query_prefix: str = "Java Spring Boot code: "

    # Vector index (chromadb async HTTP client, tenant/database scoped).
    chroma_base_url: str = "http://localhost:8000"
    chroma_tenant: str = "default_tenant"
    chroma_database: str = "default_database"
    chroma_collection: str = "java_code_chunks"
    chroma_timeout: float = 10.0
    store_batch_size: int = 50
    store_batch_delay: float = 0.1
    # "add" errors/ignores on duplicate ids depending on the server; "upsert" overwrites.
    chroma_write_mode: Literal["add", "upsert"] = "add"

    # Chunking
    chunk_max_size: int = 3000
    chunk_strategy: Literal["ADAPTIVE", "CLASS_ONLY", "METHOD_ONLY"] = "ADAPTIVE"

    # Explanation step (LangChain + Anthropic). ANTHROPIC_LLM_MODEL env.
    anthropic_api_key: str = ""
    anthropic_llm_model: str = "claude-haiku-4-5"
    llm_temperature: float = 0.1
    llm_max_tokens: int = 500

    # Default repository root for the CLI when no path is given.
    repo_workspace: str = ""


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()


settings = get_settings()
