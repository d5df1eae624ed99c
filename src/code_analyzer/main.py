"""code-analyzer entry point - index a Java repository and query it."""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from code_analyzer.logging_config import configure_logging

load_dotenv(os.getenv("ENV_FILE", ".env"))

logger = logging.getLogger(__name__)


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def run_index(repo_path: str) -> int:
    """Chunk, embed and store every Java file under repo_path."""
    from code_analyzer.rag.pipeline import CodeAnalyzer

    async with CodeAnalyzer.from_settings() as analyzer:
        result = await analyzer.analyze_repository(repo_path)
    logger.info("Index %s: %s", result.repository, result.status.value)
    _print_json(
        {
            "repository": result.repository,
            "status": result.status.value,
            "totalChunks": result.total_chunks,
            "storedEmbeddings": result.stored_embeddings,
            "chunksByType": result.chunks_by_kind,
            "processingTimeMs": result.processing_time_ms,
            "errors": result.errors,
        }
    )
    return 0 if result.succeeded else 1


async def run_query(text: str, top_k: int, explain: bool) -> int:
    from code_analyzer.rag.pipeline import CodeAnalyzer

    async with CodeAnalyzer.from_settings() as analyzer:
        result = await analyzer.answer_query(text, top_k, want_explanation=explain)
    for n, match in enumerate(result.matches, start=1):
        where = match.class_name or "?"
        if match.method_name:
            where += f".{match.method_name}"
        print(f"{n}. [{match.kind}] {where} ({match.file_path}) similarity={match.similarity:.2f}")
    if result.explanation:
        print()
        print(result.explanation)
    logger.info("Query finished: %d matches in %dms", result.total_matches, result.processing_time_ms)
    return 0


async def run_stats() -> int:
    from code_analyzer.rag.pipeline import CodeAnalyzer

    async with CodeAnalyzer.from_settings() as analyzer:
        _print_json(await analyzer.orchestrator.search_stats())
    return 0


async def run_health() -> int:
    from code_analyzer.rag.pipeline import CodeAnalyzer

    async with CodeAnalyzer.from_settings() as analyzer:
        health = await analyzer.health()
    _print_json(health)
    return 0 if health["overall"] else 1


async def run_delete() -> int:
    from code_analyzer.rag.vector_store import VectorIndexClient

    async with VectorIndexClient.from_settings() as store:
        deleted = await store.delete_collection()
    logger.info("Delete collection %s: %s", store.collection_name, "ok" if deleted else "failed")
    return 0 if deleted else 1


def main():
    """CLI entry point."""
    from code_analyzer.config import settings

    parser = argparse.ArgumentParser(
        description="code-analyzer: semantic search over a Java/Spring codebase"
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, ...)")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # index - chunk, embed and store a repository
    index_parser = subparsers.add_parser("index", help="Index a local Java repository")
    index_parser.add_argument(
        "path",
        nargs="?",
        default=settings.repo_workspace or None,
        help="Repository root (default: REPO_WORKSPACE)",
    )

    # query - ask a question
    query_parser = subparsers.add_parser("query", help="Search the index and explain the matches")
    query_parser.add_argument("text", help="Natural-language question")
    query_parser.add_argument("--top-k", type=int, default=5, help="Number of matches")
    query_parser.add_argument("--no-explain", action="store_true", help="Skip the LLM explanation")

    subparsers.add_parser("stats", help="Show collection stats")
    subparsers.add_parser("health", help="Check the embedding service and vector store")
    subparsers.add_parser("delete", help="Delete the collection")

    args = parser.parse_args()

    configure_logging(args.log_level)

    if args.command == "index":
        if not args.path:
            parser.error("index: a repository path is required (or set REPO_WORKSPACE)")
        if not Path(args.path).is_dir():
            parser.error(f"index: {args.path} is not a directory")
        code = asyncio.run(run_index(args.path))
    elif args.command == "query":
        code = asyncio.run(run_query(args.text, args.top_k, explain=not args.no_explain))
    elif args.command == "stats":
        code = asyncio.run(run_stats())
    elif args.command == "health":
        code = asyncio.run(run_health())
    elif args.command == "delete":
        code = asyncio.run(run_delete())
    else:
        logger.debug("No command specified, showing help")
        parser.print_help()
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
