"""Tests for QueryOrchestrator (embedder, store and explainer mocked)."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from code_analyzer.rag.models import ChunkKind, SearchResult
from code_analyzer.rag.orchestrator import QueryOrchestrator, build_context, to_code_match


def _result(i: int, distance: float, **metadata) -> SearchResult:
    meta = {"type": "METHOD", "className": f"C{i}", "methodName": f"m{i}", "filePath": f"C{i}.java"}
    meta.update(metadata)
    return SearchResult(id=f"r{i}", document=f"code {i}", metadata=meta, distance=distance)


def _orchestrator(results=None, vector=(0.1, 0.2), explainer=None) -> QueryOrchestrator:
    embedder = MagicMock()
    embedder.embed_query = AsyncMock(return_value=list(vector))
    store = MagicMock()
    store.search = AsyncMock(return_value=results or [])
    store.stats = AsyncMock(return_value={"id": "abc", "count": 42})
    return QueryOrchestrator(embedder, store, explainer)


def test_zero_distance_is_full_similarity():
    match = to_code_match(_result(1, 0.0, annotations="@GetMapping,@Transactional"))
    assert match.similarity == 1.0
    assert match.annotations == ["@GetMapping", "@Transactional"]
    assert match.kind == "METHOD"
    assert match.method_name == "m1"


def test_build_context_uses_top_five():
    matches = [to_code_match(_result(i, 0.25)) for i in range(7)]
    context = build_context(matches)
    assert context.startswith("// METHOD from C0 (similarity: 0.75)\ncode 0\n\n")
    assert "C4" in context
    assert "C5" not in context


@pytest.mark.asyncio
async def test_answer_with_explanation():
    """Matches are converted and the explainer receives the context window."""
    explainer = MagicMock()
    explainer.explain = AsyncMock(return_value="It lists users.")
    orchestrator = _orchestrator([_result(1, 0.1), _result(2, 0.3)], explainer=explainer)
    result = await orchestrator.answer("list users", top_k=2, filters={"type": "METHOD"})
    assert result.total_matches == 2
    assert result.explanation == "It lists users."
    assert result.matches[0].similarity == pytest.approx(0.9)
    orchestrator.store.search.assert_awaited_once_with([0.1, 0.2], 2, {"type": "METHOD"})
    query, context = explainer.explain.await_args.args
    assert query == "list users"
    assert "// METHOD from C1" in context


@pytest.mark.asyncio
async def test_answer_without_matches_skips_explainer():
    explainer = MagicMock()
    explainer.explain = AsyncMock()
    result = await _orchestrator([], explainer=explainer).answer("nothing")
    assert result.matches == []
    assert result.explanation is None
    explainer.explain.assert_not_awaited()


@pytest.mark.asyncio
async def test_empty_query_embedding_is_error_result():
    """An empty query vector becomes an error explanation, not an exception."""
    orchestrator = _orchestrator([_result(1, 0.1)], vector=())
    result = await orchestrator.answer("anything")
    assert result.matches == []
    assert result.explanation.startswith("Sorry, I encountered an error while searching the code:")
    orchestrator.store.search.assert_not_awaited()


@pytest.mark.asyncio
async def test_downstream_exception_is_caught():
    explainer = MagicMock()
    explainer.explain = AsyncMock(side_effect=RuntimeError("llm down"))
    result = await _orchestrator([_result(1, 0.1)], explainer=explainer).answer("q")
    assert result.matches == []
    assert "llm down" in result.explanation


@pytest.mark.asyncio
async def test_search_helpers_use_filters():
    orchestrator = _orchestrator([_result(1, 0.2)])
    result = await orchestrator.search_by_kind(ChunkKind.CLASS, top_k=4)
    assert result.explanation is None
    orchestrator.store.search.assert_awaited_with([0.1, 0.2], 4, {"type": "CLASS"})
    orchestrator.embedder.embed_query.assert_awaited_with("Find CLASS code")

    await orchestrator.search_components()
    orchestrator.store.search.assert_awaited_with([0.1, 0.2], 10, {"isSpringComponent": True})


@pytest.mark.asyncio
async def test_find_endpoints_uses_endpoint_analysis():
    explainer = MagicMock()
    explainer.explain = AsyncMock()
    explainer.analyze_endpoints = AsyncMock(return_value="## REST Endpoints Found")
    orchestrator = _orchestrator([_result(1, 0.2)], explainer=explainer)
    result = await orchestrator.find_endpoints()
    assert result.explanation == "## REST Endpoints Found"
    orchestrator.store.search.assert_awaited_with([0.1, 0.2], 10, {"isEndpoint": True})
    explainer.explain.assert_not_awaited()


@pytest.mark.asyncio
async def test_analyze_business_logic():
    explainer = MagicMock()
    explainer.analyze_business_logic = AsyncMock(return_value="Step 1")
    orchestrator = _orchestrator([_result(1, 0.2)], explainer=explainer)
    result = await orchestrator.analyze_business_logic("how are orders placed?")
    assert result.explanation == "Step 1"
    orchestrator.store.search.assert_awaited_with([0.1, 0.2], 8, None)
    assert explainer.analyze_business_logic.await_args.args[0] == "how are orders placed?"


@pytest.mark.asyncio
async def test_search_stats_and_suggestions():
    orchestrator = _orchestrator()
    stats = await orchestrator.search_stats()
    assert stats["totalDocuments"] == 42
    assert "isEndpoint" in stats["availableFilters"]
    assert "REST_ENDPOINTS" in stats["supportedTypes"]
    assert "What REST endpoints are available?" in orchestrator.suggestions()
