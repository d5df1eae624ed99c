"""Tests for BatchEmbedder batching, concurrency, truncation and retries."""

import asyncio
import json

import httpx
import pytest

from code_analyzer.rag.embedder import BatchEmbedder, metadata_for_chunk
from code_analyzer.rag.models import Chunk, ChunkKind, Embedding

from conftest import embedding_response


def _chunks(n: int) -> list[Chunk]:
    return [
        Chunk(id=f"c{i}", content=f"chunk-{i} body", kind=ChunkKind.CLASS, class_name=f"C{i}", file_path="C.java")
        for i in range(n)
    ]


def _embedder(handler, sleeps, **kwargs) -> BatchEmbedder:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BatchEmbedder("http://embed", "nomic-embed-text", client=client, sleep=sleeps, **kwargs)


@pytest.mark.asyncio
async def test_embed_all_empty_makes_no_calls(sleeps):
    """embed_all([]) returns [] without touching the network."""
    calls = []
    embedder = _embedder(lambda r: calls.append(r) or embedding_response(r), sleeps)
    assert await embedder.embed_all([]) == []
    assert calls == []


@pytest.mark.asyncio
async def test_embed_all_batches_and_keeps_order(sleeps):
    """12 chunks with batch size 5 -> 3 batches, results in input order, one pause per batch."""
    embedder = _embedder(embedding_response, sleeps, batch_size=5, batch_delay=0.5)
    embeddings = await embedder.embed_all(_chunks(12))
    assert [e.chunk_id for e in embeddings] == [f"c{i}" for i in range(12)]
    assert sleeps.calls == [0.5, 0.5, 0.5]
    assert embeddings[0].metadata["chunkId"] == "c0"
    assert embeddings[0].content == "chunk-0 body"


@pytest.mark.asyncio
async def test_embed_all_caps_concurrent_batches(sleeps, monkeypatch):
    """No more than `concurrency` batches run at once."""
    embedder = _embedder(embedding_response, sleeps, batch_size=5, concurrency=2)
    active = 0
    peak = 0
    sizes = []

    async def fake_batch(batch):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1
        sizes.append(len(batch))
        return [Embedding(chunk_id=c.id, vector=[1.0], content=c.content) for c in batch]

    monkeypatch.setattr(embedder, "_embed_batch", fake_batch)
    embeddings = await embedder.embed_all(_chunks(12))
    assert len(embeddings) == 12
    assert sorted(sizes) == [2, 5, 5]
    assert peak == 2


@pytest.mark.asyncio
async def test_one_failing_chunk_is_dropped(sleeps):
    """A chunk that fails after retries is dropped; the other 11 are embedded."""
    attempts = []

    def handler(request):
        prompt = json.loads(request.content)["prompt"]
        if prompt.startswith("chunk-3 "):
            attempts.append(prompt)
            return httpx.Response(500, json={"error": "model crashed"})
        return embedding_response(request)

    embedder = _embedder(handler, sleeps, batch_size=5, max_retries=3, retry_backoff=1.0)
    embeddings = await embedder.embed_all(_chunks(12))
    assert len(embeddings) == 11
    assert "c3" not in {e.chunk_id for e in embeddings}
    assert len(attempts) == 4
    assert [d for d in sleeps.calls if d != 0.5] == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_bad_request_is_not_retried(sleeps):
    """A 400 from the service is raised on the first attempt."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"error": "bad"})

    embedder = _embedder(handler, sleeps)
    with pytest.raises(httpx.HTTPStatusError):
        await embedder.embed_one("class A {}")
    assert len(calls) == 1
    assert sleeps.calls == []


@pytest.mark.asyncio
async def test_truncation_and_blank_text(sleeps):
    """Long text is cut to max_chars plus '...'; blank text is never sent."""
    prompts = []

    def handler(request):
        prompts.append(json.loads(request.content)["prompt"])
        return embedding_response(request)

    embedder = _embedder(handler, sleeps, max_chars=8000)
    assert await embedder.embed_one("   ") == []
    await embedder.embed_one("a" * 9000)
    assert len(prompts) == 1
    assert len(prompts[0]) == 8003
    assert prompts[0].endswith("a...")


@pytest.mark.asyncio
async def test_embed_query_adds_prefix(sleeps):
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return embedding_response(request)

    embedder = _embedder(handler, sleeps)
    vector = await embedder.embed_query("where are users saved?")
    assert vector
    assert bodies == [{"model": "nomic-embed-text", "prompt": "Java Spring Boot code: where are users saved?"}]


@pytest.mark.asyncio
async def test_empty_vector_drops_chunk(sleeps):
    """A chunk whose vector comes back empty is dropped."""
    embedder = _embedder(lambda r: httpx.Response(200, json={"embedding": []}), sleeps)
    assert await embedder.embed_all(_chunks(2)) == []


@pytest.mark.asyncio
async def test_health(sleeps):
    assert await _embedder(embedding_response, sleeps).health() is True
    assert await _embedder(lambda r: httpx.Response(503), sleeps, max_retries=0).health() is False


def test_metadata_for_method_chunk():
    """Method chunks carry methodName and fullMethodName; annotations are comma-joined."""
    chunk = Chunk(
        id="m",
        content="void run() {}",
        kind=ChunkKind.METHOD,
        class_name="Job",
        file_path="Job.java",
        package_name="com.x",
        method_name="run",
        annotations=("@Scheduled", "@Transactional"),
        metadata={"isPublic": True},
    )
    metadata = metadata_for_chunk(chunk)
    assert metadata["fullMethodName"] == "Job.run"
    assert metadata["annotations"] == "@Scheduled,@Transactional"
    assert metadata["hasAnnotations"] is True
    assert metadata["isSpringComponent"] is False
    assert metadata["type"] == "METHOD"
    assert metadata["isPublic"] is True
