from __future__ import annotations

import json
from pathlib import Path

import pytest

from models import Quote
from services.embedding_index import EmbeddingIndex, IndexHandle
from services.errors import DataUnavailable, EmbeddingServiceError
from services.quote_corpus import Corpus, QuoteCorpusStore

from conftest import FakeEmbedder


class _TableEmbedder:
    """Returns fixed vectors per text; anything unknown is orthogonal to everything."""

    def __init__(self, table: dict[str, list[float]]) -> None:
        self.table = table
        self.calls = 0

    async def embed(self, text: str) -> list[float]:
        self.calls += 1
        return self.table.get(text, [0.0, 0.0, 1.0])


def _corpus(*texts: str, key: str = "voice") -> Corpus:
    return Corpus({key: tuple(Quote(id=t.lower(), text=t) for t in texts)})


@pytest.mark.asyncio
async def test_build_embeds_each_entry_once(corpus_store: QuoteCorpusStore) -> None:
    embedder = FakeEmbedder()
    corpus = corpus_store.load()
    index = await EmbeddingIndex.build(corpus, embedder, timeout=1.0)
    assert len(embedder.calls) == len(corpus)
    assert index.size("peter-drury") == len(corpus.partition("peter-drury"))


@pytest.mark.asyncio
async def test_search_ranks_by_cosine_and_breaks_ties_by_corpus_order() -> None:
    embedder = _TableEmbedder(
        {"Alpha": [1.0, 0.0, 0.0], "Beta": [2.0, 0.0, 0.0], "Gamma": [0.0, 1.0, 0.0], "query": [3.0, 0.0, 0.0]}
    )
    index = await EmbeddingIndex.build(_corpus("Gamma", "Beta", "Alpha"), embedder)

    results = await index.search("query", k=3, partition="voice")

    # Beta and Alpha are both parallel to the query; Beta was inserted first.
    assert [r.quote.text for r in results] == ["Beta", "Alpha", "Gamma"]
    assert results[0].score == pytest.approx(1.0)
    assert results[2].score == pytest.approx(0.0)


@pytest.mark.asyncio
async def test_search_limits_to_k_and_partition() -> None:
    embedder = _TableEmbedder({"A": [1.0, 0.0, 0.0], "B": [0.9, 0.1, 0.0], "query": [1.0, 0.0, 0.0]})
    corpus = Corpus(
        {
            "one": (Quote(id="a", text="A"), Quote(id="b", text="B")),
            "two": (Quote(id="c", text="C"),),
        }
    )
    index = await EmbeddingIndex.build(corpus, embedder)

    assert [r.quote.id for r in await index.search("query", k=1, partition="one")] == ["a"]
    assert [r.quote.id for r in await index.search("query", k=5, partition="two")] == ["c"]


@pytest.mark.asyncio
async def test_search_empty_partition_returns_nothing_without_embedding() -> None:
    embedder = _TableEmbedder({})
    index = await EmbeddingIndex.build(Corpus({"empty": ()}), embedder)
    calls_after_build = embedder.calls

    assert await index.search("anything", k=3, partition="empty") == []
    assert await index.search("anything", k=3, partition="unknown") == []
    assert embedder.calls == calls_after_build


@pytest.mark.asyncio
async def test_build_is_all_or_nothing() -> None:
    embedder = FakeEmbedder(fail_after=2)
    with pytest.raises(EmbeddingServiceError):
        await EmbeddingIndex.build(_corpus("One", "Two", "Three"), embedder)
    assert len(embedder.calls) == 3


@pytest.mark.asyncio
async def test_build_timeout_is_embedding_service_error() -> None:
    embedder = FakeEmbedder(delay=0.5)
    with pytest.raises(EmbeddingServiceError):
        await EmbeddingIndex.build(_corpus("Slow"), embedder, timeout=0.01)


@pytest.mark.asyncio
async def test_query_failure_is_embedding_service_error() -> None:
    embedder = FakeEmbedder(fail_after=1)
    index = await EmbeddingIndex.build(_corpus("Only"), embedder)
    with pytest.raises(EmbeddingServiceError):
        await index.search("query", k=3, partition="voice")


@pytest.mark.asyncio
async def test_handle_requires_a_build_before_use() -> None:
    handle = IndexHandle(FakeEmbedder())
    assert handle.is_built is False
    with pytest.raises(DataUnavailable):
        _ = handle.current


@pytest.mark.asyncio
async def test_handle_builds_once(corpus_store: QuoteCorpusStore) -> None:
    embedder = FakeEmbedder()
    handle = IndexHandle(embedder)
    first = await handle.ensure_built(corpus_store)
    calls = len(embedder.calls)
    second = await handle.ensure_built(corpus_store)
    assert first is second is handle.current
    assert len(embedder.calls) == calls


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_index(tmp_path: Path) -> None:
    (tmp_path / "voice.json").write_text(json.dumps([{"id": "a", "quote": "A"}]), encoding="utf-8")
    store = QuoteCorpusStore(tmp_path)
    embedder = FakeEmbedder()
    handle = IndexHandle(embedder)
    original = await handle.ensure_built(store)

    (tmp_path / "voice.json").write_text("{broken", encoding="utf-8")
    with pytest.raises(DataUnavailable):
        await handle.refresh(store)
    assert handle.current is original

    (tmp_path / "voice.json").write_text(
        json.dumps([{"id": "a", "quote": "A"}, {"id": "b", "quote": "B"}]), encoding="utf-8"
    )
    embedder.fail_after = len(embedder.calls) + 1
    with pytest.raises(EmbeddingServiceError):
        await handle.refresh(store)
    assert handle.current is original


@pytest.mark.asyncio
async def test_successful_refresh_swaps_index(tmp_path: Path) -> None:
    (tmp_path / "voice.json").write_text(json.dumps([{"id": "a", "quote": "A"}]), encoding="utf-8")
    store = QuoteCorpusStore(tmp_path)
    handle = IndexHandle(FakeEmbedder())
    original = await handle.ensure_built(store)

    (tmp_path / "voice.json").write_text(
        json.dumps([{"id": "a", "quote": "A"}, {"id": "b", "quote": "B"}]), encoding="utf-8"
    )
    refreshed = await handle.refresh(store)

    assert refreshed is not original
    assert handle.current is refreshed
    assert refreshed.size("voice") == 2
    assert original.size("voice") == 1
