"""Similarity-searchable index over the quote corpus."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import numpy as np

from models import Quote, ScoredQuote
from services.capabilities import EmbeddingCapability
from services.errors import DataUnavailable, EmbeddingServiceError
from services.quote_corpus import Corpus, QuoteCorpusStore

logger = logging.getLogger(__name__)


def _normalize(vector: Sequence[float]) -> np.ndarray:
    arr = np.asarray(vector, dtype=np.float64)
    if arr.ndim != 1 or arr.size == 0:
        raise EmbeddingServiceError("Embedding capability returned an empty or malformed vector")
    norm = np.linalg.norm(arr)
    return arr / norm if norm > 0 else arr


async def _embed(embedder: EmbeddingCapability, text: str, timeout: float) -> np.ndarray:
    try:
        vector = await asyncio.wait_for(embedder.embed(text), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise EmbeddingServiceError(f"Embedding timed out after {timeout:.1f}s") from exc
    except EmbeddingServiceError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise EmbeddingServiceError(f"Embedding failed: {exc}") from exc
    return _normalize(vector)


class EmbeddingIndex:
    """
    Immutable once built. Each partition holds its quotes in corpus order and a
    (n, dim) matrix of unit vectors, so a dot product is the cosine similarity.
    """

    def __init__(
        self,
        partitions: dict[str, tuple[tuple[Quote, ...], np.ndarray]],
        embedder: EmbeddingCapability,
        *,
        timeout: float = 10.0,
    ) -> None:
        self._partitions = partitions
        self._embedder = embedder
        self._timeout = timeout

    @classmethod
    async def build(
        cls,
        corpus: Corpus,
        embedder: EmbeddingCapability,
        *,
        timeout: float = 10.0,
    ) -> EmbeddingIndex:
        """Embed every corpus entry once. Any failure aborts the whole build."""
        partitions: dict[str, tuple[tuple[Quote, ...], np.ndarray]] = {}
        for key in corpus.partition_keys:
            quotes = corpus.partition(key)
            if not quotes:
                partitions[key] = ((), np.empty((0, 0)))
                continue
            vectors = [await _embed(embedder, quote.document_text(), timeout) for quote in quotes]
            if len({v.shape for v in vectors}) != 1:
                raise EmbeddingServiceError(f"Inconsistent embedding dimensions in partition {key!r}")
            partitions[key] = (quotes, np.vstack(vectors))
        logger.info("[embedding_index] Built index: %d quotes, %d partitions", len(corpus), len(partitions))
        return cls(partitions, embedder, timeout=timeout)

    def size(self, partition: str) -> int:
        quotes, _ = self._partitions.get(partition, ((), None))
        return len(quotes)

    async def search(self, query: str, k: int, partition: str) -> list[ScoredQuote]:
        """Top-k quotes of `partition` by cosine similarity; ties keep corpus order."""
        quotes, matrix = self._partitions.get(partition, ((), None))
        if not quotes or k <= 0:
            return []
        query_vec = await _embed(self._embedder, query, self._timeout)
        if query_vec.shape[0] != matrix.shape[1]:
            raise EmbeddingServiceError(
                f"Query dimension {query_vec.shape[0]} does not match index dimension {matrix.shape[1]}"
            )
        scores = matrix @ query_vec
        order = np.argsort(-scores, kind="stable")[:k]
        return [ScoredQuote(quote=quotes[i], score=float(scores[i])) for i in order]


class IndexHandle:
    """
    Process-scoped holder for the current EmbeddingIndex.

    Built once at startup and passed to the pipeline explicitly. A refresh
    builds a brand-new index and swaps the reference only after it succeeds.
    """

    def __init__(self, embedder: EmbeddingCapability, *, timeout: float = 10.0) -> None:
        self._embedder = embedder
        self._timeout = timeout
        self._index: EmbeddingIndex | None = None
        self._lock = asyncio.Lock()

    @property
    def is_built(self) -> bool:
        return self._index is not None

    @property
    def current(self) -> EmbeddingIndex:
        index = self._index
        if index is None:
            raise DataUnavailable("Embedding index has not been built")
        return index

    async def ensure_built(self, store: QuoteCorpusStore) -> EmbeddingIndex:
        if self._index is not None:
            return self._index
        async with self._lock:
            if self._index is None:
                self._index = await self._build(store)
        return self._index

    async def refresh(self, store: QuoteCorpusStore) -> EmbeddingIndex:
        """Rebuild from the store. On failure the previous index stays in service."""
        async with self._lock:
            try:
                index = await self._build(store)
            except (DataUnavailable, EmbeddingServiceError):
                logger.warning("[embedding_index] Refresh failed; keeping previous index", exc_info=True)
                raise
            self._index = index
        return index

    async def _build(self, store: QuoteCorpusStore) -> EmbeddingIndex:
        corpus = store.load()
        return await EmbeddingIndex.build(corpus, self._embedder, timeout=self._timeout)
