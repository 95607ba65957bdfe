from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from models import MatchEvent, Persona
from services.embedding_index import IndexHandle
from services.generation import GenerationEngine
from services.persona_registry import PersonaRegistry
from services.pipeline import CommentaryPipeline
from services.quote_corpus import QuoteCorpusStore
from services.retrieval import RetrievalEngine

DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "commentators"
_TOKEN = re.compile(r"[a-z0-9]+")


class FakeEmbedder:
    """Deterministic bag-of-words embedding with call counting."""

    def __init__(self, dim: int = 256, *, fail_after: int | None = None, delay: float = 0.0) -> None:
        self.dim = dim
        self.fail_after = fail_after
        self.delay = delay
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_after is not None and len(self.calls) > self.fail_after:
            raise RuntimeError("embedding service unavailable")
        if self.delay:
            await asyncio.sleep(self.delay)
        vector = [0.0] * self.dim
        for token in _TOKEN.findall(text.lower()):
            vector[sum(ord(c) for c in token) % self.dim] += 1.0
        return vector


class FakeGenerator:
    def __init__(self, reply: str = "What a moment for the ages!", *, error: Exception | None = None, delay: float = 0.0) -> None:
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def complete(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
        self.calls.append({"prompt": prompt, "temperature": temperature, "max_tokens": max_tokens})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


TEST_PERSONA = Persona(
    id="p1",
    name="Test Caller",
    display_name="T. Caller",
    description="A test commentator",
    style="dramatic",
    system_prompt="You are Test Caller, a dramatic football commentator.",
    style_rules=("Be dramatic",),
    temperature=0.7,
    max_output_chars=280,
    partition="peter-drury",
)


def make_event(**overrides: Any) -> MatchEvent:
    fields: dict[str, Any] = {
        "event_id": "evt-1",
        "home_team": "Argentina",
        "away_team": "France",
        "competition": "FIFA World Cup 2022",
        "event_type": "goal",
    }
    fields.update(overrides)
    return MatchEvent(**fields)


@pytest.fixture
def corpus_store() -> QuoteCorpusStore:
    return QuoteCorpusStore(DATA_DIR)


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def registry() -> PersonaRegistry:
    from services.persona_registry import DEFAULT_PERSONAS

    return PersonaRegistry((*DEFAULT_PERSONAS, TEST_PERSONA), default_id="peter-drury")


@pytest_asyncio.fixture
async def index_handle(embedder: FakeEmbedder, corpus_store: QuoteCorpusStore) -> IndexHandle:
    handle = IndexHandle(embedder, timeout=1.0)
    await handle.ensure_built(corpus_store)
    return handle


def build_test_pipeline(
    registry: PersonaRegistry,
    handle: IndexHandle,
    generator: FakeGenerator,
    *,
    timeout: float = 1.0,
) -> CommentaryPipeline:
    return CommentaryPipeline(
        registry=registry,
        retrieval=RetrievalEngine(handle),
        generation=GenerationEngine(generator, timeout=timeout),
    )
