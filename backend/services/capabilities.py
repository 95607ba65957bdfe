"""External capabilities consumed by the pipeline. Implemented by GeminiClient and test fakes."""

from typing import Protocol, Sequence


class EmbeddingCapability(Protocol):
    async def embed(self, text: str) -> Sequence[float]: ...


class GenerationCapability(Protocol):
    async def complete(self, prompt: str, *, temperature: float, max_tokens: int) -> str: ...
