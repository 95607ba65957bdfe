"""
Gemini REST client.

Thin async wrapper around the Gemini API used for both capabilities the
pipeline consumes: `embed` (embedContent) and `complete` (generateContent).
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class GeminiClientError(Exception):
    """Base exception for Gemini client errors."""


class GeminiRateLimitError(GeminiClientError):
    """Raised when still rate limited after all retries."""


class GeminiAPIError(GeminiClientError):
    def __init__(self, message: str, status_code: int, response_body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class GeminiClient:
    """
    Async client for the Gemini API.

    Usage:
        async with GeminiClient(api_key=...) as client:
            vector = await client.embed("Messi scores in the final")
            line = await client.complete(prompt, temperature=0.8, max_tokens=150)
    """

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.5-flash",
        embedding_model: str = "text-embedding-004",
        max_retries: int = 2,
        retry_delay: float = 0.5,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.embedding_model = embedding_model
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._request_count = 0

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def request_count(self) -> int:
        return self._request_count

    def _url(self, model: str, method: str) -> str:
        return f"{self.BASE_URL}/models/{model}:{method}"

    async def _post(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        if not self.api_key:
            raise GeminiClientError("GOOGLE_API_KEY is not set")

        client = self._get_client()
        last_error: GeminiClientError | None = None

        for attempt in range(self.max_retries):
            delay = self.retry_delay * (2**attempt)
            try:
                self._request_count += 1
                response = await client.post(url, json=body)
            except httpx.TimeoutException:
                logger.warning("[gemini] Request timeout, retrying in %.1fs (attempt %d)", delay, attempt + 1)
                last_error = GeminiClientError("Request timed out")
            except httpx.RequestError as exc:
                logger.warning("[gemini] Request error: %s, retrying in %.1fs", exc, delay)
                last_error = GeminiClientError(f"Request error: {exc}")
            else:
                if response.status_code == 200:
                    try:
                        return response.json()
                    except ValueError as exc:
                        raise GeminiAPIError("Response is not JSON", 200, response.text) from exc
                if response.status_code == 429:
                    logger.warning("[gemini] Rate limited, retrying in %.1fs (attempt %d)", delay, attempt + 1)
                    last_error = GeminiRateLimitError("Rate limited by Gemini API")
                elif response.status_code >= 500:
                    logger.warning("[gemini] Server error %d, retrying in %.1fs", response.status_code, delay)
                    last_error = GeminiAPIError(
                        f"Server error: {response.status_code}", response.status_code, response.text
                    )
                else:
                    # Client errors are not retried.
                    raise GeminiAPIError(
                        f"API error: {response.status_code}", response.status_code, response.text
                    )
            if attempt + 1 < self.max_retries:
                await asyncio.sleep(delay)

        raise last_error or GeminiClientError("Failed after all retries")

    async def complete(self, prompt: str, *, temperature: float = 0.8, max_tokens: int = 150) -> str:
        """Single-shot text generation. Returns the raw text of the first candidate."""
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
                "topP": 0.95,
            },
        }
        start = time.perf_counter()
        data = await self._post(self._url(self.model, "generateContent"), body)
        candidates = data.get("candidates") or []
        if not candidates:
            raise GeminiAPIError("No candidates in response", 200, str(data))
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts:
            raise GeminiAPIError("No parts in response", 200, str(data))
        text = "".join(part.get("text", "") for part in parts)
        logger.debug("[gemini] generateContent %.0fms, %d chars", (time.perf_counter() - start) * 1000, len(text))
        return text

    async def embed(self, text: str) -> list[float]:
        body = {
            "model": f"models/{self.embedding_model}",
            "content": {"parts": [{"text": text}]},
        }
        data = await self._post(self._url(self.embedding_model, "embedContent"), body)
        values = (data.get("embedding") or {}).get("values")
        if not values:
            raise GeminiAPIError("No embedding values in response", 200, str(data))
        return [float(v) for v in values]
