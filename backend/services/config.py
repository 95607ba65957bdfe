"""Runtime settings read from the environment (backend/.env is loaded by the app entrypoint)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CORPUS_DIR = Path(__file__).resolve().parent.parent / "data" / "commentators"
DEFAULT_GENERATION_MODEL = "gemini-2.5-flash"
DEFAULT_EMBEDDING_MODEL = "text-embedding-004"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_TOP_K = 3
DEFAULT_MAX_TOKENS = 150


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def _env_number(name: str, default: float, cast: type = float):
    raw = _env(name)
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("[config] Ignoring invalid %s=%r; using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("[config] Ignoring non-positive %s=%r; using %s", name, raw, default)
        return default
    return value


@dataclass(frozen=True)
class Settings:
    google_api_key: str = ""
    generation_model: str = DEFAULT_GENERATION_MODEL
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    corpus_dir: Path = DEFAULT_CORPUS_DIR
    capability_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retrieval_top_k: int = DEFAULT_TOP_K
    generation_max_tokens: int = DEFAULT_MAX_TOKENS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        api_key = _env("GOOGLE_API_KEY")
        if not api_key:
            logger.warning(
                "GOOGLE_API_KEY not set; retrieval and generation will degrade to fallback commentary."
            )
        return cls(
            google_api_key=api_key,
            generation_model=_env("GEMINI_MODEL", DEFAULT_GENERATION_MODEL),
            embedding_model=_env("GEMINI_EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            corpus_dir=Path(_env("COMMENTARY_CORPUS_DIR", str(DEFAULT_CORPUS_DIR))),
            capability_timeout_seconds=_env_number("CAPABILITY_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
            retrieval_top_k=_env_number("RETRIEVAL_TOP_K", DEFAULT_TOP_K, int),
            generation_max_tokens=_env_number("GENERATION_MAX_TOKENS", DEFAULT_MAX_TOKENS, int),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
        )
