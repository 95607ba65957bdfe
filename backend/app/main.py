import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routes.commentary import router as commentary_router
from services.config import Settings
from services.embedding_index import IndexHandle
from services.errors import DataUnavailable, EmbeddingServiceError
from services.gemini_client import GeminiClient
from services.generation import GenerationEngine
from services.persona_registry import DEFAULT_PERSONA_ID, PersonaRegistry
from services.pipeline import CommentaryPipeline
from services.quote_corpus import QuoteCorpusStore
from services.retrieval import RetrievalEngine

# Load .env from backend dir
load_dotenv(Path(__file__).resolve().parent.parent / ".env")
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO")
logger = logging.getLogger(__name__)


def build_pipeline(settings: Settings, client: GeminiClient, index: IndexHandle) -> CommentaryPipeline:
    return CommentaryPipeline(
        registry=PersonaRegistry(default_id=DEFAULT_PERSONA_ID),
        retrieval=RetrievalEngine(index, top_k=settings.retrieval_top_k),
        generation=GenerationEngine(
            client,
            timeout=settings.capability_timeout_seconds,
            max_tokens=settings.generation_max_tokens,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if getattr(app.state, "pipeline", None) is not None:
        # Pipeline injected by the caller (tests, embedding apps).
        yield
        return

    settings = Settings.from_env()
    client = GeminiClient(
        settings.google_api_key,
        model=settings.generation_model,
        embedding_model=settings.embedding_model,
        timeout=settings.capability_timeout_seconds,
    )
    index = IndexHandle(client, timeout=settings.capability_timeout_seconds)
    try:
        await index.ensure_built(QuoteCorpusStore(settings.corpus_dir))
    except (DataUnavailable, EmbeddingServiceError) as exc:
        logger.warning("[startup] Index build failed; commentary will be generated without exemplars: %s", exc)

    app.state.pipeline = build_pipeline(settings, client, index)
    try:
        yield
    finally:
        await client.close()


def create_app(pipeline: CommentaryPipeline | None = None) -> FastAPI:
    app = FastAPI(title="Matchcast Commentary API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.pipeline = pipeline

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(commentary_router, prefix="/api")
    for route in commentary_router.routes:
        logger.debug("App route: %s %s", sorted(getattr(route, "methods", None) or []), route.path)
    return app


app = create_app()
