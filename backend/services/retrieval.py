from __future__ import annotations

import logging

from models import MatchEvent, Persona, ScoredQuote
from services.embedding_index import IndexHandle

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 3


def build_query(event: MatchEvent) -> str:
    """Search text for an event, whitespace-normalized."""
    parts = [
        event.home_team,
        event.away_team,
        event.competition,
        event.event_type.replace("_", " "),
        event.player or "",
        event.context or "",
    ]
    return " ".join(" ".join(parts).split())


class RetrievalEngine:
    """Finds exemplar quotes in the persona's corpus partition."""

    def __init__(self, index: IndexHandle, *, top_k: int = DEFAULT_TOP_K) -> None:
        self._index = index
        self.top_k = top_k

    async def retrieve(self, event: MatchEvent, persona: Persona) -> list[ScoredQuote]:
        # DataUnavailable / EmbeddingServiceError propagate; the pipeline degrades on them.
        index = self._index.current
        query = build_query(event)
        exemplars = await index.search(query, self.top_k, persona.corpus_partition)
        logger.info(
            "[retrieval] persona=%s partition=%s exemplars=%s",
            persona.id,
            persona.corpus_partition,
            [e.quote.id for e in exemplars],
        )
        return exemplars
