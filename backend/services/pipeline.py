"""
Commentary pipeline: validating -> retrieving -> composing -> generating -> done.

A request with a known persona and a well-formed MatchEvent always yields
usable commentary. Retrieval faults degrade to generation without
exemplars; generation faults degrade to a deterministic template line.
Only InvalidRequest reaches the caller.
"""

from __future__ import annotations

import dataclasses
import logging
from functools import partial
from typing import Awaitable, Callable, NamedTuple

from models import (
    CommentaryRequest,
    CommentaryResponse,
    ContextSection,
    EventType,
    MatchEvent,
    Persona,
    PipelineState,
    PipelineTrace,
    ScoredQuote,
)
from services.context_composer import compose
from services.errors import (
    DataUnavailable,
    EmbeddingServiceError,
    GenerationServiceError,
    InvalidRequest,
    UnknownPersona,
)
from services.generation import GenerationEngine, fit_line
from services.persona_registry import PersonaRegistry
from services.retrieval import RetrievalEngine

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("event_id", "home_team", "away_team", "competition", "event_type")

CHAT_FALLBACK = "The passion of the fans echoes through the digital realm as {home} and {away} battle for glory!"
EVENT_FALLBACK = "{event} drama unfolds between {home} and {away}"
DEFAULT_FALLBACK_CHARS = 280


def fallback_commentary(event: MatchEvent, max_chars: int = DEFAULT_FALLBACK_CHARS) -> str:
    """Deterministic single line built only from MatchEvent fields."""
    if event.is_chat_commentary:
        line = CHAT_FALLBACK.format(home=event.home_team, away=event.away_team)
    else:
        label = event.event_type.replace("_", " ").strip().capitalize()
        line = EVENT_FALLBACK.format(event=label, home=event.home_team, away=event.away_team)
    return fit_line(line, max_chars)


class PersonaCapabilities(NamedTuple):
    """What the pipeline can do for one persona."""

    retrieve: Callable[[MatchEvent], Awaitable[list[ScoredQuote]]]
    generate: Callable[[list[ScoredQuote], list[ContextSection], MatchEvent], Awaitable[str]]


class CommentaryPipeline:
    def __init__(
        self,
        registry: PersonaRegistry,
        retrieval: RetrievalEngine,
        generation: GenerationEngine,
        composer: Callable[[MatchEvent], list[ContextSection]] = compose,
    ) -> None:
        self.registry = registry
        self._retrieval = retrieval
        self._generation = generation
        self._compose = composer

    def bind(self, persona: Persona) -> PersonaCapabilities:
        return PersonaCapabilities(
            retrieve=partial(self._retrieve_for, persona),
            generate=partial(self._generation.generate, persona),
        )

    async def _retrieve_for(self, persona: Persona, event: MatchEvent) -> list[ScoredQuote]:
        return await self._retrieval.retrieve(event, persona)

    def _validate(self, request: CommentaryRequest) -> Persona:
        try:
            persona = self.registry.lookup(request.persona_id)
        except UnknownPersona as exc:
            raise InvalidRequest(str(exc)) from exc
        missing = [
            name for name in REQUIRED_FIELDS if not str(getattr(request.event, name, "") or "").strip()
        ]
        if missing:
            raise InvalidRequest(f"Missing required fields: {', '.join(missing)}")
        return persona

    async def generate(self, request: CommentaryRequest) -> CommentaryResponse:
        trace = PipelineTrace()
        event = request.event

        trace.states.append(PipelineState.VALIDATING)
        try:
            persona = self._validate(request)
        except InvalidRequest as exc:
            trace.states.append(PipelineState.FAILED)
            logger.info("[pipeline] Rejected request persona=%r: %s", request.persona_id, exc)
            raise

        logger.info(
            "[pipeline] Generating %s commentary event=%s type=%s timeline=%s chat=%s fpl=%s live=%s",
            persona.id,
            event.event_id,
            event.event_type,
            bool(event.timeline),
            bool(event.chat_history),
            event.fpl_context is not None,
            bool(event.current_score or event.match_status),
        )
        capabilities = self.bind(persona)

        trace.states.append(PipelineState.RETRIEVING)
        try:
            exemplars = await capabilities.retrieve(event)
        except (EmbeddingServiceError, DataUnavailable) as exc:
            logger.warning(
                "[pipeline] Retrieval degraded (%s); generating without exemplars: %s",
                type(exc).__name__,
                exc,
                exc_info=True,
            )
            trace.faults.append(type(exc).__name__)
            exemplars = []
        trace.exemplars = list(exemplars)

        trace.states.append(PipelineState.COMPOSING)
        sections = self._compose(event)
        trace.sections = sections

        trace.states.append(PipelineState.GENERATING)
        try:
            commentary = await capabilities.generate(trace.exemplars, sections, event)
        except GenerationServiceError as exc:
            logger.warning(
                "[pipeline] Generation degraded (%s); using fallback commentary: %s",
                type(exc).__name__,
                exc,
                exc_info=True,
            )
            trace.faults.append(type(exc).__name__)
            trace.used_fallback = True
            commentary = fallback_commentary(event, persona.max_output_chars)

        trace.states.append(PipelineState.DONE)
        return CommentaryResponse(
            success=True,
            commentary=commentary,
            persona=persona,
            context=event.to_payload(),
            trace=trace,
        )

    async def generate_chat_commentary(self, persona_id: str, event: MatchEvent) -> CommentaryResponse:
        event = dataclasses.replace(event, event_type=EventType.CHAT_COMMENTARY.value)
        return await self.generate(CommentaryRequest(persona_id=persona_id, event=event))

    async def generate_goal_commentary(self, persona_id: str, event: MatchEvent) -> CommentaryResponse:
        event = dataclasses.replace(event, event_type=EventType.GOAL.value)
        return await self.generate(CommentaryRequest(persona_id=persona_id, event=event))

    async def generate_match_sharing_commentary(self, persona_id: str, event: MatchEvent) -> CommentaryResponse:
        event = dataclasses.replace(event, event_type=event.event_type or EventType.FINAL_WHISTLE.value)
        return await self.generate(CommentaryRequest(persona_id=persona_id, event=event))
