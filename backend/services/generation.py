"""Prompt assembly and single-shot generation against the text-generation capability."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Sequence

from models import ContextSection, MatchEvent, Persona, ScoredQuote
from services.capabilities import GenerationCapability
from services.context_composer import render_briefing
from services.errors import GenerationServiceError

logger = logging.getLogger(__name__)

MAX_EXEMPLARS = 3
DEFAULT_MAX_TOKENS = 150
CHAT_TAIL_LINES = 10

CHAT_RULES = (
    "Use ONLY the real match data provided; never invent goals, cards, or events",
    "Mention 1-2 fans from the chat by @username",
    "If FPL managers are listed, mention a manager and their relevant pick",
    "Reflect the energy of the chat",
)

OUTPUT_FORMAT = (
    "Respond with exactly one commentary line of 1-2 sentences, under {max_chars} characters. "
    "No preamble, no labels, no quotation marks, no markdown."
)

_PREAMBLE = re.compile(r"^(?:commentary|line|[\w .'-]{0,40} says?)\s*:\s*", re.IGNORECASE)
_WRAPPING = "\"'“”‘’*_` "


def _event_details(event: MatchEvent) -> list[str]:
    return [
        f"- Teams: {event.home_team} vs {event.away_team}",
        f"- Competition: {event.competition}",
        f"- Event Type: {event.event_type}",
        f"- Player: {event.player or 'Unknown'}",
        f"- Minute: {event.minute if event.minute is not None else 'Unknown'}",
        f"- Score: {event.current_score or event.score or 'Unknown'}",
        f"- Context: {event.context or 'General match moment'}",
    ]


def build_prompt(
    persona: Persona,
    exemplars: Sequence[ScoredQuote],
    sections: Sequence[ContextSection],
    event: MatchEvent,
) -> str:
    rules = list(persona.style_rules)
    if event.is_chat_commentary:
        rules.extend(CHAT_RULES)

    lines = [persona.system_prompt, "", f"Generate a single, authentic {persona.name} commentary line for this moment."]
    lines += ["", "**Style Rules:**"]
    lines += [f"{i}. {rule}" for i, rule in enumerate(rules, start=1)]
    lines += ["", "**Match Event Details:**", *_event_details(event)]

    if exemplars:
        lines += ["", f"**{persona.name} Quote Examples for Style Reference:**"]
        lines += [f'"{e.quote.text}"' for e in exemplars[:MAX_EXEMPLARS]]

    if sections:
        lines += ["", "**Match Briefing:**", render_briefing(sections)]

    if event.is_chat_commentary and event.chat_history:
        tail = [line for line in event.chat_history.splitlines() if line.strip()][-CHAT_TAIL_LINES:]
        if tail:
            lines += ["", "**Recent Chat Activity:**", *tail]

    lines += ["", OUTPUT_FORMAT.format(max_chars=persona.max_output_chars)]
    return "\n".join(lines)


def fit_line(text: str, max_chars: int) -> str:
    """Collapse whitespace and cut at a word boundary to at most `max_chars`."""
    line = " ".join(text.split())
    if len(line) > max_chars:
        cut = line[:max_chars].rsplit(" ", 1)[0].rstrip(",;:-")
        line = cut or line[:max_chars]
    return line


def clean_commentary(text: str, max_chars: int) -> str:
    """Reduce a model reply to one bounded line without scaffolding."""
    line = next((ln.strip() for ln in text.splitlines() if ln.strip()), "")
    line = line.lstrip("#>-• ").strip(_WRAPPING)
    line = _PREAMBLE.sub("", line, count=1).strip(_WRAPPING)
    return fit_line(line.replace("**", ""), max_chars)


class GenerationEngine:
    def __init__(
        self,
        generator: GenerationCapability,
        *,
        timeout: float = 10.0,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self._generator = generator
        self._timeout = timeout
        self.max_tokens = max_tokens

    async def generate(
        self,
        persona: Persona,
        exemplars: Sequence[ScoredQuote],
        sections: Sequence[ContextSection],
        event: MatchEvent,
    ) -> str:
        prompt = build_prompt(persona, exemplars, sections, event)
        temperature = min(max(persona.temperature, 0.0), 1.0)
        try:
            raw = await asyncio.wait_for(
                self._generator.complete(prompt, temperature=temperature, max_tokens=self.max_tokens),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise GenerationServiceError(f"Generation timed out after {self._timeout:.1f}s") from exc
        except Exception as exc:  # noqa: BLE001
            raise GenerationServiceError(f"Generation failed: {exc}") from exc

        commentary = clean_commentary(raw or "", persona.max_output_chars)
        if not commentary:
            raise GenerationServiceError("Generation returned no usable text")
        logger.info(
            "[generation] persona=%s exemplars=%d prompt_chars=%d text=%.60s...",
            persona.id,
            len(exemplars),
            len(prompt),
            commentary,
        )
        return commentary
