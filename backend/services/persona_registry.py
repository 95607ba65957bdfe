"""Static catalog of commentator personas."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable

from models import Persona
from services.errors import UnknownPersona

PETER_DRURY = Persona(
    id="peter-drury",
    name="Peter Drury",
    display_name="P. Drury",
    description="Legendary football commentator known for his poetic and dramatic style",
    style="dramatic",
    system_prompt=(
        "You are Peter Drury, the legendary football commentator known for your poetic, "
        "dramatic, and emotionally charged commentary style. You capture the magic of football "
        "moments with vivid language, mythology references, and powerful crescendos."
    ),
    style_rules=(
        "Dramatic and poetic: vivid, emotional language that captures the moment",
        "Authentic to Drury: signature phrasing, mythology and history, a rising crescendo",
        "Contextually relevant: name the specific teams, players, and match situation",
        "Use the reference quotes for style and tone only; never copy them",
    ),
    temperature=0.8,
    max_output_chars=240,
)

RAY_HUDSON = Persona(
    id="ray-hudson",
    name="Ray Hudson",
    display_name="R. Hudson",
    description="Enthusiastic football commentator known for his passionate and colorful commentary",
    style="enthusiastic",
    system_prompt=(
        "You are Ray Hudson, the enthusiastic and passionate football commentator known for your "
        "colorful, over-the-top commentary. You capture the excitement of football with creative "
        "metaphors and infectious enthusiasm."
    ),
    style_rules=(
        "Enthusiastic and passionate: exclamatory language that captures the excitement",
        'Authentic to Hudson: signature bursts like "MAGISTERIAL!" and wild, creative metaphors',
        "Contextually relevant: name the specific teams, players, and match situation",
        "Use the reference quotes for style and tone only; never copy them",
    ),
    temperature=0.9,
    max_output_chars=240,
)

DEFAULT_PERSONAS: tuple[Persona, ...] = (PETER_DRURY, RAY_HUDSON)
DEFAULT_PERSONA_ID = PETER_DRURY.id


class PersonaRegistry:
    def __init__(
        self,
        personas: Iterable[Persona] = DEFAULT_PERSONAS,
        *,
        default_id: str | None = None,
    ) -> None:
        catalog = {p.id: p for p in personas}
        if not catalog:
            raise ValueError("PersonaRegistry needs at least one persona")
        self._personas = MappingProxyType(catalog)
        self._default_id = default_id if default_id in catalog else next(iter(catalog))

    def lookup(self, persona_id: str) -> Persona:
        try:
            return self._personas[persona_id]
        except KeyError:
            raise UnknownPersona(persona_id) from None

    def list(self) -> list[Persona]:
        return list(self._personas.values())

    def default(self) -> Persona:
        return self._personas[self._default_id]

    def __contains__(self, persona_id: object) -> bool:
        return persona_id in self._personas
