from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .match_event import MatchEvent
from .persona import Persona
from .quote import Quote


class PipelineState(str, Enum):
    VALIDATING = "validating"
    RETRIEVING = "retrieving"
    COMPOSING = "composing"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ScoredQuote:
    quote: Quote
    score: float                       # cosine similarity, -1.0-1.0


@dataclass(frozen=True)
class ContextSection:
    label: str
    text: str


@dataclass
class CommentaryRequest:
    persona_id: str
    event: MatchEvent


@dataclass
class PipelineTrace:
    """Diagnostics for one invocation. Never serialized to clients."""

    states: list[PipelineState] = field(default_factory=list)
    exemplars: list[ScoredQuote] = field(default_factory=list)
    sections: list[ContextSection] = field(default_factory=list)
    faults: list[str] = field(default_factory=list)   # absorbed error class names
    used_fallback: bool = False


@dataclass
class CommentaryResponse:
    success: bool
    commentary: str
    persona: Persona
    context: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    trace: PipelineTrace = field(default_factory=PipelineTrace)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "commentary": self.commentary,
            "commentator": {
                "id": self.persona.id,
                "name": self.persona.name,
                "displayName": self.persona.display_name,
                "style": self.persona.style,
            },
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }
