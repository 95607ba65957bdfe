from .commentary import (
    CommentaryRequest,
    CommentaryResponse,
    ContextSection,
    PipelineState,
    PipelineTrace,
    ScoredQuote,
)
from .match_event import EventType, FplContext, FplManager, FplPick, MatchEvent, TimelineEntry
from .persona import Persona
from .quote import Quote, SourceConfidence

__all__ = [
    "Quote",
    "SourceConfidence",
    "MatchEvent",
    "EventType",
    "TimelineEntry",
    "FplContext",
    "FplManager",
    "FplPick",
    "Persona",
    "CommentaryRequest",
    "CommentaryResponse",
    "ContextSection",
    "PipelineState",
    "PipelineTrace",
    "ScoredQuote",
]
