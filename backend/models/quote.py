from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SourceConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Quote:
    id: str
    text: str                          # the quote itself
    paraphrase: bool = False
    event: str = ""                    # goal, final_whistle, ...
    competition: str = ""
    teams: tuple[str, ...] = ()
    player: str | None = None
    match_context: str = ""
    tags: tuple[str, ...] = ()
    metaphors: tuple[str, ...] = ()
    confidence: SourceConfidence = SourceConfidence.MEDIUM

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Quote:
        """Build a Quote from one corpus JSON record. Raises KeyError/ValueError on bad records."""
        quote_id = str(raw["id"]).strip()
        text = str(raw["quote"]).strip()
        if not quote_id or not text:
            raise ValueError("quote record needs a non-empty id and quote")
        confidence = raw.get("source_confidence") or SourceConfidence.MEDIUM.value
        return cls(
            id=quote_id,
            text=text,
            paraphrase=bool(raw.get("paraphrase", False)),
            event=str(raw.get("event") or ""),
            competition=str(raw.get("competition") or ""),
            teams=tuple(str(t) for t in raw.get("teams") or ()),
            player=raw.get("player") or None,
            match_context=str(raw.get("match_context") or raw.get("context") or ""),
            tags=tuple(str(t) for t in raw.get("tags") or ()),
            metaphors=tuple(str(m) for m in raw.get("metaphors") or ()),
            confidence=SourceConfidence(confidence),
        )

    def document_text(self) -> str:
        """Text embedded for retrieval: the quote plus the moment it belongs to."""
        parts = [
            self.text,
            self.event,
            self.competition,
            " vs ".join(self.teams),
            self.player or "",
            self.match_context,
            " ".join(self.tags),
        ]
        return " ".join(" ".join(p.split()) for p in parts if p and p.strip())
