from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    GOAL = "goal"
    ASSIST = "assist"
    RED_CARD = "red_card"
    YELLOW_CARD = "yellow_card"
    SUBSTITUTION = "substitution"
    FINAL_WHISTLE = "final_whistle"
    PENALTY = "penalty"
    FREE_KICK = "free_kick"
    CHAT_COMMENTARY = "chat_commentary"


@dataclass(frozen=True)
class TimelineEntry:
    action: str = "event"
    player: str = "player"
    time: str = ""

    @classmethod
    def from_payload(cls, raw: dict[str, Any]) -> TimelineEntry:
        """
        Accept either an ESPN-style key event or the flat shape used by the chat rooms.

          {"type": {"text": "Goal"}, "athletesInvolved": [{"displayName": ...}], "clock": {"displayValue": "23'"}}
          {"action": "Goal", "playerName": "...", "time": "23'"}

        A bare string in place of a nested object is taken as-is; other shapes fall
        back to the flat keys.
        """
        athletes = raw.get("athletesInvolved")
        first = athletes[0] if isinstance(athletes, list) and athletes else None
        return cls(
            action=_field_text(raw.get("type"), "text") or _text(raw.get("action")) or "event",
            player=_field_text(first, "displayName") or _text(raw.get("playerName")) or "player",
            time=_field_text(raw.get("clock"), "displayValue") or _text(raw.get("time")) or "",
        )


def _text(value: Any) -> str | None:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    return str(value).strip() or None


def _field_text(value: Any, key: str) -> str | None:
    """`value[key]` for an object, the value itself for a scalar."""
    if isinstance(value, dict):
        return _text(value.get(key))
    return _text(value)


@dataclass(frozen=True)
class FplPick:
    player_name: str
    team: str | None = None            # short name, e.g. "ARS"
    username: str | None = None
    is_captain: bool = False
    is_vice_captain: bool = False


@dataclass(frozen=True)
class FplManager:
    username: str
    picks: tuple[FplPick, ...] = ()
    captain: str | None = None
    vice_captain: str | None = None


@dataclass(frozen=True)
class FplContext:
    users: int | None = None
    managers: tuple[FplManager, ...] = ()
    relevant_picks: tuple[FplPick, ...] = ()
    captain_choices: tuple[str, ...] = ()
    vice_captain_choices: tuple[str, ...] = ()
    fantasy_impact: str | None = None


@dataclass
class MatchEvent:
    event_id: str
    home_team: str
    away_team: str
    competition: str
    event_type: str
    player: str | None = None
    minute: int | None = None
    score: str | None = None
    context: str | None = None
    # optional channels supplied by upstream providers
    timeline: list[TimelineEntry] = field(default_factory=list)
    current_score: str | None = None
    match_status: str | None = None
    chat_history: str | None = None
    user_count: int | None = None
    active_users: list[str] = field(default_factory=list)
    fpl_context: FplContext | None = None

    @property
    def is_chat_commentary(self) -> bool:
        return self.event_type == EventType.CHAT_COMMENTARY.value

    def to_payload(self) -> dict[str, Any]:
        """camelCase echo of the event, as sent back in CommentaryResponse.context."""
        payload: dict[str, Any] = {
            "eventId": self.event_id,
            "homeTeam": self.home_team,
            "awayTeam": self.away_team,
            "competition": self.competition,
            "eventType": self.event_type,
        }
        optional = {
            "player": self.player,
            "minute": self.minute,
            "score": self.score,
            "context": self.context,
            "currentScore": self.current_score,
            "matchStatus": self.match_status,
            "chatHistory": self.chat_history,
            "userCount": self.user_count,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        if self.timeline:
            payload["matchEvents"] = [
                {"action": e.action, "playerName": e.player, "time": e.time} for e in self.timeline
            ]
        if self.active_users:
            payload["activeUsers"] = list(self.active_users)
        if self.fpl_context is not None:
            fpl = self.fpl_context
            payload["fplContext"] = {
                "users": fpl.users,
                "captainChoices": list(fpl.captain_choices),
                "viceCaptainChoices": list(fpl.vice_captain_choices),
                "relevantPicks": [_pick_payload(p) for p in fpl.relevant_picks],
                "managers": [
                    {
                        "username": m.username,
                        "captain": m.captain,
                        "viceCaptain": m.vice_captain,
                        "picks": [_pick_payload(p) for p in m.picks],
                    }
                    for m in fpl.managers
                ],
                "fantasyImpact": fpl.fantasy_impact,
            }
        return payload


def _pick_payload(pick: FplPick) -> dict[str, Any]:
    return {
        "player": {"web_name": pick.player_name, "team": {"short_name": pick.team}},
        "username": pick.username,
        "is_captain": pick.is_captain,
        "is_vice_captain": pick.is_vice_captain,
    }
