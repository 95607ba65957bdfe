"""
Context composition.

Renders a MatchEvent and whichever optional channels are present into an
ordered list of labeled sections. Pure and deterministic: no I/O, no
randomness, never raises for well-typed input.
"""

from __future__ import annotations

from typing import Callable, Iterable

from models import ContextSection, FplPick, MatchEvent, TimelineEntry

RECENT_EVENT_COUNT = 3
DEFAULT_SCORE = "0-0"
DEFAULT_STATUS = "Live"

POSITIVE_KEYWORDS = ("goal", "amazing", "brilliant", "incredible", "fantastic", "wow", "yes", "🔥", "⚽")
NEGATIVE_KEYWORDS = ("miss", "terrible", "awful", "disaster", "no", "😡", "🟥")

# (substring of the lowercased action, icon, verb)
_TIMELINE_FORMATS = (
    ("goal", "⚽", "scored"),
    ("red card", "🟥", "sent off"),
    ("yellow card", "🟨", "booked"),
)


def render_headline(event: MatchEvent) -> ContextSection:
    # The live channel is more current than the plain score field.
    score = event.current_score or event.score or DEFAULT_SCORE
    status = event.match_status or DEFAULT_STATUS
    return ContextSection(
        "Current Match Status",
        f"{event.home_team} {score} {event.away_team} - {status}",
    )


def describe_timeline_entry(entry: TimelineEntry) -> str:
    action = entry.action.lower().replace("_", " ")
    for needle, icon, verb in _TIMELINE_FORMATS:
        if needle in action:
            return f"{icon} {entry.player} {verb} at {entry.time}"
    return f"{entry.action} by {entry.player} at {entry.time}"


def render_timeline(event: MatchEvent) -> ContextSection | None:
    if not event.timeline:
        return None
    recent = event.timeline[-RECENT_EVENT_COUNT:]
    return ContextSection("Recent Match Events", ", ".join(describe_timeline_entry(e) for e in recent))


def _matches(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    a, b = a.strip().lower(), b.strip().lower()
    return bool(a and b) and (a in b or b in a)


def is_relevant_pick(pick: FplPick, event: MatchEvent) -> bool:
    """A pick matters when it is the event's player or plays for either side."""
    if _matches(pick.player_name, event.player):
        return True
    return any(_matches(pick.team, side) for side in (event.home_team, event.away_team))


def _pick_names(picks: Iterable[FplPick]) -> list[str]:
    return [p.player_name for p in picks if p.player_name]


def render_fantasy(event: MatchEvent) -> ContextSection | None:
    fpl = event.fpl_context
    if fpl is None:
        return None

    parts: list[str] = []
    mentions = []
    for manager in fpl.managers:
        relevant = _pick_names(p for p in manager.picks if is_relevant_pick(p, event))
        if not relevant and not manager.captain and not manager.vice_captain:
            continue
        mention = f"@{manager.username}: {', '.join(relevant) or 'none'}"
        if manager.captain:
            mention += f" (C: {manager.captain})"
        if manager.vice_captain:
            mention += f" (VC: {manager.vice_captain})"
        mentions.append(mention)
    if mentions:
        parts.append(f"FPL Managers: {' | '.join(mentions)}")
    if fpl.captain_choices:
        parts.append(f"Captains: {', '.join(fpl.captain_choices)}")
    if fpl.vice_captain_choices:
        parts.append(f"Vice Captains: {', '.join(fpl.vice_captain_choices)}")
    picks = _pick_names(p for p in fpl.relevant_picks if is_relevant_pick(p, event))
    if picks:
        parts.append(f"Relevant Picks: {', '.join(picks)}")
    if fpl.fantasy_impact:
        parts.append(f"Fantasy Impact: {fpl.fantasy_impact}")

    if not parts:
        return None
    return ContextSection("Fantasy Football Context", " | ".join(parts))


def score_chat_sentiment(transcript: str) -> tuple[str, int, int]:
    """Return (mood, positive, negative). Each keyword counts at most once per line."""
    positive = negative = 0
    for line in transcript.splitlines():
        lowered = line.strip().lower()
        if not lowered:
            continue
        positive += sum(1 for word in POSITIVE_KEYWORDS if word in lowered)
        negative += sum(1 for word in NEGATIVE_KEYWORDS if word in lowered)
    if positive > negative:
        mood = "excited"
    elif negative > positive:
        mood = "frustrated"
    else:
        mood = "neutral"
    return mood, positive, negative


def render_chat_sentiment(event: MatchEvent) -> ContextSection | None:
    if not event.chat_history or not event.chat_history.strip():
        return None
    mood, positive, negative = score_chat_sentiment(event.chat_history)
    return ContextSection(
        "Chat Sentiment",
        f"{mood} ({positive} positive, {negative} negative reactions)",
    )


def render_chat_room(event: MatchEvent) -> ContextSection | None:
    parts = []
    if event.user_count:
        parts.append(f"{event.user_count} fans actively discussing")
    if event.active_users:
        parts.append(f"Active users: {', '.join(event.active_users)}")
    if not parts:
        return None
    return ContextSection("Chat Room", "; ".join(parts))


_OPTIONAL_RENDERERS: tuple[Callable[[MatchEvent], ContextSection | None], ...] = (
    render_timeline,
    render_fantasy,
    render_chat_sentiment,
    render_chat_room,
)


def compose(event: MatchEvent) -> list[ContextSection]:
    sections = [render_headline(event)]
    for render in _OPTIONAL_RENDERERS:
        section = render(event)
        if section is not None:
            sections.append(section)
    return sections


def render_briefing(sections: Iterable[ContextSection]) -> str:
    return "\n\n".join(f"**{s.label}:** {s.text}" for s in sections)
