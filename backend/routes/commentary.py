"""Commentary REST API. Accepts the nested `{commentatorId, context}` body or the flat form."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, model_validator

from models import (
    CommentaryRequest,
    FplContext,
    FplManager,
    FplPick,
    MatchEvent,
    TimelineEntry,
)
from services.errors import InvalidRequest
from services.pipeline import CommentaryPipeline

router = APIRouter(tags=["commentary"])
logger = logging.getLogger(__name__)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class FplPickPayload(_Payload):
    player: dict[str, Any] | None = None
    name: str | None = None
    player_name: str | None = Field(default=None, alias="playerName")
    team: str | None = None
    username: str | None = None
    is_captain: bool = Field(default=False, alias="isCaptain")
    is_vice_captain: bool = Field(default=False, alias="isViceCaptain")

    def to_pick(self) -> FplPick | None:
        player = self.player or {}
        name = player.get("web_name") or player.get("name") or self.player_name or self.name
        if not name:
            return None
        team = (player.get("team") or {}).get("short_name") if isinstance(player.get("team"), dict) else None
        return FplPick(
            player_name=name,
            team=team or self.team,
            username=self.username,
            is_captain=self.is_captain,
            is_vice_captain=self.is_vice_captain,
        )


class FplManagerPayload(_Payload):
    username: str
    picks: list[FplPickPayload] = Field(default_factory=list)
    relevant_picks: list[FplPickPayload] = Field(default_factory=list, alias="relevantPicks")
    captain: str | None = None
    vice_captain: str | None = Field(default=None, alias="viceCaptain")

    def to_manager(self) -> FplManager:
        picks = [p.to_pick() for p in [*self.picks, *self.relevant_picks]]
        return FplManager(
            username=self.username,
            picks=tuple(p for p in picks if p is not None),
            captain=self.captain,
            vice_captain=self.vice_captain,
        )


class FplContextPayload(_Payload):
    users: int | None = None
    managers: list[FplManagerPayload] = Field(default_factory=list)
    relevant_picks: list[FplPickPayload] = Field(default_factory=list, alias="relevantPicks")
    captain_choices: list[str] = Field(default_factory=list, alias="captainChoices")
    vice_captain_choices: list[str] = Field(default_factory=list, alias="viceCaptainChoices")
    fantasy_impact: str | None = Field(default=None, alias="fantasyImpact")

    def to_context(self) -> FplContext:
        picks = [p.to_pick() for p in self.relevant_picks]
        return FplContext(
            users=self.users,
            managers=tuple(m.to_manager() for m in self.managers),
            relevant_picks=tuple(p for p in picks if p is not None),
            captain_choices=tuple(self.captain_choices),
            vice_captain_choices=tuple(self.vice_captain_choices),
            fantasy_impact=self.fantasy_impact,
        )


class CommentaryContextPayload(_Payload):
    # Core fields are optional here so the pipeline, not the schema, reports what is missing.
    event_id: str | None = Field(default=None, alias="eventId")
    home_team: str | None = Field(default=None, alias="homeTeam")
    away_team: str | None = Field(default=None, alias="awayTeam")
    competition: str | None = None
    event_type: str | None = Field(default=None, alias="eventType")
    player: str | None = None
    minute: int | None = None
    score: str | None = None
    context: str | None = None
    match_events: list[dict[str, Any]] = Field(default_factory=list, alias="matchEvents")
    current_score: str | None = Field(default=None, alias="currentScore")
    match_status: str | None = Field(default=None, alias="matchStatus")
    chat_history: str | None = Field(default=None, alias="chatHistory")
    user_count: int | None = Field(default=None, alias="userCount")
    active_users: list[str] = Field(default_factory=list, alias="activeUsers")
    fpl_context: FplContextPayload | None = Field(default=None, alias="fplContext")

    def to_event(self) -> MatchEvent:
        return MatchEvent(
            event_id=self.event_id or "",
            home_team=self.home_team or "",
            away_team=self.away_team or "",
            competition=self.competition or "",
            event_type=self.event_type or "",
            player=self.player,
            minute=self.minute,
            score=self.score,
            context=self.context,
            timeline=[TimelineEntry.from_payload(e) for e in self.match_events],
            current_score=self.current_score,
            match_status=self.match_status,
            chat_history=self.chat_history,
            user_count=self.user_count,
            active_users=list(self.active_users),
            fpl_context=self.fpl_context.to_context() if self.fpl_context else None,
        )


class CommentaryRequestPayload(_Payload):
    commentator_id: str | None = Field(default=None, alias="commentatorId")
    context: CommentaryContextPayload

    @model_validator(mode="before")
    @classmethod
    def _accept_flat_body(cls, data: Any) -> Any:
        if isinstance(data, dict) and not isinstance(data.get("context"), dict):
            return {"commentatorId": data.get("commentatorId"), "context": data}
        return data

    def to_request(self) -> CommentaryRequest:
        return CommentaryRequest(persona_id=self.commentator_id or "", event=self.context.to_event())


class CommentatorOut(BaseModel):
    id: str
    name: str
    displayName: str
    style: str


class CommentatorListing(CommentatorOut):
    description: str


class CommentaryResponseOut(BaseModel):
    success: bool
    commentary: str
    commentator: CommentatorOut
    context: dict[str, Any]
    timestamp: str


def _pipeline(request: Request) -> CommentaryPipeline:
    return request.app.state.pipeline


@router.post("/commentator", response_model=CommentaryResponseOut)
async def create_commentary(payload: CommentaryRequestPayload, request: Request) -> Any:
    """Generate one line of commentary for a match event."""
    commentary_request = payload.to_request()
    try:
        response = await _pipeline(request).generate(commentary_request)
    except InvalidRequest as exc:
        logger.info("[commentary] POST /api/commentator -> 400: %s", exc)
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid commentary request", "details": str(exc)},
        )
    logger.info(
        "[commentary] POST /api/commentator -> 200 persona=%s fallback=%s",
        response.persona.id,
        response.trace.used_fallback,
    )
    return response.to_dict()


@router.get("/commentators", response_model=list[CommentatorListing])
def list_commentators(request: Request) -> list[CommentatorListing]:
    """Persona catalog for commentator selection."""
    return [
        CommentatorListing(
            id=p.id,
            name=p.name,
            displayName=p.display_name,
            style=p.style,
            description=p.description,
        )
        for p in _pipeline(request).registry.list()
    ]
