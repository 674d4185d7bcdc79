"""Pydantic request models for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from npc_social.models import CrossReferenceType, MoodName, Personality, Stage


class RegisterNPC(BaseModel):
    id: str
    name: str | None = None
    personality: Personality | None = None
    faction: str | None = None
    stances: dict[str, int] = Field(default_factory=dict)
    allies: list[str] = Field(default_factory=list)
    rivals: list[str] = Field(default_factory=list)
    opinionated: bool = False


class SetArchetype(BaseModel):
    archetype: Personality


class SetStage(BaseModel):
    stage: Stage


class SetActive(BaseModel):
    active: bool


class ApplyModifiers(BaseModel):
    warmth: float | None = None
    trust: float | None = None
    aggression: float | None = None
    patience: float | None = None
    formality: float | None = None
    openness: float | None = None


class SetMood(BaseModel):
    mood: MoodName
    intensity: float | None = None
    duration_ms: int | None = None


class GameEvent(BaseModel):
    event_type: str
    context: dict[str, Any] = Field(default_factory=dict)


class AcceptRequest(BaseModel):
    risk_level: float | None = None
    value_to_npc: float | None = None


class SpeechContext(BaseModel):
    topic: str | None = None
    mentions_npc: bool = False
    about_player: bool = False
    queue: bool = False  # also push the generated interrupt onto the pending queue


class CrossReferenceBody(BaseModel):
    referenced_id: str
    type: CrossReferenceType = "agreement"


class StartConversation(BaseModel):
    template: str
    participants: list[str]
    context: dict[str, Any] = Field(default_factory=dict)
