"""Core domain models.

Every component of the social engine reads and writes these types.
Pydantic is used for validation and serialisation at every data boundary;
persisted models ignore unknown fields and default missing ones so that a
blob written by another version of the engine still loads.

Timestamps are integer epoch milliseconds throughout.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Personality = Literal[
    "professional",
    "friendly",
    "aggressive",
    "cautious",
    "charismatic",
    "cold",
    "loyal",
    "opportunistic",
    "mentor",
    "unpredictable",
]

Stage = Literal[
    "stranger",
    "acquaintance",
    "business",
    "friend",
    "trusted",
    "enemy",
]

MoodName = Literal[
    "neutral",
    "happy",
    "angry",
    "suspicious",
    "grateful",
    "betrayed",
    "impressed",
    "disappointed",
]

ConversationType = Literal[
    "interrupt",
    "debate",
    "chain",
    "gossip",
    "faction",
    "agreement",
    "warning",
]

Topic = Literal[
    "money",
    "police",
    "territory",
    "loyalty",
    "deals",
    "reputation",
    "risk",
    "player_actions",
]

CrossReferenceType = Literal["agreement", "disagreement", "warning"]

Sentiment = Literal["positive", "negative", "neutral"]

ModifierAxis = Literal["warmth", "trust", "aggression", "patience", "formality", "openness"]

MODIFIER_AXES: tuple[str, ...] = ("warmth", "trust", "aggression", "patience", "formality", "openness")


class _Persisted(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Personality
# ---------------------------------------------------------------------------

class Modifiers(_Persisted):
    """Six independent personality axes, each within [-1, 1]."""

    warmth: float = Field(default=0.0, ge=-1, le=1)
    trust: float = Field(default=0.0, ge=-1, le=1)
    aggression: float = Field(default=0.0, ge=-1, le=1)
    patience: float = Field(default=0.0, ge=-1, le=1)
    formality: float = Field(default=0.0, ge=-1, le=1)
    openness: float = Field(default=0.0, ge=-1, le=1)


class Mood(_Persisted):
    current: MoodName = "neutral"
    intensity: float = Field(default=0.5, ge=0, le=1)
    expires_at: int | None = None  # None: never self-expires


class EvolutionEntry(_Persisted):
    type: str  # "stage_change" | "breaking_point"
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: int = 0


class PersonalityRecord(_Persisted):
    """Persistent personality state of one NPC.

    Registration facts (name, faction, stances, ...) are embedded here so
    interrupt and role logic can read them without a second registry.
    """

    npc_id: str
    base_personality: Personality = "professional"
    current_personality: Personality = "professional"
    modifiers: Modifiers = Field(default_factory=Modifiers)
    mood: Mood = Field(default_factory=Mood)
    stage: Stage = "stranger"
    traits: list[str] = Field(default_factory=list)
    evolution_log: list[EvolutionEntry] = Field(default_factory=list)  # most recent first
    version: int = 1

    # Registration data
    registered: bool = False
    active: bool = True
    name: str = ""
    faction: str | None = None
    rivals: list[str] = Field(default_factory=list)  # rival faction names
    allies: list[str] = Field(default_factory=list)  # allied npc ids
    stances: dict[str, Annotated[int, Field(ge=-2, le=2)]] = Field(default_factory=dict)
    opinionated: bool = False

    @property
    def display_name(self) -> str:
        return self.name or self.npc_id


class BreakingPoint(BaseModel):
    name: str
    trigger: str
    effect: dict[ModifierAxis, float]
    new_trait: str
    message: str
    stage_change: Stage | None = None


class BreakingPointResult(BaseModel):
    occurred: bool
    name: str | None = None
    message: str | None = None


class PersonalitySummary(BaseModel):
    base: Personality
    current: Personality
    stage: Stage
    mood: MoodName
    traits: list[str]
    warmth: str
    trust: str
    is_enemy: bool


# ---------------------------------------------------------------------------
# Dialogue style
# ---------------------------------------------------------------------------

class StyleSet(BaseModel):
    greetings: list[str]
    affirmative: list[str]
    negative: list[str]
    tone: str


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------

class Exchange(BaseModel):
    role: str
    template: str


class ConversationTemplate(BaseModel):
    topic: Topic
    min_participants: int
    max_participants: int
    exchanges: list[Exchange]

    @property
    def role_names(self) -> list[str]:
        """Distinct roles in declaration order."""
        return list(dict.fromkeys(e.role for e in self.exchanges))


class ConversationMessage(_Persisted):
    npc_id: str
    npc_name: str
    text: str
    role: str
    scheduled_delay_ms: int
    timestamp: int
    delivered: bool = False


class ConversationInstance(_Persisted):
    id: str
    template_name: str
    topic: Topic | None = None
    participants: list[str] = Field(default_factory=list)
    roles: dict[str, str] = Field(default_factory=dict)  # role -> npc_id
    messages: list[ConversationMessage] = Field(default_factory=list)
    started_at: int = 0
    status: Literal["active", "completed"] = "active"


# ---------------------------------------------------------------------------
# Interrupts
# ---------------------------------------------------------------------------

class InterruptDescriptor(BaseModel):
    type: ConversationType
    interrupter: PersonalityRecord
    speaker: PersonalityRecord
    trigger: str
    context: dict[str, Any] = Field(default_factory=dict)


class Interrupt(BaseModel):
    npc_id: str
    npc_name: str
    message: str
    type: ConversationType
    timestamp: int


# ---------------------------------------------------------------------------
# Gossip (memory collaborator shapes)
# ---------------------------------------------------------------------------

class MemorableEvent(BaseModel):
    description: str
    sentiment: Sentiment = "neutral"
    timestamp: int = 0


class NPCMemory(BaseModel):
    memorable_events: list[MemorableEvent] = Field(default_factory=list)  # most recent first


class Gossip(BaseModel):
    source: str
    target: str
    message: str
    sentiment: Sentiment
    timestamp: int


# ---------------------------------------------------------------------------
# Persisted state blob
# ---------------------------------------------------------------------------

STATE_VERSION = 2


class SocialState(_Persisted):
    """The single versioned blob written to durable storage."""

    version: int = STATE_VERSION
    saved_at: int = 0
    personalities: dict[str, PersonalityRecord] = Field(default_factory=dict)
    history: list[ConversationInstance] = Field(default_factory=list)
