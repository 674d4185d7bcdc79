"""SocialEngine — the per-session service object.

One engine owns the personality map, the active and completed
conversations and the pending interrupt queue. Construct it once per game
session, call initialize() once, and hand it to every caller; there is no
module-level state.

All mutating operations end in a synchronous save through StatePersistence.
Nothing here raises for missing or malformed gameplay input: unknown
templates, too few participants and missing memories come back as None or
BreakingPointResult(occurred=False).

Listener events: stage_change, breaking_point, conversation_started,
conversation_ended, interrupt_queued.
"""

from __future__ import annotations

import logging
import random
import time
from pathlib import Path
from typing import Any, Callable, Mapping

from npc_social.breaking_points import BreakingPointEngine
from npc_social.config import EngineConfig, load_config
from npc_social.conversations import ConversationOrchestrator
from npc_social.events import EventBus, Listener
from npc_social.gossip import GossipGenerator, MemoryProvider
from npc_social.interrupts import InterruptEngine
from npc_social.models import (
    BreakingPointResult,
    ConversationInstance,
    CrossReferenceType,
    Gossip,
    Interrupt,
    InterruptDescriptor,
    Modifiers,
    Mood,
    MoodName,
    Personality,
    PersonalityRecord,
    PersonalitySummary,
    SocialState,
    Stage,
    StyleSet,
)
from npc_social.mood import MoodController
from npc_social.personality import DEFAULT_ARCHETYPE, PersonalityStore
from npc_social.storage import JsonFileStorage, KeyValueStore, MemoryStorage, StatePersistence
from npc_social.styles import DialogueStyleResolver

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class SocialEngine:
    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        config: EngineConfig | None = None,
        memory: MemoryProvider | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.config = config or EngineConfig()
        self.events = EventBus()
        self._clock = clock
        rng = rng or random.Random()
        self._persistence = StatePersistence(store or MemoryStorage(), self.config.storage_key, clock)
        self._initialized = False

        self.personalities = PersonalityStore(self.config, self.events, clock, persist=self.save)
        self.moods = MoodController(self.personalities, self.config, clock)
        self.breaking_points = BreakingPointEngine(self.personalities, self.events)
        self.styles = DialogueStyleResolver(self.personalities, self.moods, self.config, rng)
        self.interrupts = InterruptEngine(self.personalities, self.events, clock, rng)
        self.conversations = ConversationOrchestrator(
            self.personalities, self.events, self.config, clock, rng, persist=self.save
        )
        self.gossip = GossipGenerator(self.personalities, clock, memory, rng)

    @classmethod
    def from_data_dir(cls, data_dir: Path, **kwargs: Any) -> SocialEngine:
        """Engine backed by JSON files (and optional config.json) in data_dir."""
        kwargs.setdefault("config", load_config(data_dir))
        return cls(JsonFileStorage(data_dir), **kwargs)

    # ------------------------------------------------------------------
    # Lifecycle and persistence
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load saved state once. Later calls are no-ops."""
        if self._initialized:
            return
        state = self._persistence.load()
        self.personalities.load(state.personalities)
        self.conversations.load_history(state.history)
        self._initialized = True
        logger.info("Initialized with %d NPC personalities", len(self.personalities))

    def save(self) -> bool:
        state = SocialState(
            personalities=self.personalities.snapshot(),
            history=self.conversations.history,
        )
        return self._persistence.save(state)

    def reset(self) -> None:
        """Clear every NPC, conversation and queued interrupt, in memory and on disk."""
        self.personalities.clear()
        self.conversations.clear()
        self.interrupts.clear()
        self._persistence.clear()
        logger.info("All personalities and conversations cleared")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.events.subscribe(listener)

    # ------------------------------------------------------------------
    # Registration and personality store
    # ------------------------------------------------------------------

    def register_npc(
        self,
        npc_id: str,
        *,
        name: str | None = None,
        personality: Personality | None = None,
        faction: str | None = None,
        stances: Mapping[str, int] | None = None,
        allies: list[str] | None = None,
        rivals: list[str] | None = None,
        opinionated: bool = False,
    ) -> PersonalityRecord:
        return self.personalities.register(
            npc_id,
            name=name,
            personality=personality,
            faction=faction,
            stances=stances,
            allies=allies,
            rivals=rivals,
            opinionated=opinionated,
        )

    def get_personality(self, npc_id: str, base: Personality = DEFAULT_ARCHETYPE) -> PersonalityRecord:
        return self.personalities.get(npc_id, base)

    def set_base_archetype(self, npc_id: str, archetype: Personality) -> None:
        self.personalities.set_base_archetype(npc_id, archetype)

    def set_stage(self, npc_id: str, stage: Stage) -> None:
        self.personalities.set_stage(npc_id, stage)

    def apply_modifiers(self, npc_id: str, deltas: Mapping[str, float]) -> Modifiers:
        return self.personalities.apply_modifiers(npc_id, deltas)

    def set_active(self, npc_id: str, active: bool) -> None:
        self.personalities.set_active(npc_id, active)

    def get_personality_summary(self, npc_id: str) -> PersonalitySummary:
        return self.personalities.summary(npc_id, self.moods.get_mood(npc_id).current)

    # ------------------------------------------------------------------
    # Mood
    # ------------------------------------------------------------------

    def set_mood(
        self,
        npc_id: str,
        mood: MoodName,
        intensity: float | None = None,
        duration_ms: int | None = None,
    ) -> Mood:
        return self.moods.set_mood(npc_id, mood, intensity, duration_ms)

    def get_mood(self, npc_id: str) -> Mood:
        return self.moods.get_mood(npc_id)

    def clear_mood(self, npc_id: str) -> Mood:
        return self.moods.clear_mood(npc_id)

    # ------------------------------------------------------------------
    # Breaking points
    # ------------------------------------------------------------------

    def check_breaking_point(
        self, npc_id: str, event_type: str, context: dict[str, Any] | None = None
    ) -> BreakingPointResult:
        return self.breaking_points.check(npc_id, event_type, context)

    # ------------------------------------------------------------------
    # Dialogue style
    # ------------------------------------------------------------------

    def get_dialogue_style(self, npc_id: str) -> StyleSet:
        return self.styles.get_dialogue_style(npc_id)

    def get_greeting(self, npc_id: str) -> str:
        return self.styles.get_greeting(npc_id)

    def get_response(self, npc_id: str, affirmative: bool) -> str:
        return self.styles.get_response(npc_id, affirmative)

    def would_accept(self, npc_id: str, context: dict[str, Any] | None = None) -> bool:
        return self.styles.would_accept(npc_id, context)

    # ------------------------------------------------------------------
    # Interrupts
    # ------------------------------------------------------------------

    def check_for_interrupt(
        self, speaker_id: str, context: dict[str, Any] | None = None
    ) -> InterruptDescriptor | None:
        return self.interrupts.check_for_interrupt(speaker_id, context)

    def generate_interrupt(self, descriptor: InterruptDescriptor) -> Interrupt:
        return self.interrupts.generate_interrupt(descriptor)

    def queue_interrupt(self, interrupt: Interrupt) -> None:
        self.interrupts.queue_interrupt(interrupt)

    def get_pending_interrupts(self) -> list[Interrupt]:
        return self.interrupts.get_pending_interrupts()

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def start_conversation(
        self,
        template_name: str,
        participant_ids: list[str],
        context: dict[str, Any] | None = None,
    ) -> ConversationInstance | None:
        return self.conversations.start_conversation(template_name, participant_ids, context)

    def mark_message_delivered(self, conversation_id: str, index: int) -> ConversationInstance | None:
        return self.conversations.mark_message_delivered(conversation_id, index)

    # ------------------------------------------------------------------
    # Gossip and cross-references
    # ------------------------------------------------------------------

    def generate_gossip(
        self, source_id: str, target_id: str, context: dict[str, Any] | None = None
    ) -> Gossip | None:
        return self.gossip.generate_gossip(source_id, target_id, context)

    def generate_cross_reference(
        self, speaker_id: str, referenced_id: str, type: CrossReferenceType = "agreement"
    ) -> str | None:
        return self.gossip.generate_cross_reference(speaker_id, referenced_id, type)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_stats(self) -> dict[str, int]:
        records = list(self.personalities)
        return {
            "npc_count": len(records),
            "registered_npcs": sum(1 for r in records if r.registered),
            "total_traits": sum(len(r.traits) for r in records),
            "evolution_events": sum(len(r.evolution_log) for r in records),
            "active_conversations": len(self.conversations.active),
            "historical_conversations": len(self.conversations.history),
            "pending_interrupts": self.interrupts.pending_count,
        }
