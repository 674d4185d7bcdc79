"""Interrupt engine — other NPCs cutting in while someone is speaking.

Scan order: every other active registered NPC in registration order
(outer), every trigger in catalog order (inner). Each trigger whose
condition holds gets one random roll against its probability; a failed
roll moves on to the next trigger. The first roll that succeeds wins and
the scan stops.

Earlier-registered NPCs therefore get the first chance to interrupt. That
bias is kept as-is.

Speech context keys read by the triggers:
  topic         str   one of models.Topic
  mentions_npc  bool  the line names another NPC
  about_player  bool  the line is about the player
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Callable

from npc_social.events import EventBus
from npc_social.models import ConversationType, Interrupt, InterruptDescriptor, PersonalityRecord
from npc_social.personality import PersonalityStore

logger = logging.getLogger(__name__)

Condition = Callable[[PersonalityRecord, PersonalityRecord, dict[str, Any]], bool]


# ---------------------------------------------------------------------------
# Relationship predicates
# ---------------------------------------------------------------------------

def is_rival(a: PersonalityRecord, b: PersonalityRecord) -> bool:
    """a lists b's faction as a rival. Not symmetric."""
    return bool(a.faction and b.faction and b.faction in a.rivals)


def has_opposing_view(a: PersonalityRecord, b: PersonalityRecord, topic: str) -> bool:
    return abs(a.stances.get(topic, 0) - b.stances.get(topic, 0)) >= 2


def has_friendly_relation(a: PersonalityRecord, b: PersonalityRecord) -> bool:
    return b.npc_id in a.allies or a.npc_id in b.allies


# ---------------------------------------------------------------------------
# Trigger catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InterruptTrigger:
    name: str
    condition: Condition
    probability: float
    type: ConversationType


INTERRUPT_TRIGGERS: list[InterruptTrigger] = [
    InterruptTrigger(
        name="mention_rival",
        condition=lambda speaker, listener, ctx: bool(ctx.get("mentions_npc")) and is_rival(speaker, listener),
        probability=0.7,
        type="faction",
    ),
    InterruptTrigger(
        name="money_disagreement",
        condition=lambda speaker, listener, ctx: (
            ctx.get("topic") == "money" and has_opposing_view(speaker, listener, "money")
        ),
        probability=0.5,
        type="debate",
    ),
    InterruptTrigger(
        name="loyalty_question",
        condition=lambda speaker, listener, ctx: ctx.get("topic") == "loyalty" and listener.opinionated,
        probability=0.6,
        type="interrupt",
    ),
    InterruptTrigger(
        name="support_friend",
        condition=lambda speaker, listener, ctx: (
            bool(ctx.get("about_player")) and has_friendly_relation(speaker, listener)
        ),
        probability=0.4,
        type="agreement",
    ),
]


# ---------------------------------------------------------------------------
# Message phrase sets
# ---------------------------------------------------------------------------

FACTION_CONFLICT_LINES = [
    "Hold up, {speaker}. Don't speak for all of us.",
    "{speaker}, you know that's not how we see it.",
    "Careful, {speaker}. You're crossing lines.",
    "That's rich coming from {speaker}'s crew.",
    "{speaker}, stay in your lane.",
]

DEBATE_LINES = [
    "I disagree with {speaker} on {topic}.",
    "That's one way to look at it, {speaker}. Here's another.",
    "{speaker}'s got it wrong.",
    "No offense, {speaker}, but that's not how it works.",
]

AGREEMENT_LINES = [
    "{speaker}'s right about this.",
    "I'm with {speaker} on this one.",
    "Listen to {speaker}. They know what they're talking about.",
    "{speaker} gets it.",
]

GENERIC_LINES = [
    "Wait, let me say something.",
    "Hold on a second.",
    "I need to jump in here.",
    "Before we continue...",
    "Actually...",
]


class InterruptEngine:
    def __init__(
        self,
        store: PersonalityStore,
        events: EventBus,
        clock: Callable[[], int],
        rng: random.Random | None = None,
        triggers: list[InterruptTrigger] | None = None,
    ) -> None:
        self._store = store
        self._events = events
        self._clock = clock
        self._rng = rng or random.Random()
        self._triggers = list(INTERRUPT_TRIGGERS if triggers is None else triggers)
        self._pending: list[Interrupt] = []

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def check_for_interrupt(
        self, speaker_id: str, context: dict[str, Any] | None = None
    ) -> InterruptDescriptor | None:
        context = dict(context or {})
        if speaker_id not in self._store:
            return None
        speaker = self._store.record(speaker_id)
        if not speaker.registered:
            return None

        for listener in self._store.registered():
            if listener.npc_id == speaker_id or not listener.active:
                continue
            for trigger in self._triggers:
                if not trigger.condition(speaker, listener, context):
                    continue
                if self._rng.random() < trigger.probability:
                    logger.debug(
                        "%s interrupts %s via %s", listener.npc_id, speaker_id, trigger.name
                    )
                    return InterruptDescriptor(
                        type=trigger.type,
                        interrupter=listener.model_copy(deep=True),
                        speaker=speaker.model_copy(deep=True),
                        trigger=trigger.name,
                        context=context,
                    )
        return None

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_interrupt(self, descriptor: InterruptDescriptor) -> Interrupt:
        interrupter = descriptor.interrupter
        speaker_name = descriptor.speaker.display_name
        topic = descriptor.context.get("topic") or "this"

        if descriptor.type == "faction":
            lines = FACTION_CONFLICT_LINES
        elif descriptor.type == "debate":
            lines = DEBATE_LINES
        elif descriptor.type == "agreement":
            lines = AGREEMENT_LINES
        else:
            if descriptor.type != "interrupt":
                logger.warning("Unknown interrupt type %r, using generic lines", descriptor.type)
            lines = GENERIC_LINES

        message = self._rng.choice(lines).format(speaker=speaker_name, topic=topic)
        return Interrupt(
            npc_id=interrupter.npc_id,
            npc_name=interrupter.display_name,
            message=message,
            type=descriptor.type,
            timestamp=self._clock(),
        )

    # ------------------------------------------------------------------
    # Pending queue
    # ------------------------------------------------------------------

    def queue_interrupt(self, interrupt: Interrupt) -> None:
        self._pending.append(interrupt)
        self._events.publish("interrupt_queued", interrupt)

    def get_pending_interrupts(self) -> list[Interrupt]:
        """Drain and return queued interrupts, oldest first."""
        pending, self._pending = self._pending, []
        return pending

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def clear(self) -> None:
        self._pending = []
