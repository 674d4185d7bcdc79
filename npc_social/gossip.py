"""Gossip and cross-references between NPCs.

The engine keeps no copy of what NPCs have witnessed. Gossip reads the
source NPC's most recent memorable event from a MemoryProvider and writes
the heard gossip back through it; that write is how information spreads
through the population.
"""

from __future__ import annotations

import random
from typing import Any, Callable, Protocol

from npc_social.models import CrossReferenceType, Gossip, NPCMemory
from npc_social.personality import PersonalityStore


class MemoryProvider(Protocol):
    def get_memory(self, npc_id: str) -> NPCMemory: ...
    def add_gossip(self, target_id: str, source_id: str, description: str) -> None: ...


CROSS_REFERENCES: dict[CrossReferenceType, list[str]] = {
    "agreement": [
        "Like {npc} said...",
        "{npc} was right about this.",
        "I was talking to {npc} and they said the same thing.",
        "{npc} told me you'd say that.",
    ],
    "disagreement": [
        "Don't listen to {npc}, they're wrong.",
        "{npc} doesn't know what they're talking about.",
        "Unlike what {npc} thinks...",
        "{npc} and I don't see eye to eye on this.",
    ],
    "warning": [
        "Watch out for {npc}. They're not happy.",
        "{npc} was asking about you. Careful.",
        "I heard {npc} is planning something.",
        "Between us? {npc} can't be trusted right now.",
    ],
}

GOSSIP_LINES = {
    "positive": '{source} to {target}: "That player? They {event}. Not bad."',
    "negative": '{source} to {target}: "Watch out for that one. They {event}."',
    "neutral": '{source} to {target}: "Heard about that player? {event}."',
}


class GossipGenerator:
    def __init__(
        self,
        store: PersonalityStore,
        clock: Callable[[], int],
        memory: MemoryProvider | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._memory = memory
        self._rng = rng or random.Random()

    def _known(self, npc_id: str) -> bool:
        return npc_id in self._store and self._store.record(npc_id).registered

    def generate_gossip(
        self, source_id: str, target_id: str, context: dict[str, Any] | None = None
    ) -> Gossip | None:
        """Pass the source's latest memorable event to the target.

        Returns None when either NPC is unregistered, no memory provider is
        configured, or the source remembers nothing.
        """
        if self._memory is None or not self._known(source_id) or not self._known(target_id):
            return None

        events = self._memory.get_memory(source_id).memorable_events
        if not events:
            return None
        event = events[0]

        message = GOSSIP_LINES.get(event.sentiment, GOSSIP_LINES["neutral"]).format(
            source=self._store.record(source_id).display_name,
            target=self._store.record(target_id).display_name,
            event=event.description,
        )
        self._memory.add_gossip(target_id, source_id, event.description)

        return Gossip(
            source=source_id,
            target=target_id,
            message=message,
            sentiment=event.sentiment,
            timestamp=self._clock(),
        )

    def generate_cross_reference(
        self, speaker_id: str, referenced_id: str, type: CrossReferenceType = "agreement"
    ) -> str | None:
        if not self._known(referenced_id):
            return None
        lines = CROSS_REFERENCES.get(type, CROSS_REFERENCES["agreement"])
        return self._rng.choice(lines).format(npc=self._store.record(referenced_id).display_name)
