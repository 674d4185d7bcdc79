"""Breaking points — one-time, permanent personality shifts.

Each catalog entry maps a gameplay event type to a modifier effect, a new
trait, an optional stage change and a line the NPC says. Entries are checked
in catalog order and the first one whose trigger matches and whose trait
the NPC does not already hold fires. At most one fires per call, and none
can fire twice for the same NPC.
"""

from __future__ import annotations

import logging
from typing import Any

from npc_social.events import EventBus
from npc_social.models import BreakingPoint, BreakingPointResult
from npc_social.personality import PersonalityStore

logger = logging.getLogger(__name__)

BREAKING_POINTS: list[BreakingPoint] = [
    BreakingPoint(
        name="saved_life",
        trigger="saved_from_cops",
        effect={"trust": 0.5, "warmth": 0.4},
        new_trait="loyal_forever",
        message="You saved my life. I owe you everything.",
    ),
    BreakingPoint(
        name="betrayed",
        trigger="deal_betrayed",
        effect={"trust": -0.8, "warmth": -0.6, "aggression": 0.5},
        new_trait="bitter",
        stage_change="enemy",
        message="I trusted you. Never again.",
    ),
    BreakingPoint(
        name="big_score_together",
        trigger="big_score",
        effect={"trust": 0.3, "warmth": 0.2},
        new_trait="bonded",
        message="After what we pulled off... we're family now.",
    ),
    BreakingPoint(
        name="helped_in_crisis",
        trigger="helped_escape",
        effect={"trust": 0.4, "warmth": 0.3},
        new_trait="grateful",
        message="You came through when it mattered. I won't forget.",
    ),
    BreakingPoint(
        name="proven_unreliable",
        trigger="multiple_failures",
        effect={"trust": -0.3, "patience": -0.4},
        new_trait="doubtful",
        message="Look, I like you... but you keep dropping the ball.",
    ),
    BreakingPoint(
        name="shown_generosity",
        trigger="shared_profits",
        effect={"warmth": 0.3, "trust": 0.2},
        new_trait="appreciative",
        message="You didn't have to share that. That means something.",
    ),
]


class BreakingPointEngine:
    def __init__(
        self,
        store: PersonalityStore,
        events: EventBus,
        catalog: list[BreakingPoint] | None = None,
    ) -> None:
        self._store = store
        self._events = events
        self._catalog = list(BREAKING_POINTS if catalog is None else catalog)

    @property
    def catalog(self) -> list[BreakingPoint]:
        return list(self._catalog)

    def check(
        self, npc_id: str, event_type: str, context: dict[str, Any] | None = None
    ) -> BreakingPointResult:
        """Fire the first unclaimed breaking point for event_type, if any.

        `context` is accepted for callers that pass event details; the
        catalog rules do not currently read it.
        """
        rec = self._store.record(npc_id)
        for bp in self._catalog:
            if bp.trigger != event_type or bp.new_trait in rec.traits:
                continue

            self._store.apply_modifiers(npc_id, bp.effect)
            self._store.add_trait(npc_id, bp.new_trait)
            if bp.stage_change:
                self._store.set_stage(npc_id, bp.stage_change)
            self._store.log_evolution(npc_id, "breaking_point", {
                "name": bp.name,
                "trait": bp.new_trait,
                "message": bp.message,
            })
            self._store.persist()
            logger.debug("Breaking point %s fired for %s", bp.name, npc_id)
            self._events.publish("breaking_point", {
                "npc_id": npc_id,
                "breaking_point": bp.name,
                "message": bp.message,
            })
            return BreakingPointResult(occurred=True, name=bp.name, message=bp.message)

        return BreakingPointResult(occurred=False)
