"""Personality store — per-NPC records, registration, modifiers and stage.

Records are created lazily on first access with archetype defaults and are
never deleted individually; only SocialEngine.reset() clears them.

current_personality is derived, never set by callers. resolve_personality()
recomputes it after every modifier, stage or archetype change with a fixed
top-to-bottom, last-write-wins rule order:

  1. start from base_personality
  2. warmth > 0.5           -> friendly
     else warmth < -0.5     -> cold
  3. aggression > 0.6       -> aggressive
  4. trust > 0.6 and warmth > 0.3 -> loyal
  5. stage == enemy         -> aggressive
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Mapping

from npc_social.config import EngineConfig
from npc_social.events import EventBus
from npc_social.models import (
    MODIFIER_AXES,
    EvolutionEntry,
    Modifiers,
    Personality,
    PersonalityRecord,
    PersonalitySummary,
    Stage,
)

logger = logging.getLogger(__name__)

DEFAULT_ARCHETYPE: Personality = "professional"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def resolve_personality(base: Personality, modifiers: Modifiers, stage: Stage) -> Personality:
    current = base

    if modifiers.warmth > 0.5:
        current = "friendly"
    elif modifiers.warmth < -0.5:
        current = "cold"

    if modifiers.aggression > 0.6:
        current = "aggressive"

    if modifiers.trust > 0.6 and modifiers.warmth > 0.3:
        current = "loyal"

    if stage == "enemy":
        current = "aggressive"

    return current


def modifier_to_text(value: float) -> str:
    if value > 0.6:
        return "very high"
    if value > 0.3:
        return "high"
    if value > -0.3:
        return "neutral"
    if value > -0.6:
        return "low"
    return "very low"


class PersonalityStore:
    def __init__(
        self,
        config: EngineConfig,
        events: EventBus,
        clock: Callable[[], int],
        persist: Callable[[], None] | None = None,
    ) -> None:
        self._config = config
        self._events = events
        self._clock = clock
        self._persist = persist or (lambda: None)
        self._records: dict[str, PersonalityRecord] = {}

    # ------------------------------------------------------------------
    # Map access
    # ------------------------------------------------------------------

    def load(self, records: Mapping[str, PersonalityRecord]) -> None:
        self._records = dict(records)
        for rec in self._records.values():
            self._recompute(rec)

    def snapshot(self) -> dict[str, PersonalityRecord]:
        return {k: r.model_copy(deep=True) for k, r in self._records.items()}

    def clear(self) -> None:
        self._records = {}

    def persist(self) -> None:
        self._persist()

    def __contains__(self, npc_id: object) -> bool:
        return npc_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PersonalityRecord]:
        return iter(self._records.values())

    def record(self, npc_id: str, base: Personality = DEFAULT_ARCHETYPE) -> PersonalityRecord:
        """Live record for internal use; created with defaults if absent."""
        rec = self._records.get(npc_id)
        if rec is None:
            rec = PersonalityRecord(npc_id=npc_id, base_personality=base, current_personality=base)
            self._records[npc_id] = rec
        return rec

    def get(self, npc_id: str, base: Personality = DEFAULT_ARCHETYPE) -> PersonalityRecord:
        """Return a copy of the NPC's record, creating it if needed."""
        return self.record(npc_id, base).model_copy(deep=True)

    def registered(self) -> list[PersonalityRecord]:
        """Registered NPCs in registration order."""
        return [r for r in self._records.values() if r.registered]

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
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
        rec = self.record(npc_id, personality or DEFAULT_ARCHETYPE)
        rec.registered = True
        rec.active = True
        rec.name = name or npc_id
        if personality is not None:
            rec.base_personality = personality
        rec.faction = faction
        rec.stances = {topic: int(clamp(v, -2, 2)) for topic, v in (stances or {}).items()}
        rec.allies = list(allies or [])
        rec.rivals = list(rivals or [])
        rec.opinionated = opinionated
        self._recompute(rec)
        self._persist()
        return rec.model_copy(deep=True)

    def set_active(self, npc_id: str, active: bool) -> None:
        self.record(npc_id).active = active
        self._persist()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_base_archetype(self, npc_id: str, archetype: Personality) -> None:
        rec = self.record(npc_id, archetype)
        rec.base_personality = archetype
        self._recompute(rec)
        self._persist()

    def set_stage(self, npc_id: str, stage: Stage) -> None:
        """Set the relationship stage; logs and notifies only on a real change."""
        rec = self.record(npc_id)
        old = rec.stage
        rec.stage = stage
        if old != stage:
            self.log_evolution(npc_id, "stage_change", {"from": old, "to": stage})
            self._events.publish("stage_change", {"npc_id": npc_id, "from": old, "to": stage})
        self._recompute(rec)
        self._persist()

    def apply_modifiers(self, npc_id: str, deltas: Mapping[str, float]) -> Modifiers:
        """Add each delta to its axis and clamp to [-1, 1]. Unknown axes are ignored."""
        rec = self.record(npc_id)
        for axis, delta in deltas.items():
            if axis not in MODIFIER_AXES:
                logger.debug("Ignoring unknown modifier axis %r for %s", axis, npc_id)
                continue
            setattr(rec.modifiers, axis, clamp(getattr(rec.modifiers, axis) + delta, -1.0, 1.0))
        self._recompute(rec)
        self._persist()
        return rec.modifiers.model_copy()

    def add_trait(self, npc_id: str, trait: str) -> bool:
        """Grant a trait once. Returns False if the NPC already had it."""
        rec = self.record(npc_id)
        if trait in rec.traits:
            return False
        rec.traits.append(trait)
        return True

    def log_evolution(self, npc_id: str, event_type: str, details: dict[str, Any]) -> None:
        log = self.record(npc_id).evolution_log
        log.insert(0, EvolutionEntry(type=event_type, details=details, timestamp=self._clock()))
        del log[self._config.evolution_log_limit:]

    def _recompute(self, rec: PersonalityRecord) -> None:
        rec.current_personality = resolve_personality(rec.base_personality, rec.modifiers, rec.stage)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def summary(self, npc_id: str, mood_name: str) -> PersonalitySummary:
        rec = self.record(npc_id)
        return PersonalitySummary(
            base=rec.base_personality,
            current=rec.current_personality,
            stage=rec.stage,
            mood=mood_name,
            traits=list(rec.traits),
            warmth=modifier_to_text(rec.modifiers.warmth),
            trust=modifier_to_text(rec.modifiers.trust),
            is_enemy=rec.stage == "enemy",
        )
