"""Mood controller — temporary emotional overlay with lazy expiry.

There is no timer. An expired mood is collapsed to neutral the next time it
is read, and the collapse is written back to the record.
"""

from __future__ import annotations

from typing import Callable

from npc_social.config import EngineConfig
from npc_social.models import Mood, MoodName
from npc_social.personality import PersonalityStore, clamp


class MoodController:
    def __init__(
        self,
        store: PersonalityStore,
        config: EngineConfig,
        clock: Callable[[], int],
    ) -> None:
        self._store = store
        self._config = config
        self._clock = clock

    def set_mood(
        self,
        npc_id: str,
        mood: MoodName,
        intensity: float | None = None,
        duration_ms: int | None = None,
    ) -> Mood:
        if intensity is None:
            intensity = self._config.mood_default_intensity
        if duration_ms is None:
            duration_ms = self._config.mood_default_duration_ms
        rec = self._store.record(npc_id)
        rec.mood = Mood(
            current=mood,
            intensity=clamp(intensity, 0.0, 1.0),
            expires_at=self._clock() + duration_ms,
        )
        self._store.persist()
        return rec.mood.model_copy()

    def clear_mood(self, npc_id: str) -> Mood:
        """Explicitly return the NPC to neutral (needed for non-expiring moods)."""
        rec = self._store.record(npc_id)
        rec.mood = self._neutral()
        self._store.persist()
        return rec.mood.model_copy()

    def get_mood(self, npc_id: str) -> Mood:
        rec = self._store.record(npc_id)
        if rec.mood.expires_at is not None and self._clock() > rec.mood.expires_at:
            rec.mood = self._neutral()
        return rec.mood.model_copy()

    def _neutral(self) -> Mood:
        return Mood(current="neutral", intensity=self._config.neutral_mood_intensity, expires_at=None)
