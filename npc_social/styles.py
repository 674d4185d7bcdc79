"""Dialogue style resolution, greetings and acceptance rolls.

The style table is sparse: only some (personality, stage) pairs are
authored. Lookup tries, in order:

  (current, stage) -> (current, "stranger") -> (base, stage)
  -> (base, "stranger") -> DEFAULT_STYLE

so callers always get a style.
"""

from __future__ import annotations

import random
from typing import Any

from npc_social.config import EngineConfig
from npc_social.models import MoodName, Personality, Stage, StyleSet
from npc_social.mood import MoodController
from npc_social.personality import PersonalityStore, clamp

StyleKey = tuple[Personality, Stage]

DIALOGUE_STYLES: dict[StyleKey, StyleSet] = {
    ("professional", "stranger"): StyleSet(
        greetings=["Let's talk business.", "What do you need?", "Time is money."],
        affirmative=["Done.", "Agreed.", "Terms accepted."],
        negative=["No deal.", "That doesn't work.", "Pass."],
        tone="formal",
    ),
    ("professional", "friend"): StyleSet(
        greetings=["Good to see you again.", "Ready to make money?", "What's the opportunity?"],
        affirmative=["Count me in.", "Let's do it.", "You got it."],
        negative=["Can't do that one.", "Not this time.", "Have to pass."],
        tone="warm_professional",
    ),
    ("friendly", "stranger"): StyleSet(
        greetings=["Hey, new face!", "Haven't seen you around.", "What brings you by?"],
        affirmative=["Sure thing!", "Sounds good!", "I'm in!"],
        negative=["Nah, not for me.", "Gonna have to pass.", "Maybe next time."],
        tone="casual",
    ),
    ("friendly", "friend"): StyleSet(
        greetings=["My favorite person!", "Yooo!", "What's good, fam?"],
        affirmative=["Always, homie.", "You know I got you.", "Say less."],
        negative=["Love you but no.", "Can't do it, fam.", "This one's not me."],
        tone="intimate",
    ),
    ("aggressive", "stranger"): StyleSet(
        greetings=["Who the hell are you?", "What do you want?", "Make it quick."],
        affirmative=["Fine.", "Whatever.", "Just get it done."],
        negative=["Get lost.", "Not happening.", "Are you stupid?"],
        tone="hostile",
    ),
    ("aggressive", "enemy"): StyleSet(
        greetings=["You've got nerve showing up.", "What do you want, traitor?", "I should kill you."],
        affirmative=["Against my better judgment.", "This changes nothing.", "Don't mistake this for forgiveness."],
        negative=["Rot in hell.", "Never.", "Get out of my sight."],
        tone="threatening",
    ),
    ("cold", "stranger"): StyleSet(
        greetings=["...", "State your business.", "Yes?"],
        affirmative=["Acceptable.", "Proceed.", "Very well."],
        negative=["No.", "Declined.", "Unacceptable."],
        tone="detached",
    ),
    ("cold", "trusted"): StyleSet(
        greetings=["You're here.", "I expected you.", "Finally."],
        affirmative=["As you wish.", "It will be done.", "Of course."],
        negative=["Even I have limits.", "That's not possible.", "Choose differently."],
        tone="reserved_warm",
    ),
}

DEFAULT_STYLE = DIALOGUE_STYLES[("professional", "stranger")]

ANGRY_GREETING = "What do you want?"
HAPPY_GREETING = "Hey! Great to see you!"
BETRAYED_GREETING = "..."

MOOD_ACCEPT_DELTAS: dict[MoodName, float] = {
    "happy": 0.2,
    "angry": -0.3,
    "grateful": 0.3,
    "suspicious": -0.2,
    "betrayed": -0.5,
}

STAGE_ACCEPT_DELTAS: dict[Stage, float] = {
    "trusted": 0.3,
    "friend": 0.2,
    "enemy": -0.4,
}


def style_lookup_chain(current: Personality, base: Personality, stage: Stage) -> list[StyleKey]:
    return [
        (current, stage),
        (current, "stranger"),
        (base, stage),
        (base, "stranger"),
    ]


def resolve_style(
    current: Personality,
    base: Personality,
    stage: Stage,
    table: dict[StyleKey, StyleSet] = DIALOGUE_STYLES,
) -> StyleSet:
    for key in style_lookup_chain(current, base, stage):
        style = table.get(key)
        if style is not None:
            return style
    return DEFAULT_STYLE


class DialogueStyleResolver:
    def __init__(
        self,
        store: PersonalityStore,
        moods: MoodController,
        config: EngineConfig,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._moods = moods
        self._config = config
        self._rng = rng or random.Random()

    def get_dialogue_style(self, npc_id: str) -> StyleSet:
        rec = self._store.record(npc_id)
        return resolve_style(rec.current_personality, rec.base_personality, rec.stage)

    def get_greeting(self, npc_id: str) -> str:
        style = self.get_dialogue_style(npc_id)
        mood = self._moods.get_mood(npc_id)

        if mood.current == "angry" and mood.intensity > 0.7:
            return ANGRY_GREETING
        if mood.current == "happy" and mood.intensity > 0.7:
            return HAPPY_GREETING
        if mood.current == "betrayed":
            return BETRAYED_GREETING

        return self._rng.choice(style.greetings)

    def get_response(self, npc_id: str, affirmative: bool) -> str:
        style = self.get_dialogue_style(npc_id)
        return self._rng.choice(style.affirmative if affirmative else style.negative)

    def acceptance_chance(self, npc_id: str, context: dict[str, Any] | None = None) -> float:
        """Clamped probability that the NPC agrees to a request."""
        context = context or {}
        rec = self._store.record(npc_id)
        mood = self._moods.get_mood(npc_id)

        chance = 0.5
        chance += rec.modifiers.trust * 0.2
        chance += rec.modifiers.warmth * 0.1
        chance += MOOD_ACCEPT_DELTAS.get(mood.current, 0.0)
        chance += STAGE_ACCEPT_DELTAS.get(rec.stage, 0.0)

        if (context.get("risk_level") or 0) > 0.7:
            chance -= 0.2
        if (context.get("value_to_npc") or 0) > 1000:
            chance += 0.1

        return clamp(chance, self._config.accept_min_chance, self._config.accept_max_chance)

    def would_accept(self, npc_id: str, context: dict[str, Any] | None = None) -> bool:
        return self._rng.random() < self.acceptance_chance(npc_id, context)
