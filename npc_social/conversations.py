"""Conversation orchestrator — template-driven multi-NPC exchanges.

start_conversation() runs in three steps:

  1. Role assignment. Roles are filled in template declaration order. Each
     still-unassigned participant is scored against the role (+2 for a
     personality match, plus uniform [0, 1) jitter) and the best one takes
     it. Once every participant holds a role, remaining roles reuse a
     participant picked at random, so no role is ever left empty.
  2. Message generation. Each exchange line is filled from a flat
     placeholder -> string mapping; unresolved placeholders become the
     configured filler word. Messages carry a staggered scheduled_delay_ms
     for the presentation layer, which owns all timing.
  3. The instance joins the active set and conversation_started is
     published.

A conversation completes only when every message has been marked
delivered. It then moves to the bounded history, is persisted, and
conversation_ended is published. Completed instances are never mutated.
"""

from __future__ import annotations

import logging
import random
import re
import uuid
from typing import Any, Callable, Mapping

from npc_social.config import EngineConfig
from npc_social.events import EventBus
from npc_social.models import (
    ConversationInstance,
    ConversationMessage,
    ConversationTemplate,
    Exchange,
    PersonalityRecord,
)
from npc_social.personality import PersonalityStore

logger = logging.getLogger(__name__)

CONVERSATION_TEMPLATES: dict[str, ConversationTemplate] = {
    "player_reliability": ConversationTemplate(
        topic="loyalty",
        min_participants=2,
        max_participants=3,
        exchanges=[
            Exchange(role="skeptic", template="I don't know about {player}. They've {negative_history}."),
            Exchange(role="defender", template="Come on, {skeptic_name}. {player} came through on {positive_history}."),
            Exchange(role="skeptic", template="That was one time. I've seen too many {player_type} fall apart."),
            Exchange(role="mediator", template="Both of you got points. {player}, prove yourself and we'll see."),
        ],
    ),
    "deal_value_debate": ConversationTemplate(
        topic="money",
        min_participants=2,
        max_participants=2,
        exchanges=[
            Exchange(role="generous", template="The deal's solid. ${amount} is fair for everyone."),
            Exchange(role="greedy", template="Fair? We could get more. {player} doesn't know the real value."),
            Exchange(role="generous", template="Don't be greedy, {greedy_name}. Good partners are worth more than extra cash."),
        ],
    ),
    "territory_dispute": ConversationTemplate(
        topic="territory",
        min_participants=2,
        max_participants=2,
        exchanges=[
            Exchange(role="aggressor", template="Your crew's been pushing into {territory}. That's not smart."),
            Exchange(role="defender", template="We go where the money is, {aggressor_name}. Don't start something."),
            Exchange(role="aggressor", template="Just saying. Keep {player} out of our business."),
        ],
    ),
    "reputation_gossip": ConversationTemplate(
        topic="reputation",
        min_participants=2,
        max_participants=3,
        exchanges=[
            Exchange(role="gossiper", template="You hear what {player} pulled off? {recent_action}."),
            Exchange(role="listener", template="No way. For real?"),
            Exchange(role="gossiper", template="Dead serious. {npc_opinion} about them now."),
            Exchange(role="listener", template="Interesting. I'll keep that in mind."),
        ],
    ),
}

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")


def fill_template(template: str, values: Mapping[str, str], filler: str) -> str:
    """Replace every {name} with values[name], or with filler if unknown."""
    return _PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), filler), template)


def role_score(role: str, rec: PersonalityRecord) -> float:
    """Personality fit of an NPC for a role, before jitter."""
    score = 0.0
    if role == "skeptic" and rec.modifiers.trust < 0:
        score += 2
    if role == "defender" and rec.modifiers.warmth > 0:
        score += 2
    if role == "mediator" and rec.base_personality == "professional":
        score += 2
    if role == "generous" and rec.modifiers.warmth > 0.3:
        score += 2
    if role == "greedy" and rec.base_personality == "opportunistic":
        score += 2
    if role == "aggressor" and rec.base_personality == "aggressive":
        score += 2
    return score


class ConversationOrchestrator:
    def __init__(
        self,
        store: PersonalityStore,
        events: EventBus,
        config: EngineConfig,
        clock: Callable[[], int],
        rng: random.Random | None = None,
        persist: Callable[[], None] | None = None,
        templates: dict[str, ConversationTemplate] | None = None,
    ) -> None:
        self._store = store
        self._events = events
        self._config = config
        self._clock = clock
        self._rng = rng or random.Random()
        self._persist = persist or (lambda: None)
        self._templates = dict(CONVERSATION_TEMPLATES if templates is None else templates)
        self._active: list[ConversationInstance] = []
        self._history: list[ConversationInstance] = []

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def templates(self) -> dict[str, ConversationTemplate]:
        return dict(self._templates)

    @property
    def active(self) -> list[ConversationInstance]:
        return [c.model_copy(deep=True) for c in self._active]

    @property
    def history(self) -> list[ConversationInstance]:
        return [c.model_copy(deep=True) for c in self._history]

    def load_history(self, history: list[ConversationInstance]) -> None:
        self._history = list(history)
        self._trim_history()

    def clear(self) -> None:
        self._active = []
        self._history = []

    def _trim_history(self) -> None:
        excess = len(self._history) - max(0, self._config.history_limit)
        if excess > 0:
            del self._history[:excess]

    def _find_active(self, conversation_id: str) -> ConversationInstance | None:
        for conv in self._active:
            if conv.id == conversation_id:
                return conv
        return None

    # ------------------------------------------------------------------
    # Starting
    # ------------------------------------------------------------------

    def start_conversation(
        self,
        template_name: str,
        participant_ids: list[str],
        context: dict[str, Any] | None = None,
    ) -> ConversationInstance | None:
        context = context or {}
        template = self._templates.get(template_name)
        if template is None:
            logger.warning("Unknown conversation template: %s", template_name)
            return None
        if len(participant_ids) < template.min_participants:
            logger.warning(
                "Not enough participants for %s: %d < %d",
                template_name, len(participant_ids), template.min_participants,
            )
            return None

        participants = list(participant_ids)
        roles = self.assign_roles(template, participants)
        values = self._template_values(roles, context)
        now = self._clock()

        messages = []
        for index, exchange in enumerate(template.exchanges):
            npc_id = roles[exchange.role]
            messages.append(ConversationMessage(
                npc_id=npc_id,
                npc_name=self._store.record(npc_id).display_name,
                text=fill_template(exchange.template, values, self._config.filler_word),
                role=exchange.role,
                scheduled_delay_ms=(
                    index * self._config.message_stagger_ms
                    + self._rng.randint(0, self._config.message_jitter_ms)
                ),
                timestamp=now + index * self._config.message_stagger_ms,
            ))

        conversation = ConversationInstance(
            id=f"conv_{uuid.uuid4().hex[:12]}",
            template_name=template_name,
            topic=template.topic,
            participants=participants,
            roles=roles,
            messages=messages,
            started_at=now,
        )
        self._active.append(conversation)
        logger.debug("Conversation %s started (%s)", conversation.id, template_name)
        self._events.publish("conversation_started", conversation.model_copy(deep=True))
        return conversation.model_copy(deep=True)

    def assign_roles(self, template: ConversationTemplate, participants: list[str]) -> dict[str, str]:
        roles: dict[str, str] = {}
        available = list(participants)

        for role in template.role_names:
            if not available:
                roles[role] = self._rng.choice(participants)
                continue

            best_id = available[0]
            best_score = -1.0
            for npc_id in available:
                score = role_score(role, self._store.record(npc_id)) + self._rng.random()
                if score > best_score:
                    best_score = score
                    best_id = npc_id

            roles[role] = best_id
            available.remove(best_id)

        return roles

    def _template_values(self, roles: dict[str, str], context: dict[str, Any]) -> dict[str, str]:
        values: dict[str, str] = {}
        for key, value in context.items():
            if isinstance(value, (str, int, float)) and not isinstance(value, bool):
                values[key] = str(value)
        for role, npc_id in roles.items():
            values[f"{role}_name"] = self._store.record(npc_id).display_name
        values["player"] = str(context.get("player") or self._config.default_player_name)
        return values

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def mark_message_delivered(self, conversation_id: str, index: int) -> ConversationInstance | None:
        """Mark one message shown. Returns the conversation, or None if unknown."""
        conv = self._find_active(conversation_id)
        if conv is None or not 0 <= index < len(conv.messages):
            return None
        conv.messages[index].delivered = True

        if all(m.delivered for m in conv.messages):
            conv.status = "completed"
            self._active.remove(conv)
            self._history.append(conv)
            self._trim_history()
            logger.debug("Conversation %s completed", conv.id)
            self._persist()
            self._events.publish("conversation_ended", conv.model_copy(deep=True))

        return conv.model_copy(deep=True)
