import random
import re

import pytest

from npc_social.conversations import CONVERSATION_TEMPLATES, fill_template, role_score
from npc_social.models import PersonalityRecord

UNRESOLVED = re.compile(r"\{[^{}]+\}")


# ── fill_template ───────────────────────────────────────────


def test_fill_template_substitutes_known_values():
    assert fill_template("Hi {name}, {n} left.", {"name": "Vex", "n": "3"}, "x") == "Hi Vex, 3 left."


def test_fill_template_unknown_becomes_filler():
    assert fill_template("They {did_what}.", {}, "something") == "They something."


def test_fill_template_keeps_dollar_sign():
    assert fill_template("${amount} is fair.", {"amount": "500"}, "?") == "$500 is fair."


def test_fill_template_does_not_recurse():
    assert fill_template("{a}", {"a": "{b}"}, "x") == "{b}"


# ── role_score ──────────────────────────────────────────────


@pytest.mark.parametrize("role,record,expected", [
    ("skeptic", PersonalityRecord(npc_id="a", modifiers={"trust": -0.1}), 2),
    ("skeptic", PersonalityRecord(npc_id="a"), 0),
    ("defender", PersonalityRecord(npc_id="a", modifiers={"warmth": 0.1}), 2),
    ("mediator", PersonalityRecord(npc_id="a"), 2),
    ("mediator", PersonalityRecord(npc_id="a", base_personality="cold"), 0),
    ("generous", PersonalityRecord(npc_id="a", modifiers={"warmth": 0.3}), 0),
    ("generous", PersonalityRecord(npc_id="a", modifiers={"warmth": 0.31}), 2),
    ("greedy", PersonalityRecord(npc_id="a", base_personality="opportunistic"), 2),
    ("aggressor", PersonalityRecord(npc_id="a", base_personality="aggressive"), 2),
    ("listener", PersonalityRecord(npc_id="a"), 0),
])
def test_role_score(role, record, expected):
    assert role_score(role, record) == expected


# ── start_conversation preconditions ────────────────────────


def test_unknown_template_returns_none(engine):
    assert engine.start_conversation("karaoke", ["a", "b"]) is None


def test_too_few_participants_returns_none(engine):
    engine.register_npc("a")
    assert engine.start_conversation("player_reliability", ["a"]) is None
    assert engine.conversations.active == []


# ── Role assignment ─────────────────────────────────────────


def test_end_to_end_player_reliability(engine):
    engine.register_npc("Skeptic1")
    engine.register_npc("Defender1")
    engine.apply_modifiers("Skeptic1", {"trust": -0.4})
    engine.apply_modifiers("Defender1", {"warmth": 0.5})

    conv = engine.start_conversation("player_reliability", ["Skeptic1", "Defender1"], {"player": "you"})

    assert conv is not None
    assert conv.roles["skeptic"] == "Skeptic1"
    assert conv.roles["defender"] == "Defender1"
    assert conv.roles["mediator"] in ("Skeptic1", "Defender1")
    assert conv.status == "active"
    assert not UNRESOLVED.search(conv.messages[0].text)
    assert conv.messages[0].text == "I don't know about you. They've something."
    assert conv.messages[1].text == "Come on, Skeptic1. you came through on something."


def test_role_assignment_is_complete_for_all_templates():
    from npc_social.engine import SocialEngine

    for seed in range(20):
        eng = SocialEngine(rng=random.Random(seed))
        eng.initialize()
        for template_name, template in CONVERSATION_TEMPLATES.items():
            for count in range(template.min_participants, 5):
                ids = [f"npc{i}" for i in range(count)]
                for npc_id in ids:
                    eng.register_npc(npc_id)
                conv = eng.start_conversation(template_name, ids)
                assert set(conv.roles) == set(template.role_names)
                assert all(conv.roles[role] in ids for role in template.role_names)
                assert all(m.npc_id in ids for m in conv.messages)


def test_distinct_roles_use_distinct_participants_when_possible(engine):
    for npc_id in ("a", "b", "c"):
        engine.register_npc(npc_id)
    conv = engine.start_conversation("player_reliability", ["a", "b", "c"])
    assert sorted(conv.roles.values()) == ["a", "b", "c"]


def test_unregistered_participants_still_get_roles(engine):
    conv = engine.start_conversation("deal_value_debate", ["x", "y"])
    assert set(conv.roles.values()) == {"x", "y"}
    assert conv.messages[0].npc_name in ("x", "y")


def test_archetype_drives_role(engine):
    engine.register_npc("vex", personality="opportunistic")
    engine.register_npc("grim", personality="aggressive")
    conv = engine.start_conversation("territory_dispute", ["vex", "grim"])
    assert conv.roles["aggressor"] == "grim"
    assert conv.roles["defender"] == "vex"


# ── Message generation ──────────────────────────────────────


def test_messages_follow_exchanges(engine):
    engine.register_npc("vex", name="Vex", personality="opportunistic")
    engine.register_npc("snoop", name="Snoop")
    engine.apply_modifiers("snoop", {"warmth": 0.6})
    conv = engine.start_conversation("deal_value_debate", ["vex", "snoop"], {"amount": 500})

    assert [m.role for m in conv.messages] == ["generous", "greedy", "generous"]
    assert conv.messages[0].text == "The deal's solid. $500 is fair for everyone."
    assert conv.messages[0].npc_name == "Snoop"
    assert conv.messages[1].npc_id == "vex"
    assert conv.messages[2].text == (
        "Don't be greedy, Vex. Good partners are worth more than extra cash."
    )
    assert conv.topic == "money"


def test_no_message_has_unresolved_placeholders(engine):
    for npc_id in ("a", "b", "c"):
        engine.register_npc(npc_id)
    for template_name in CONVERSATION_TEMPLATES:
        conv = engine.start_conversation(template_name, ["a", "b", "c"], {"flag": True, "obj": {"x": 1}})
        for message in conv.messages:
            assert not UNRESOLVED.search(message.text)


def test_context_player_name_used(engine):
    engine.register_npc("a")
    engine.register_npc("b")
    conv = engine.start_conversation("reputation_gossip", ["a", "b"], {"player": "Nico", "recent_action": "Robbed a bank"})
    assert conv.messages[0].text == "You hear what Nico pulled off? Robbed a bank."


def test_staggered_delays(engine, clock):
    engine.register_npc("a")
    engine.register_npc("b")
    conv = engine.start_conversation("reputation_gossip", ["a", "b"])
    for index, message in enumerate(conv.messages):
        assert index * 1500 <= message.scheduled_delay_ms <= index * 1500 + 500
        assert message.timestamp == clock.now + index * 1500
        assert message.delivered is False


def test_start_publishes_event(engine):
    seen = []
    engine.subscribe(lambda event, data: seen.append((event, data.id)))
    engine.register_npc("a")
    engine.register_npc("b")
    conv = engine.start_conversation("territory_dispute", ["a", "b"])
    assert seen == [("conversation_started", conv.id)]


def test_conversation_ids_unique(engine):
    engine.register_npc("a")
    engine.register_npc("b")
    ids = {engine.start_conversation("territory_dispute", ["a", "b"]).id for _ in range(50)}
    assert len(ids) == 50


# ── Delivery and completion ─────────────────────────────────


def _start(engine):
    engine.register_npc("a")
    engine.register_npc("b")
    return engine.start_conversation("territory_dispute", ["a", "b"])


def test_partial_delivery_does_not_complete(engine):
    conv = _start(engine)
    engine.mark_message_delivered(conv.id, 0)
    engine.mark_message_delivered(conv.id, 2)
    active = engine.conversations.active
    assert len(active) == 1
    assert active[0].status == "active"
    assert [m.delivered for m in active[0].messages] == [True, False, True]
    assert engine.conversations.history == []


def test_full_delivery_completes_once(engine):
    ended = []
    engine.subscribe(lambda event, data: ended.append(data.id) if event == "conversation_ended" else None)
    conv = _start(engine)
    for index in range(len(conv.messages)):
        result = engine.mark_message_delivered(conv.id, index)
    assert result.status == "completed"
    assert engine.conversations.active == []
    assert [c.id for c in engine.conversations.history] == [conv.id]
    assert ended == [conv.id]

    # Completed conversations are frozen
    assert engine.mark_message_delivered(conv.id, 0) is None
    assert ended == [conv.id]


def test_redelivering_same_message_does_not_complete(engine):
    conv = _start(engine)
    for _ in range(5):
        engine.mark_message_delivered(conv.id, 0)
    assert engine.conversations.active[0].status == "active"


def test_bad_index_or_id_is_ignored(engine):
    conv = _start(engine)
    assert engine.mark_message_delivered(conv.id, 99) is None
    assert engine.mark_message_delivered(conv.id, -1) is None
    assert engine.mark_message_delivered("conv_missing", 0) is None


def test_history_capped_at_50(engine):
    engine.register_npc("a")
    engine.register_npc("b")
    ids = []
    for _ in range(55):
        conv = engine.start_conversation("territory_dispute", ["a", "b"])
        ids.append(conv.id)
        for index in range(len(conv.messages)):
            engine.mark_message_delivered(conv.id, index)
    history = engine.conversations.history
    assert len(history) == 50
    assert [c.id for c in history] == ids[5:]


def test_completed_history_is_persisted(make_engine, engine):
    conv = _start(engine)
    for index in range(len(conv.messages)):
        engine.mark_message_delivered(conv.id, index)
    reloaded = make_engine()
    assert [c.id for c in reloaded.conversations.history] == [conv.id]
    assert reloaded.conversations.active == []


def test_active_conversations_not_persisted(make_engine, engine):
    _start(engine)
    assert make_engine().conversations.active == []


def test_zero_history_limit_keeps_nothing(make_engine):
    from npc_social.config import EngineConfig

    engine = make_engine(config=EngineConfig(history_limit=0))
    conv = _start(engine)
    for index in range(len(conv.messages)):
        engine.mark_message_delivered(conv.id, index)
    assert engine.conversations.history == []
    assert make_engine(config=EngineConfig(history_limit=0)).conversations.history == []


def test_loaded_history_respects_smaller_limit(make_engine, engine):
    from npc_social.config import EngineConfig

    for _ in range(3):
        conv = _start(engine)
        for index in range(len(conv.messages)):
            engine.mark_message_delivered(conv.id, index)
    ids = [c.id for c in engine.conversations.history]
    assert [c.id for c in make_engine(config=EngineConfig(history_limit=1)).conversations.history] == ids[-1:]
    assert make_engine(config=EngineConfig(history_limit=0)).conversations.history == []
