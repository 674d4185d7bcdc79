"""Create a demo NPC population for development/testing."""

from npc_social.engine import SocialEngine

DEMO_NPCS = [
    {
        "npc_id": "snoop",
        "name": "Snoop",
        "personality": "friendly",
        "faction": "eastside",
        "rivals": ["harbor_crew"],
        "allies": ["marcus"],
        "stances": {"money": 1, "loyalty": 2},
    },
    {
        "npc_id": "marcus",
        "name": "Marcus",
        "personality": "professional",
        "faction": "eastside",
        "rivals": ["harbor_crew"],
        "allies": ["snoop"],
        "stances": {"money": -1},
        "opinionated": True,
    },
    {
        "npc_id": "vex",
        "name": "Vex",
        "personality": "opportunistic",
        "faction": "harbor_crew",
        "rivals": ["eastside"],
        "stances": {"money": 2, "loyalty": -2},
    },
    {
        "npc_id": "grim",
        "name": "Grim",
        "personality": "aggressive",
        "faction": "harbor_crew",
        "rivals": ["eastside"],
        "stances": {"territory": 2},
        "opinionated": True,
    },
]


def create_demo_data(engine: SocialEngine) -> None:
    """Wipe existing state and register the demo NPCs with some history."""
    engine.reset()
    for npc in DEMO_NPCS:
        npc = dict(npc)
        engine.register_npc(npc.pop("npc_id"), **npc)

    engine.apply_modifiers("snoop", {"warmth": 0.4, "trust": 0.2})
    engine.apply_modifiers("vex", {"trust": -0.3})
    engine.set_stage("snoop", "friend")
    engine.set_stage("marcus", "business")
    engine.check_breaking_point("snoop", "big_score")
