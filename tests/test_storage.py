import json
import sqlite3

from npc_social.models import STATE_VERSION, SocialState
from npc_social.storage import JsonFileStorage, MemoryStorage, StatePersistence, migrate


# ── Key-value stores ────────────────────────────────────────


def test_json_file_storage_roundtrip(tmp_path):
    store = JsonFileStorage(tmp_path / "kv")
    assert store.get("missing") is None
    store.put("k", {"a": [1, 2]})
    assert (tmp_path / "kv" / "k.json").is_file()
    assert store.get("k") == {"a": [1, 2]}
    store.delete("k")
    assert store.get("k") is None
    store.delete("k")  # no error on missing key


def test_memory_storage_returns_copies():
    store = MemoryStorage()
    data = {"a": [1]}
    store.put("k", data)
    data["a"].append(2)
    assert store.get("k") == {"a": [1]}


# ── Migration ───────────────────────────────────────────────

V1_BLOB = {
    "version": 1,
    "personalities": {
        "vex": {
            "npcId": "vex",
            "basePersonality": "opportunistic",
            "currentPersonality": "cold",
            "modifiers": {"warmth": -0.4, "trust": 0.1},
            "mood": {"current": "angry", "intensity": 0.8, "expiresAt": 1234},
            "stage": "business",
            "traits": ["hustler"],
            "evolutionLog": [{"type": "breaking_point", "details": {"name": "x"}, "timestamp": 5}],
        },
    },
}


def test_migrate_v1_to_current():
    data = migrate(json.loads(json.dumps(V1_BLOB)))
    assert data["version"] == 2
    assert data["history"] == []
    record = data["personalities"]["vex"]
    assert record["base_personality"] == "opportunistic"
    assert record["mood"]["expires_at"] == 1234
    assert record["evolution_log"][0]["type"] == "breaking_point"


def test_migrate_leaves_current_blob_alone():
    blob = {"version": 2, "personalities": {}, "history": []}
    assert migrate(dict(blob)) == blob


# ── StatePersistence ────────────────────────────────────────


def test_load_empty_store():
    state = StatePersistence(MemoryStorage()).load()
    assert state.personalities == {}
    assert state.history == []


def test_load_v1_blob():
    store = MemoryStorage()
    store.put("social_state", V1_BLOB)
    state = StatePersistence(store).load()
    vex = state.personalities["vex"]
    assert vex.npc_id == "vex"
    assert vex.current_personality == "cold"
    assert vex.modifiers.warmth == -0.4
    assert vex.mood.expires_at == 1234
    assert vex.traits == ["hustler"]


def test_engine_recomputes_current_personality_on_load(clock):
    from npc_social.engine import SocialEngine

    store = MemoryStorage()
    store.put("social_state", V1_BLOB)
    engine = SocialEngine(store, clock=clock)
    engine.initialize()
    # opportunistic base, warmth -0.4 and a business stage resolve to the base
    assert engine.get_personality("vex").current_personality == "opportunistic"


def test_corrupt_blob_starts_empty(tmp_path, caplog):
    store = JsonFileStorage(tmp_path)
    (tmp_path / "social_state.json").write_text("{not json")
    state = StatePersistence(store).load()
    assert state.personalities == {}
    assert "Load failed" in caplog.text


def test_invalid_blob_starts_empty():
    store = MemoryStorage()
    store.put("social_state", {"version": 2, "personalities": {"a": {"npc_id": "a", "stage": "bff"}}})
    assert StatePersistence(store).load().personalities == {}


def test_non_object_blob_starts_empty():
    store = MemoryStorage()
    store.put("social_state", [1, 2, 3])
    assert StatePersistence(store).load() == SocialState()


def test_non_integer_version_read_as_v1():
    store = MemoryStorage()
    store.put("social_state", {"version": "2", "personalities": {"a": {"npcId": "a", "stage": "friend"}}})
    state = StatePersistence(store).load()
    assert state.version == STATE_VERSION
    assert state.personalities["a"].stage == "friend"


def test_v1_blob_with_list_personalities_starts_empty(clock):
    from npc_social.engine import SocialEngine

    store = MemoryStorage()
    store.put("social_state", {"version": 1, "personalities": [{"npcId": "a"}]})
    assert StatePersistence(store).load().personalities == {}

    engine = SocialEngine(store, clock=clock)
    engine.initialize()
    assert len(engine.personalities) == 0


class FailingReadStore(MemoryStorage):
    def get(self, key):
        raise RuntimeError("connection reset")


def test_store_read_error_starts_empty(caplog):
    assert StatePersistence(FailingReadStore()).load() == SocialState()
    assert "Load failed" in caplog.text


class BrokenStore(MemoryStorage):
    def put(self, key, data):
        raise OSError("disk full")


def test_save_failure_is_logged_not_raised(caplog):
    assert StatePersistence(BrokenStore()).save(SocialState()) is False
    assert "Save failed" in caplog.text


class LockedDatabaseStore(MemoryStorage):
    """Store whose driver raises its own, non-OSError exceptions."""

    def put(self, key, data):
        raise sqlite3.OperationalError("database is locked")

    def delete(self, key):
        raise sqlite3.OperationalError("database is locked")


def test_driver_error_on_save_is_logged_not_raised(caplog):
    assert StatePersistence(LockedDatabaseStore()).save(SocialState()) is False
    assert "database is locked" in caplog.text


def test_driver_error_does_not_escape_mutations(clock):
    from npc_social.engine import SocialEngine

    engine = SocialEngine(LockedDatabaseStore(), clock=clock)
    engine.initialize()
    engine.register_npc("a", name="Alpha")
    engine.apply_modifiers("a", {"trust": 0.2})
    engine.reset()
    assert len(engine.personalities) == 0


def test_save_stamps_version_and_time():
    store = MemoryStorage()
    StatePersistence(store, clock=lambda: 42).save(SocialState(version=1))
    blob = store.get("social_state")
    assert blob["version"] == STATE_VERSION
    assert blob["saved_at"] == 42


# ── Engine persistence ──────────────────────────────────────


def test_state_survives_restart(make_engine, engine):
    engine.register_npc("vex", name="Vex", personality="opportunistic", faction="dockers", stances={"money": 2})
    engine.apply_modifiers("vex", {"trust": 0.5})
    engine.set_stage("vex", "friend")
    engine.check_breaking_point("vex", "saved_from_cops")

    reloaded = make_engine()
    before = engine.get_personality("vex")
    restored = reloaded.get_personality("vex")
    assert restored == before
    assert restored.registered
    assert restored.stances == {"money": 2}


def test_initialize_is_idempotent(make_engine, engine, data_dir):
    engine.register_npc("a")
    (data_dir / "social_state.json").unlink()
    engine.initialize()
    assert "a" in engine.personalities


def test_save_failure_keeps_memory_state(clock):
    from npc_social.engine import SocialEngine

    engine = SocialEngine(BrokenStore(), clock=clock)
    engine.initialize()
    engine.register_npc("a", name="Alpha")
    assert engine.get_personality("a").name == "Alpha"
    assert engine.save() is False


def test_reset_clears_everything(make_engine, engine, data_dir):
    engine.register_npc("a")
    engine.register_npc("b")
    engine.start_conversation("territory_dispute", ["a", "b"])
    engine.reset()

    assert len(engine.personalities) == 0
    assert engine.conversations.active == []
    assert not (data_dir / "social_state.json").exists()
    assert len(make_engine().personalities) == 0


def test_custom_storage_key(make_engine, data_dir):
    from npc_social.config import EngineConfig

    engine = make_engine(config=EngineConfig(storage_key="slot_2"))
    engine.register_npc("a")
    assert (data_dir / "slot_2.json").is_file()
    assert not (data_dir / "social_state.json").exists()
