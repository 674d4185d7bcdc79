import random

import pytest

from npc_social.engine import SocialEngine
from npc_social.models import MemorableEvent, NPCMemory
from npc_social.storage import JsonFileStorage

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FixedRandom(random.Random):
    """random() always returns `value`; choice/randint stay seeded."""

    def __init__(self, value: float) -> None:
        super().__init__(1234)
        self.value = value

    def random(self) -> float:
        return self.value


class StubMemory:
    """Memory collaborator: canned memorable events, records gossip writes."""

    def __init__(self, events: dict[str, list[MemorableEvent]] | None = None) -> None:
        self.events = events or {}
        self.gossip: list[tuple[str, str, str]] = []

    def get_memory(self, npc_id: str) -> NPCMemory:
        return NPCMemory(memorable_events=self.events.get(npc_id, []))

    def add_gossip(self, target_id: str, source_id: str, description: str) -> None:
        self.gossip.append((target_id, source_id, description))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory() -> StubMemory:
    return StubMemory()


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def make_engine(data_dir, clock, memory):
    """Build an initialized engine on the shared data dir; rng is optional."""

    def _make(rng: random.Random | None = None, **kwargs) -> SocialEngine:
        kwargs.setdefault("memory", memory)
        eng = SocialEngine(JsonFileStorage(data_dir), rng=rng or random.Random(7), clock=clock, **kwargs)
        eng.initialize()
        return eng

    return _make


@pytest.fixture
def engine(make_engine) -> SocialEngine:
    return make_engine()


@pytest.fixture
def fixed_random():
    return FixedRandom
