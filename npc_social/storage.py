"""Durable key-value storage and versioned state persistence.

All state is stored in flat JSON files under a configurable base directory,
one file per key. There is no database or ORM; reads and writes go through
plain helper methods that load and dump JSON.

Directory layout:

    {base}/
      config.json          <- optional EngineConfig overrides
      {key}.json           <- one blob per key ("social_state.json")

StatePersistence is the only place the engine touches storage. Saving never
raises: a failed write is logged and the in-memory state stays
authoritative. Loading never raises either: an unreadable blob resets to an
empty state.

Blob versions:
  1  personality map only, camelCase field names, no conversation history
  2  snake_case fields, personality map + bounded conversation history
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, Protocol

from npc_social.models import STATE_VERSION, SocialState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Key-value stores
# ---------------------------------------------------------------------------

class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...
    def put(self, key: str, data: Any) -> None: ...
    def delete(self, key: str) -> None: ...


class JsonFileStorage:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base

    def _key_file(self, key: str) -> Path:
        return self._base / f"{key}.json"

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text())

    def _write_json(self, path: Path, data: Any) -> None:
        path.write_text(json.dumps(data, indent=2))

    def get(self, key: str) -> Any | None:
        """Return the stored value, or None if the key was never written."""
        path = self._key_file(key)
        if not path.is_file():
            return None
        return self._read_json(path)

    def put(self, key: str, data: Any) -> None:
        self._write_json(self._key_file(key), data)

    def delete(self, key: str) -> None:
        self._key_file(key).unlink(missing_ok=True)


class MemoryStorage:
    """Non-durable store for sessions that should not touch disk."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def put(self, key: str, data: Any) -> None:
        self._data[key] = json.dumps(data)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


# ---------------------------------------------------------------------------
# Versioned persistence
# ---------------------------------------------------------------------------

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def _snake_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {_snake(k): v for k, v in data.items()}


def migrate(data: dict[str, Any]) -> dict[str, Any]:
    """Bring a stored blob up to STATE_VERSION.

    A missing or non-integer version is read as 1. Newer versions pass through.
    """
    version = data.get("version", 1)
    if not isinstance(version, int) or isinstance(version, bool):
        version = 1
    if version < 2:
        data = _snake_keys(data)
        stored = data.get("personalities")
        personalities = {}
        for npc_id, record in (stored if isinstance(stored, dict) else {}).items():
            if not isinstance(record, dict):
                continue
            record = _snake_keys(record)
            if isinstance(record.get("mood"), dict):
                record["mood"] = _snake_keys(record["mood"])
            record.setdefault("npc_id", npc_id)
            personalities[npc_id] = record
        data["personalities"] = personalities
        data.setdefault("history", [])
        data["version"] = 2
    return data


class StatePersistence:
    """Serialises the whole engine state to one key of a KeyValueStore."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = "social_state",
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._store = store
        self._key = key
        self._clock = clock

    def load(self) -> SocialState:
        try:
            raw = self._store.get(self._key)
            if raw is None:
                return SocialState()
            if not isinstance(raw, dict):
                raise ValueError(f"expected a JSON object, got {type(raw).__name__}")
            return SocialState.model_validate(migrate(raw))
        except Exception as e:
            logger.warning("Load failed, starting from empty state: %s", e)
            return SocialState()

    def save(self, state: SocialState) -> bool:
        """Write the blob. Returns False (and logs) on failure."""
        state.version = STATE_VERSION
        if self._clock is not None:
            state.saved_at = self._clock()
        try:
            self._store.put(self._key, state.model_dump(mode="json"))
        except Exception as e:
            logger.warning("Save failed: %s", e)
            return False
        return True

    def clear(self) -> None:
        try:
            self._store.delete(self._key)
        except Exception as e:
            logger.warning("Clear failed: %s", e)
