"""Engine configuration (tunable constants).

Defaults live in EngineConfig. An optional {data_dir}/config.json overrides
them key-by-key; unknown keys are ignored so an old or hand-edited file
never prevents startup.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


class EngineConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Mood
    mood_default_intensity: float = 0.7
    mood_default_duration_ms: int = 300_000
    neutral_mood_intensity: float = 0.5

    # would_accept clamp; no NPC decision is ever certain
    accept_min_chance: float = 0.1
    accept_max_chance: float = 0.95

    # Bounded histories
    evolution_log_limit: int = 50
    history_limit: int = 50

    # Conversation pacing and text
    message_stagger_ms: int = 1500
    message_jitter_ms: int = 500
    filler_word: str = "something"
    default_player_name: str = "you"

    storage_key: str = "social_state"


def load_config(data_dir: Path | None) -> EngineConfig:
    """Return defaults merged with {data_dir}/config.json, if present."""
    if data_dir is None:
        return EngineConfig()
    path = data_dir / CONFIG_FILENAME
    if not path.is_file():
        return EngineConfig()
    try:
        stored = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return EngineConfig()
    if not isinstance(stored, dict):
        logger.warning("Ignoring %s: expected a JSON object", path)
        return EngineConfig()
    merged = EngineConfig().model_dump()
    merged.update(stored)
    try:
        return EngineConfig.model_validate(merged)
    except ValidationError as e:
        logger.warning("Ignoring invalid %s: %s", path, e)
        return EngineConfig()
