"""
Memory Drift - Configuration
==============================
Explicit configuration passed into the inspection entry point.

The core never reads files or the environment itself; the CLI and batch
runner call load_config() and hand the result to inspect_transcript().
"""

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "memory_drift.yaml"

DEFAULT_WEIGHTS = {
    "preference_forgotten": 15,
    "repetition_cluster": 10,
    "session_reset": 20,
    "contradiction": 10,
}

# Priority order: the first phrase found in a message wins, so longer and
# more specific phrases come before the phrases they contain.
DEFAULT_RESET_PHRASES = [
    "forget everything",
    "let's start over",
    "start over",
    "starting over",
    "start fresh",
    "fresh start",
    "from scratch",
    "new chat",
    "new conversation",
    "i don't have memory of",
    "i don't remember our",
    "i have no record of",
]


@dataclass
class InspectConfig:
    """Tunable policy constants for one inspection run."""
    weights: dict = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    similarity_threshold: float = 0.65
    signature_length: int = 8
    snippet_limit: int = 5
    preference_min_gap: int = 5
    reset_phrases: list = field(default_factory=lambda: list(DEFAULT_RESET_PHRASES))
    reset_severity: int = 4
    reset_confidence: float = 0.9
    memory_top_n: int = 10
    max_messages: Optional[int] = None


_FIELD_TYPES = {
    "weights": dict,
    "similarity_threshold": (int, float),
    "signature_length": int,
    "snippet_limit": int,
    "preference_min_gap": int,
    "reset_phrases": list,
    "reset_severity": int,
    "reset_confidence": (int, float),
    "memory_top_n": int,
    "max_messages": (int, type(None)),
}


def config_from_dict(data: dict, base: Optional[InspectConfig] = None) -> InspectConfig:
    """
    Overlay a plain dict onto base (or the defaults).

    Weights merge key by key so a file can override one event type. Unknown
    keys are logged and ignored; a value of the wrong type raises ValueError.
    """
    config = base or InspectConfig()
    known = {f.name for f in fields(InspectConfig)}
    updates = {}
    for key, value in (data or {}).items():
        if key not in known:
            logger.warning("Ignoring unknown config key: %s", key)
            continue
        expected = _FIELD_TYPES[key]
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ValueError(f"Config key '{key}' has invalid value: {value!r}")
        updates[key] = value

    if "weights" in updates:
        merged = dict(config.weights)
        for event_type, weight in updates["weights"].items():
            if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                raise ValueError(f"Weight for '{event_type}' must be a number: {weight!r}")
            merged[str(event_type)] = weight
        updates["weights"] = merged
    if "reset_phrases" in updates:
        updates["reset_phrases"] = [str(p) for p in updates["reset_phrases"]]
    return replace(config, **updates)


def load_config(path: Optional[str] = None) -> InspectConfig:
    """Load config from a YAML file; missing default file means defaults."""
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        if path:
            raise FileNotFoundError(f"Config file not found: {path}")
        return InspectConfig()
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")
    return config_from_dict(data)
