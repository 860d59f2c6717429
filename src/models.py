"""
Memory Drift - Data Models
===========================
Enums, dataclasses, and record coercion shared across the inspection pipeline.
Field names are a wire contract: renderers and hosted clients read them as-is.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional
from enum import Enum

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Role(str, Enum):
    """Speaker of a transcript message."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class EventType(str, Enum):
    """Discriminator for the known drift event variants."""
    REPETITION_CLUSTER = "repetition_cluster"      # User forced to repeat an ask
    SESSION_RESET = "session_reset"                # Assistant implies starting over
    PREFERENCE_FORGOTTEN = "preference_forgotten"  # User restates a preference
    CONTRADICTION = "contradiction"                # Fact value changed


# ---------------------------------------------------------------------------
# Transcript
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TranscriptMessage:
    """A single message, immutable once loaded."""
    idx: int             # Unique, order-defining
    role: str            # One of Role values
    content: str
    tokens: int = 0      # Estimated as ceil(len(content) / 4) by the loader
    ts: Optional[str] = None
    session_id: Optional[str] = None
    metadata: Optional[dict] = None


@dataclass
class Transcript:
    """Ordered message sequence plus the raw text for unparseable inputs."""
    schema_version: str = "1.0"
    messages: list = field(default_factory=list)
    raw_text: Optional[str] = None


@dataclass(frozen=True)
class ExtractedFact:
    """A (key, value) pair the assistant should have remembered."""
    fact_key: str        # Namespaced, e.g. "identity:name", "pref:language"
    fact_value: str
    msg_idx: int         # Reference into the transcript, not ownership
    confidence: float    # 0.0-1.0


# ---------------------------------------------------------------------------
# Drift events
# ---------------------------------------------------------------------------

@dataclass
class EventEvidence:
    """Reference bundle pointing back at transcript messages."""
    msg_idxs: list = field(default_factory=list)
    snippets: list = field(default_factory=list)
    fact_key: Optional[str] = None


@dataclass
class DriftEvent:
    """Fields common to every drift event variant."""
    severity: int        # 1-5, higher is worse
    confidence: float    # 0.0-1.0
    evidence: EventEvidence
    summary: str


@dataclass
class RepetitionCluster(DriftEvent):
    cluster_size: int = 2
    type: str = field(default=EventType.REPETITION_CLUSTER.value, init=False)


@dataclass
class SessionReset(DriftEvent):
    reset_phrase: str = ""
    type: str = field(default=EventType.SESSION_RESET.value, init=False)


@dataclass
class PreferenceForgotten(DriftEvent):
    preference_key: str = ""
    preference_value: str = ""
    type: str = field(default=EventType.PREFERENCE_FORGOTTEN.value, init=False)


@dataclass
class Contradiction(DriftEvent):
    old_value: str = ""
    new_value: str = ""
    type: str = field(default=EventType.CONTRADICTION.value, init=False)


@dataclass
class UnknownEvent(DriftEvent):
    """Event of a type this version does not recognise. Scores 0 unless weighted."""
    type: str = "unknown"
    details: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Inspection result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InspectResult:
    """Complete output of one inspection call."""
    drift_score: int           # 0-100, clamped and rounded
    raw_score: float           # Unclamped weighted sum
    token_waste_pct: float     # 0-100
    events: list = field(default_factory=list)
    should_have_been_memory: list = field(default_factory=list)
    timings_ms: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Coercion from external dicts
# ---------------------------------------------------------------------------

def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def fact_from_dict(data: dict) -> Optional[ExtractedFact]:
    """
    Build an ExtractedFact from an externally produced dict.

    Returns None when a required field is missing or has the wrong type, so
    callers can skip the record and keep going.
    """
    if not isinstance(data, dict):
        return None
    key = data.get("fact_key")
    value = data.get("fact_value")
    msg_idx = data.get("msg_idx")
    if not isinstance(key, str) or not key or value is None:
        return None
    if isinstance(msg_idx, bool) or not isinstance(msg_idx, int):
        return None
    try:
        confidence = float(data.get("confidence", 0.5))
    except (TypeError, ValueError):
        return None
    return ExtractedFact(
        fact_key=key,
        fact_value=str(value),
        msg_idx=msg_idx,
        confidence=_clamp(confidence, 0.0, 1.0),
    )


def event_from_dict(data: dict) -> Optional[DriftEvent]:
    """
    Build a typed DriftEvent from an externally produced dict.

    Variant-specific values may sit at the top level or under "details".
    Unrecognised types become UnknownEvent so they survive into the report
    and score 0. Returns None when the record is unusable (no type, no
    message indices).
    """
    if not isinstance(data, dict):
        return None
    event_type = data.get("type")
    if not isinstance(event_type, str) or not event_type:
        return None

    raw_evidence = data.get("evidence")
    if not isinstance(raw_evidence, dict):
        raw_evidence = {}
    msg_idxs = data.get("msg_idxs", raw_evidence.get("msg_idxs"))
    if not isinstance(msg_idxs, list) or not msg_idxs:
        return None
    if not all(isinstance(i, int) and not isinstance(i, bool) for i in msg_idxs):
        return None
    snippets = data.get("snippets", raw_evidence.get("snippets")) or []
    if not isinstance(snippets, list):
        snippets = [snippets]

    try:
        severity = int(data.get("severity", 3))
        confidence = float(data.get("confidence", 0.5))
    except (TypeError, ValueError):
        return None

    details = data.get("details")
    details = dict(details) if isinstance(details, dict) else {}
    for key, value in data.items():
        if key not in ("type", "severity", "confidence", "evidence", "summary",
                       "msg_idxs", "snippets", "details"):
            details.setdefault(key, value)

    common = dict(
        severity=int(_clamp(severity, 1, 5)),
        confidence=_clamp(confidence, 0.0, 1.0),
        evidence=EventEvidence(
            msg_idxs=list(msg_idxs),
            snippets=[str(s) for s in snippets],
            fact_key=raw_evidence.get("fact_key") or details.get("fact_key"),
        ),
        summary=str(data.get("summary") or "No summary provided"),
    )

    if event_type == EventType.REPETITION_CLUSTER.value:
        return RepetitionCluster(**common, cluster_size=len(msg_idxs))
    if event_type == EventType.SESSION_RESET.value:
        return SessionReset(**common, reset_phrase=str(details.get("reset_phrase", "reset")))
    if event_type == EventType.PREFERENCE_FORGOTTEN.value:
        return PreferenceForgotten(
            **common,
            preference_key=str(details.get("preference_key", "unknown")),
            preference_value=str(details.get("preference_value", "unknown")),
        )
    if event_type == EventType.CONTRADICTION.value:
        return Contradiction(
            **common,
            old_value=str(details.get("old_value", "unknown")),
            new_value=str(details.get("new_value", "unknown")),
        )
    return UnknownEvent(**common, type=event_type, details=details)


def coerce_records(records: list, builder) -> list:
    """Run builder over records, dropping (and logging) the ones it rejects."""
    built = []
    for position, record in enumerate(records or []):
        item = builder(record)
        if item is None:
            logger.warning("Skipping malformed record at position %d: %r", position, record)
            continue
        built.append(item)
    return built
