"""
Memory Drift - Event Aggregation & Scoring
============================================
Orders drift events, folds them into a bounded drift score, estimates token
waste, and picks the facts that should have been kept in memory.

All functions are pure. Malformed records are skipped with a warning rather
than aborting the aggregation.
"""

import logging
import math
from typing import Optional

from models import DriftEvent, EventType, ExtractedFact, Role
from drift_config import DEFAULT_WEIGHTS

logger = logging.getLogger(__name__)

SCORE_MIN = 0
SCORE_MAX = 100
DEFAULT_MEMORY_TOP_N = 10


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def sort_events(events: list[DriftEvent]) -> list[DriftEvent]:
    """
    Severity descending, then confidence descending.

    sorted() is stable, so remaining ties keep detector emission order.
    """
    return sorted(events, key=lambda e: (-e.severity, -e.confidence))


# ---------------------------------------------------------------------------
# Drift score
# ---------------------------------------------------------------------------

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_drift_score(events: list,
                          weights: Optional[dict] = None) -> tuple[int, float]:
    """
    Weighted event count, clamped to 0-100.

    Returns (drift_score, raw_score). raw_score keeps full precision and is
    never clamped. Event types missing from weights add 0.
    """
    weights = DEFAULT_WEIGHTS if weights is None else weights
    raw_score = 0.0
    for event in events:
        event_type = getattr(event, "type", None)
        if not isinstance(event_type, str):
            logger.warning("Skipping event without a type during scoring: %r", event)
            continue
        raw_score += weights.get(event_type, 0)

    drift_score = round_half_up(max(SCORE_MIN, min(SCORE_MAX, raw_score)))
    return drift_score, raw_score


# ---------------------------------------------------------------------------
# Token waste
# ---------------------------------------------------------------------------

def calculate_token_waste(messages: list, events: list) -> float:
    """
    Percent of all tokens spent on user messages inside repetition clusters.

    An estimate, not billing-accurate. 0 when the transcript has no tokens.
    """
    waste_idxs = set()
    for event in events:
        if getattr(event, "type", None) != EventType.REPETITION_CLUSTER.value:
            continue
        evidence = getattr(event, "evidence", None)
        if evidence is None:
            logger.warning("Skipping repetition event without evidence: %r", event)
            continue
        waste_idxs.update(evidence.msg_idxs)

    if not waste_idxs:
        return 0.0

    by_idx = {}
    for msg in messages:
        by_idx.setdefault(msg.idx, msg)

    waste_tokens = sum(
        by_idx[idx].tokens or 0
        for idx in waste_idxs
        if idx in by_idx and by_idx[idx].role == Role.USER.value
    )
    total_tokens = sum(msg.tokens or 0 for msg in messages)
    if total_tokens == 0:
        return 0.0
    return 100.0 * waste_tokens / total_tokens


# ---------------------------------------------------------------------------
# Memory candidates
# ---------------------------------------------------------------------------

def select_memory_candidates(facts: list[ExtractedFact],
                             top_n: int = DEFAULT_MEMORY_TOP_N) -> list[ExtractedFact]:
    """Top facts by confidence; equal confidence keeps input order."""
    return sorted(facts, key=lambda f: -f.confidence)[:top_n]
