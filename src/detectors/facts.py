"""
Memory Drift - Fact Tracker
=============================
Contradiction and preference-forgotten detection over extracted facts.

Both detectors are left-to-right folds over the fact list sorted by msg_idx:
  - contradiction: last-seen value per fact_key; a different value is a flip
  - preference_forgotten: the same (key, value) restated >= N messages later

Restatement is measured on the user side only. Whether the assistant
honoured the preference in between is not checked.
"""

import logging
from typing import Optional

from models import (
    ExtractedFact, Contradiction, PreferenceForgotten, EventEvidence,
    fact_from_dict,
)
from detectors.base import BaseDetector, DetectorRegistry

logger = logging.getLogger(__name__)

CONTRADICTION_SEVERITY = 4
PREFERENCE_FORGOTTEN_SEVERITY = 3
DEFAULT_PREFERENCE_MIN_GAP = 5


@DetectorRegistry.register_detector
class ContradictionDetector(BaseDetector):
    timing_key = "contradictions"
    priority = 30

    def detect(self, messages: list, **kwargs) -> list[Contradiction]:
        facts = prepare_facts(kwargs.get("facts") or [], messages)
        return detect_contradictions(facts, contents=_content_lookup(messages))


@DetectorRegistry.register_detector
class PreferenceForgottenDetector(BaseDetector):
    timing_key = "pref_forgotten"
    priority = 40

    def detect(self, messages: list, **kwargs) -> list[PreferenceForgotten]:
        facts = prepare_facts(kwargs.get("facts") or [], messages)
        return detect_preference_forgotten(
            facts,
            min_gap=self.config.preference_min_gap,
            contents=_content_lookup(messages),
        )


# ---------------------------------------------------------------------------
# Input preparation
# ---------------------------------------------------------------------------

def prepare_facts(facts: list, messages: Optional[list] = None) -> list[ExtractedFact]:
    """
    Validate and order facts for the trackers.

    Dicts are coerced; anything malformed is skipped, including fact
    instances whose fields have the wrong types. When messages are
    given, facts pointing at a msg_idx that is not in the transcript are
    skipped too. The sort is stable, so facts sharing a msg_idx keep input
    order.
    """
    known = {m.idx for m in messages} if messages is not None else None
    valid = []
    for fact in facts:
        if isinstance(fact, dict):
            fact = fact_from_dict(fact)
        if not isinstance(fact, ExtractedFact) or not _well_formed(fact):
            logger.warning("Skipping malformed fact: %r", fact)
            continue
        if known is not None and fact.msg_idx not in known:
            logger.warning("Skipping fact %s: msg_idx %d not in transcript",
                           fact.fact_key, fact.msg_idx)
            continue
        valid.append(fact)
    return sorted(valid, key=lambda f: f.msg_idx)


def _well_formed(fact: ExtractedFact) -> bool:
    """Field checks for fact instances built outside fact_from_dict."""
    if not isinstance(fact.fact_key, str) or not fact.fact_key:
        return False
    if not isinstance(fact.fact_value, str):
        return False
    if isinstance(fact.msg_idx, bool) or not isinstance(fact.msg_idx, int):
        return False
    return isinstance(fact.confidence, (int, float)) and not isinstance(fact.confidence, bool)


def _content_lookup(messages: list) -> dict[int, str]:
    lookup = {}
    for m in messages:
        lookup.setdefault(m.idx, m.content)
    return lookup


def _value_key(value: str) -> str:
    """Values compare case- and edge-whitespace-insensitively."""
    return value.strip().casefold()


def _snippet(fact: ExtractedFact, contents: Optional[dict]) -> str:
    if contents and fact.msg_idx in contents:
        return contents[fact.msg_idx]
    return f"{fact.fact_key}={fact.fact_value}"


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def detect_contradictions(facts: list[ExtractedFact],
                          contents: Optional[dict] = None) -> list[Contradiction]:
    """
    Emit one contradiction each time a fact_key's value changes.

    Values are compared after strip() and casefold(), so "Rahim" restated as
    "rahim" is the same value and does not emit an event.
    """
    events = []
    last_seen: dict[str, ExtractedFact] = {}
    for fact in facts:
        previous = last_seen.get(fact.fact_key)
        if previous is not None and _value_key(previous.fact_value) != _value_key(fact.fact_value):
            events.append(Contradiction(
                severity=CONTRADICTION_SEVERITY,
                confidence=min(previous.confidence, fact.confidence),
                evidence=EventEvidence(
                    msg_idxs=[previous.msg_idx, fact.msg_idx],
                    snippets=[_snippet(previous, contents), _snippet(fact, contents)],
                    fact_key=fact.fact_key,
                ),
                summary=f"{fact.fact_key} changed from '{previous.fact_value}' "
                        f"to '{fact.fact_value}'",
                old_value=previous.fact_value,
                new_value=fact.fact_value,
            ))
        last_seen[fact.fact_key] = fact
    return events


def detect_preference_forgotten(facts: list[ExtractedFact],
                                min_gap: int = DEFAULT_PREFERENCE_MIN_GAP,
                                contents: Optional[dict] = None) -> list[PreferenceForgotten]:
    """
    Emit one event per (key, value) pair whose first and last statements
    are at least min_gap messages apart.
    """
    occurrences: dict[tuple, list[ExtractedFact]] = {}
    for fact in facts:
        occurrences.setdefault((fact.fact_key, _value_key(fact.fact_value)), []).append(fact)

    events = []
    for (key, _), stated in occurrences.items():
        first, last = stated[0], stated[-1]
        if last.msg_idx - first.msg_idx < min_gap:
            continue
        events.append(PreferenceForgotten(
            severity=PREFERENCE_FORGOTTEN_SEVERITY,
            confidence=min(first.confidence, last.confidence),
            evidence=EventEvidence(
                msg_idxs=[first.msg_idx, last.msg_idx],
                snippets=[_snippet(first, contents), _snippet(last, contents)],
                fact_key=key,
            ),
            summary=f"User restated {key}='{first.fact_value}' at message "
                    f"{last.msg_idx} after first stating it at message {first.msg_idx}",
            preference_key=key,
            preference_value=first.fact_value,
        ))
    return events
