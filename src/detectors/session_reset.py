"""
Memory Drift - Session Reset Detector
=======================================
Flags assistant messages that announce starting over or losing context.

Phrases come from InspectConfig.reset_phrases, an ordered priority list.
Each message yields at most one event: the first phrase in priority order
that occurs in the normalized message wins.
"""

import re

from normalize import normalize_text
from models import SessionReset, EventEvidence, Role
from drift_config import DEFAULT_RESET_PHRASES
from detectors.base import BaseDetector, DetectorRegistry

DEFAULT_RESET_SEVERITY = 4
DEFAULT_RESET_CONFIDENCE = 0.9


@DetectorRegistry.register_detector
class SessionResetDetector(BaseDetector):
    timing_key = "session_reset"
    priority = 20

    def detect(self, messages: list, **kwargs) -> list[SessionReset]:
        return detect_session_resets(
            messages,
            phrases=self.config.reset_phrases,
            severity=self.config.reset_severity,
            confidence=self.config.reset_confidence,
        )


def compile_reset_patterns(phrases: list[str]) -> list[tuple]:
    """
    Pair each configured phrase with a word-bounded pattern over its
    normalized form. Phrases that normalize to nothing are dropped.
    """
    patterns = []
    for phrase in phrases:
        normalized = normalize_text(phrase)
        if not normalized:
            continue
        patterns.append((phrase, re.compile(r"\b" + re.escape(normalized) + r"\b")))
    return patterns


def detect_session_resets(
    messages: list,
    phrases: list[str] = DEFAULT_RESET_PHRASES,
    severity: int = DEFAULT_RESET_SEVERITY,
    confidence: float = DEFAULT_RESET_CONFIDENCE,
) -> list[SessionReset]:
    """One session_reset event per assistant message containing a reset phrase."""
    patterns = compile_reset_patterns(phrases)
    events = []
    for msg in messages:
        if msg.role != Role.ASSISTANT.value:
            continue
        content = normalize_text(msg.content)
        for phrase, pattern in patterns:
            if pattern.search(content):
                events.append(SessionReset(
                    severity=severity,
                    confidence=confidence,
                    evidence=EventEvidence(
                        msg_idxs=[msg.idx],
                        snippets=[msg.content[:200]],
                    ),
                    summary=f"Assistant implied a fresh start ('{phrase}') at message {msg.idx}",
                    reset_phrase=phrase,
                ))
                break
    return events
