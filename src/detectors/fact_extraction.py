"""
Memory Drift - Heuristic Fact Extraction
==========================================
Offline stand-in for model-based fact extraction. Pulls identity and
preference facts out of USER messages with a fixed pattern table.

Only used when the caller does not supply facts of its own.
"""

import re

from models import ExtractedFact, Role


# ---------------------------------------------------------------------------
# Pattern table
# ---------------------------------------------------------------------------

LANGUAGES = {
    "arabic", "bangla", "bengali", "chinese", "dutch", "english", "french",
    "german", "greek", "hindi", "indonesian", "italian", "japanese", "korean",
    "mandarin", "persian", "polish", "portuguese", "russian", "spanish",
    "swahili", "swedish", "tamil", "thai", "turkish", "ukrainian", "urdu",
    "vietnamese",
}

# (pattern, fact_key, confidence). Group 1 is the value.
FACT_PATTERNS = [
    (r"\bmy name is ([^\W\d_][\w'-]*)", "identity:name", 0.9),
    (r"\b(?:please )?call me ([^\W\d_][\w'-]*)", "identity:name", 0.8),
    (r"\bi (?:live|am based|'m based) in ([^\W\d_][\w -]{1,40}?)(?:[.,!?;]|$)",
     "identity:location", 0.75),
    (r"\bi work as (?:an? )?([^\W\d_][\w -]{1,40}?)(?:[.,!?;]|$)", "identity:role", 0.7),
    (r"\b(?:reply|respond|answer|write|speak|talk|explain)(?: to me)?(?: only)? in ([^\W\d_]+)",
     "pref:language", 0.85),
    (r"\buse (metric|imperial)(?: units)?\b", "pref:units", 0.8),
    (r"\b(?:keep it|be|stay) (brief|concise|short|detailed|formal|casual)\b", "pref:tone", 0.7),
    (r"\b(?:use|in|as) (bullet points|markdown|tables?|json|plain text)\b", "pref:format", 0.7),
]

_COMPILED = [(re.compile(p, re.IGNORECASE), key, conf) for p, key, conf in FACT_PATTERNS]


def extract_facts(messages: list) -> list[ExtractedFact]:
    """
    Scan user messages in order and return every pattern hit as a fact.

    pref:language only fires for known language names so "respond in
    bullet points" is not read as a language.
    """
    facts = []
    for msg in messages:
        if msg.role != Role.USER.value or not msg.content:
            continue
        seen = set()
        for pattern, key, confidence in _COMPILED:
            match = pattern.search(msg.content)
            if not match:
                continue
            value = match.group(1).strip().lower()
            if key == "pref:language" and value not in LANGUAGES:
                continue
            if (key, value) in seen:
                continue
            seen.add((key, value))
            facts.append(ExtractedFact(
                fact_key=key,
                fact_value=value,
                msg_idx=msg.idx,
                confidence=confidence,
            ))
    return facts
