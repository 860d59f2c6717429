"""
Memory Drift - Text Normalization & Similarity
================================================
Normalizer, tokenizer, bucket signatures, and Jaccard similarity.

The tokenizer is punctuation-preserving and does not lowercase; callers pick
normalize_text() first when they want case- and punctuation-insensitive
tokens. Both sides of a comparison must be prepared the same way.
"""

import math
import re

DEFAULT_SIGNATURE_LENGTH = 8
DEFAULT_SIMILARITY_THRESHOLD = 0.65

# \w is Unicode-aware for str patterns, so non-ASCII letters survive.
_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """
    Lowercase, strip non-word characters, collapse whitespace, trim.

    Punctuation is removed before whitespace is collapsed, so "a - b" becomes
    "a b" and a second pass is a no-op.
    """
    text = _NON_WORD.sub("", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def tokenize(text: str) -> list[str]:
    """Split on whitespace runs, dropping empty tokens."""
    return text.split()


def make_signature(tokens: list[str], n: int = DEFAULT_SIGNATURE_LENGTH) -> str:
    """Bucket key: the first n tokens joined by single spaces."""
    return " ".join(tokens[:n])


def jaccard_similarity(a: set, b: set) -> float:
    """
    |A & B| / |A | B|.

    Two empty sets are vacuously identical (1.0); exactly one empty set
    shares nothing (0.0). Membership is case-sensitive.
    """
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def are_similar(tokens_a: list[str], tokens_b: list[str],
                threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> bool:
    """True when the token sets overlap at or above threshold."""
    return jaccard_similarity(set(tokens_a), set(tokens_b)) >= threshold


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters."""
    return math.ceil(len(text) / 4)
