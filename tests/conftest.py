"""
Shared fixtures for memory-drift tests.
"""

import sys
import os
import pytest

# Ensure src/ is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import TranscriptMessage, Transcript
from normalize import estimate_tokens


def build_messages(pairs: list) -> list:
    """[(role, content), ...] -> TranscriptMessage list with idx = position."""
    return [
        TranscriptMessage(idx=i, role=role, content=content, tokens=estimate_tokens(content))
        for i, (role, content) in enumerate(pairs)
    ]


# ---------------------------------------------------------------------------
# Reusable transcript fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def make_messages():
    """Factory fixture wrapping build_messages."""
    return build_messages


@pytest.fixture
def bangla_transcript():
    """User keeps asking for Bangla; the preference is restated well apart."""
    pairs = [
        ("user", "Hi there"),
        ("assistant", "Hello! How can I help?"),
        ("user", "Please reply in Bangla"),
        ("assistant", "Sure, here is the answer in English."),
        ("user", "What is the weather like in Dhaka today?"),
        ("assistant", "It is sunny in Dhaka."),
        ("user", "And tomorrow?"),
        ("assistant", "Probably rain tomorrow."),
        ("user", "Reply in Bangla please"),
        ("assistant", "Okay."),
    ]
    return Transcript(messages=build_messages(pairs))


@pytest.fixture
def reset_heavy_transcript():
    """20 assistant messages each implying a fresh start."""
    pairs = [("assistant", "Sure, let's start over from the beginning.")] * 20
    return Transcript(messages=build_messages(pairs))


@pytest.fixture
def empty_transcript():
    """Edge case: no messages."""
    return Transcript(messages=[])
