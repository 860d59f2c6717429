"""
Memory Drift - Transcript Parser
==================================
Loads transcripts into the canonical Transcript / TranscriptMessage shape.
Handles a messages array, {messages: [...]}, Claude.ai export JSON, and
plain text with role markers.
"""

import json
import logging
import re
from typing import Any, Optional

from models import Transcript, TranscriptMessage, Role
from normalize import estimate_tokens

logger = logging.getLogger(__name__)

# Canonical role mapping
ROLE_MAP = {
    "user": "user",
    "human": "user",
    "person": "user",
    "customer": "user",
    "assistant": "assistant",
    "claude": "assistant",
    "model": "assistant",
    "ai": "assistant",
    "bot": "assistant",
    "system": "system",
    "tool": "tool",
    "function": "tool",
}

ROLE_MARKER_PATTERN = r'(?:^|\n)(Human|User|Assistant|Claude|System)\s*:\s*'


def normalize_role(raw_role: Any) -> str:
    """Map a raw role label onto a Role value; unknown labels become user."""
    label = str(raw_role or "user").lower().strip()
    return ROLE_MAP.get(label, Role.USER.value)


def _stringify_content(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Handle content blocks
        return " ".join(
            str(block.get("text", "")) for block in content
            if isinstance(block, dict) and block.get("type", "text") == "text"
        )
    if isinstance(content, dict):
        if "text" in content:
            return str(content["text"])
        return json.dumps(content, ensure_ascii=False)
    return str(content)


def normalize_message(msg: dict, array_idx: int) -> TranscriptMessage:
    """Coerce one raw message dict; idx falls back to the array position."""
    idx = msg.get("idx")
    if isinstance(idx, bool) or not isinstance(idx, int):
        idx = array_idx
    content = _stringify_content(msg.get("content", msg.get("text")))
    tokens = msg.get("tokens")
    if isinstance(tokens, bool) or not isinstance(tokens, int):
        tokens = estimate_tokens(content)

    return TranscriptMessage(
        idx=idx,
        role=normalize_role(msg.get("role", msg.get("sender"))),
        content=content,
        tokens=tokens,
        ts=msg.get("ts") or None,
        session_id=msg.get("session_id") or None,
        metadata=msg.get("metadata") or None,
    )


def normalize_transcript(raw: Any, max_messages: Optional[int] = None) -> Transcript:
    """
    Normalize decoded JSON into a Transcript.

    Raises ValueError("Invalid transcript: ...") for shapes that carry no
    message array. Messages reusing an idx already seen are dropped.
    """
    if isinstance(raw, list):
        messages = raw
        schema_version = "1.0"
    elif isinstance(raw, dict) and isinstance(raw.get("messages"), list):
        messages = raw["messages"]
        schema_version = str(raw.get("schema_version") or "1.0")
    elif isinstance(raw, dict) and isinstance(raw.get("chat_messages"), list):
        messages = raw["chat_messages"]
        schema_version = "claude-export"
    else:
        raise ValueError("Invalid transcript: expected messages array or { messages: [...] }")

    if not messages:
        logger.warning("Empty transcript (no messages)")

    if max_messages and max_messages > 0:
        messages = messages[:max_messages]

    normalized = []
    seen_idxs = set()
    for array_idx, msg in enumerate(messages):
        if not isinstance(msg, dict):
            logger.warning("Skipping non-object message at position %d", array_idx)
            continue
        message = normalize_message(msg, array_idx)
        if message.idx in seen_idxs:
            logger.warning("Skipping message with duplicate idx %d", message.idx)
            continue
        seen_idxs.add(message.idx)
        normalized.append(message)

    return Transcript(schema_version=schema_version, messages=normalized)


def parse_role_marked_text(raw_text: str) -> list[dict]:
    """Split "User: ... / Assistant: ..." text into raw message dicts."""
    parts = re.split(ROLE_MARKER_PATTERN, raw_text, flags=re.IGNORECASE)
    messages = []
    # parts[0] is text before first marker (often empty)
    i = 1
    while i < len(parts) - 1:
        messages.append({"role": parts[i].strip(), "content": parts[i + 1].strip()})
        i += 2
    return messages


def parse_transcript(raw_text: str, max_messages: Optional[int] = None) -> Transcript:
    """
    Parse transcript text of any supported format.

    JSON is tried first, then role-marked plain text. Anything else comes
    back as an empty "raw" transcript carrying the original text.
    """
    try:
        data = json.loads(raw_text)
    except (json.JSONDecodeError, TypeError):
        data = None

    if data is not None:
        try:
            return normalize_transcript(data, max_messages)
        except ValueError:
            logger.warning("JSON input is not a transcript; falling back to text parsing")

    messages = parse_role_marked_text(raw_text or "")
    if messages:
        return normalize_transcript(messages, max_messages)

    return Transcript(schema_version="raw", messages=[], raw_text=raw_text)


def load_transcript(path: str, max_messages: Optional[int] = None) -> Transcript:
    """Read a transcript file from disk and parse it."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_text = f.read()
    except FileNotFoundError:
        raise FileNotFoundError(f"Transcript file not found: {path}") from None
    return parse_transcript(raw_text, max_messages)
