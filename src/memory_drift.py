"""
Memory Drift - Entry Point
============================
Inspection pipeline and command-line interface.
"""
import argparse
import json
import logging
import sys
import time
from typing import Optional

# --- Models ---
from models import (
    Transcript, InspectResult, ExtractedFact, DriftEvent,
    fact_from_dict, event_from_dict, coerce_records,
)

# --- Configuration ---
from drift_config import InspectConfig, load_config

# --- Parser ---
from parsers.transcript_parser import load_transcript

# --- Detectors ---
from detectors.base import DetectorRegistry
import detectors.repetition
import detectors.session_reset
import detectors.facts
from detectors.facts import prepare_facts
from detectors.fact_extraction import extract_facts

# --- Scoring & output ---
from scoring import (
    sort_events,
    calculate_drift_score,
    calculate_token_waste,
    select_memory_candidates,
)
from utils import format_report, report_to_json

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def _capped(transcript: Transcript, config: InspectConfig) -> list:
    if config.max_messages and config.max_messages > 0:
        return transcript.messages[:config.max_messages]
    return list(transcript.messages)


def _build_result(messages: list, events: list, facts: list,
                  config: InspectConfig, timings: dict) -> InspectResult:
    events = sort_events(events)
    drift_score, raw_score = calculate_drift_score(events, config.weights)
    token_waste_pct = calculate_token_waste(messages, events)
    return InspectResult(
        drift_score=drift_score,
        raw_score=raw_score,
        token_waste_pct=round(token_waste_pct, 1),
        events=events,
        should_have_been_memory=select_memory_candidates(facts, config.memory_top_n),
        timings_ms=timings,
    )


# ---------------------------------------------------------------------------
# Inspection pipeline
# ---------------------------------------------------------------------------

def inspect_transcript(
    transcript: Transcript,
    facts: Optional[list] = None,
    config: Optional[InspectConfig] = None,
) -> InspectResult:
    """
    Full offline inspection of one transcript.

    Pipeline:
      1. Cap messages (config.max_messages)
      2. Facts: validate the supplied list, or extract heuristically when
         facts is None
      3. Run every registered detector over the same message list
      4. Sort events, score, estimate token waste, pick memory candidates

    Degenerate input (no messages, no facts) yields a zero result.
    """
    config = config or InspectConfig()
    messages = _capped(transcript, config)
    timings = {}

    start = time.perf_counter()
    if facts is None:
        facts = extract_facts(messages)
    facts = prepare_facts(facts, messages)
    timings["extract_facts"] = _elapsed_ms(start)

    events = []
    for detector in DetectorRegistry.get_detectors(config):
        start = time.perf_counter()
        found = detector.detect(messages, facts=facts)
        timings[detector.timing_key] = _elapsed_ms(start)
        logger.debug("%s: %d events in %.2f ms",
                     type(detector).__name__, len(found), timings[detector.timing_key])
        events.extend(found)

    return _build_result(messages, events, facts, config, timings)


def inspect_events(
    transcript: Transcript,
    events: list,
    facts: Optional[list] = None,
    config: Optional[InspectConfig] = None,
) -> InspectResult:
    """
    Score events produced elsewhere (e.g. a hosted analysis response).

    Event and fact dicts are coerced; malformed records and events that
    reference messages outside the transcript are skipped.
    """
    config = config or InspectConfig()
    messages = _capped(transcript, config)
    known = {m.idx for m in messages}

    typed = []
    for event in events:
        if isinstance(event, dict):
            event = event_from_dict(event)
        if not isinstance(event, DriftEvent):
            logger.warning("Skipping malformed event: %r", event)
            continue
        missing = [i for i in event.evidence.msg_idxs if i not in known]
        if missing:
            logger.warning("Skipping %s event: msg_idxs %s not in transcript", event.type, missing)
            continue
        typed.append(event)

    facts = prepare_facts(facts or [], messages)
    return _build_result(messages, typed, facts, config, {})


# ---------------------------------------------------------------------------
# CLI Entry Point
# ---------------------------------------------------------------------------

def load_facts(path: str) -> list[ExtractedFact]:
    """Read a JSON facts file: a list, or {"facts": [...]}."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("facts", [])
    if not isinstance(data, list):
        raise ValueError(f"Facts file must contain a list of facts: {path}")
    return coerce_records(data, fact_from_dict)


def main(argv: Optional[list] = None) -> int:
    """Run inspection from command line."""
    parser = argparse.ArgumentParser(
        description="Memory Drift - inspect a conversation transcript for memory drift"
    )
    parser.add_argument("transcript", help="Path to transcript (JSON or plain text)")
    parser.add_argument("--facts", help="JSON file with extracted facts (default: heuristic extraction)")
    parser.add_argument("--config", help="YAML config file (default: config/memory_drift.yaml)")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--max-messages", type=int, default=2000,
                        help="Cap number of messages processed (default: 2000)")
    parser.add_argument("--chart", help="Write an HTML event timeline to this path")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        config.max_messages = args.max_messages
        transcript = load_transcript(args.transcript, args.max_messages)
        facts = load_facts(args.facts) if args.facts else None
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if transcript.raw_text is not None:
        logger.warning("Transcript has no recognisable messages; nothing to inspect")

    result = inspect_transcript(transcript, facts=facts, config=config)

    if args.chart:
        from visualizations import build_event_timeline_fig
        build_event_timeline_fig(result).write_html(args.chart)

    if args.json:
        print(report_to_json(result))
    else:
        print(format_report(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
