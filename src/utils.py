"""
Memory Drift - Utilities
==========================
Report output: wire-format dicts, JSON export, and the readable text report.
"""

import json
from dataclasses import asdict

from models import DriftEvent, InspectResult

TIMING_KEYS = ["extract_facts", "repetition", "session_reset", "contradictions", "pref_forgotten"]


# ---------------------------------------------------------------------------
# Wire format
# ---------------------------------------------------------------------------

def event_to_dict(event: DriftEvent) -> dict:
    """Flatten an event with its type discriminator first."""
    data = asdict(event)
    event_type = data.pop("type")
    if data.get("evidence", {}).get("fact_key") is None:
        data["evidence"].pop("fact_key", None)
    return {"type": event_type, **data}


def result_to_dict(result: InspectResult) -> dict:
    return {
        "drift_score": result.drift_score,
        "raw_score": result.raw_score,
        "token_waste_pct": result.token_waste_pct,
        "events": [event_to_dict(e) for e in result.events],
        "should_have_been_memory": [asdict(f) for f in result.should_have_been_memory],
        "timings_ms": dict(result.timings_ms),
    }


def report_to_json(result: InspectResult) -> str:
    """Export result as JSON for programmatic consumption."""
    return json.dumps(result_to_dict(result), indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Report Output
# ---------------------------------------------------------------------------

def format_report(result: InspectResult) -> str:
    """Format inspection result as readable text."""
    lines = []
    lines.append("=== Memory Drift Inspect Report ===")
    lines.append(f"Drift Score: {result.drift_score}/100 (raw: {result.raw_score})")
    lines.append(f"Token Waste: {result.token_waste_pct}%")
    lines.append("")

    if result.events:
        lines.append("Critical Events:")
        for e in result.events:
            idx_list = ",".join(str(i) for i in e.evidence.msg_idxs)
            lines.append(f"- [{e.type}] sev={e.severity} conf={e.confidence:.2f} idx={idx_list}")
            lines.append(f"  {e.summary}")
    else:
        lines.append("Critical Events: None detected")
    lines.append("")

    if result.should_have_been_memory:
        lines.append("Should-have-been memory (top):")
        for f in result.should_have_been_memory:
            lines.append(f'- {f.fact_key}="{f.fact_value}" @{f.msg_idx} (conf {f.confidence:.2f})')
    else:
        lines.append("Should-have-been memory: None extracted")
    lines.append("")

    lines.append("Timings (ms):")
    for key in TIMING_KEYS:
        lines.append(f"- {key}: {result.timings_ms.get(key, 0)}")

    return "\n".join(lines)
