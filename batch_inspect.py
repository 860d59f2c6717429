"""
Batch Inspect Runner - Process all conversations from a Claude data export.
Produces a ranked summary of memory drift across the full dataset.
"""
import json
import sys
import os
from datetime import datetime

import pandas as pd

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))
from memory_drift import inspect_transcript
from drift_config import load_config
from parsers.transcript_parser import normalize_transcript
from visualizations import score_label

SUMMARY_COLUMNS = [
    "uuid", "name", "message_count", "drift_score", "raw_score", "token_waste_pct",
    "repetition_cluster", "session_reset", "preference_forgotten", "contradiction",
]


def load_conversations(export_path: str) -> list[dict]:
    """Load conversations from Claude data export JSON."""
    with open(export_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Export must be a list of conversations: {export_path}")
    return data


def summarize_conversation(conv: dict, config=None) -> dict:
    """Inspect one export conversation and flatten the result to a row."""
    transcript = normalize_transcript({"chat_messages": conv.get("chat_messages", [])})
    result = inspect_transcript(transcript, config=config)
    row = {
        "uuid": conv.get("uuid", ""),
        "name": (conv.get("name") or "unnamed")[:60],
        "message_count": len(transcript.messages),
        "drift_score": result.drift_score,
        "raw_score": result.raw_score,
        "token_waste_pct": result.token_waste_pct,
        "repetition_cluster": 0,
        "session_reset": 0,
        "preference_forgotten": 0,
        "contradiction": 0,
    }
    for event in result.events:
        if event.type in row:
            row[event.type] += 1
    return row


def write_summary(df: pd.DataFrame, path: str, skipped: int, errors: list) -> None:
    """Ranked plain-text summary of a batch run."""
    with open(path, 'w', encoding='utf-8') as f:
        f.write("=" * 70 + "\n")
        f.write("BATCH MEMORY DRIFT SUMMARY\n")
        f.write(f"Generated: {datetime.now().isoformat()}\n")
        f.write("=" * 70 + "\n\n")

        f.write(f"Total conversations analyzed: {len(df)}\n")
        f.write(f"Total conversations skipped: {skipped}\n")
        f.write(f"Errors: {len(errors)}\n\n")

        if not df.empty:
            f.write("AGGREGATE STATISTICS\n")
            f.write("-" * 40 + "\n")
            f.write(f"  Total messages processed: {int(df['message_count'].sum())}\n")
            f.write(f"  Average drift score: {df['drift_score'].mean():.1f}/100\n")
            f.write(f"  Average token waste: {df['token_waste_pct'].mean():.1f}%\n")
            for column in SUMMARY_COLUMNS[6:]:
                f.write(f"  Total {column} events: {int(df[column].sum())}\n")
            f.write("\n")

            f.write("SCORE DISTRIBUTION\n")
            f.write("-" * 40 + "\n")
            labels = df["drift_score"].map(score_label)
            for label in ["Clean", "Low Drift", "Moderate", "Elevated", "Severe"]:
                count = int((labels == label).sum())
                pct = count / len(df) * 100
                bar = "#" * int(pct / 2)
                f.write(f"  {label:12s}: {count:3d} ({pct:5.1f}%) {bar}\n")
            f.write("\n")

            f.write("TOP 20 HIGHEST DRIFT CONVERSATIONS\n")
            f.write("-" * 40 + "\n")
            for r in df.head(20).itertuples():
                safe = r.name.encode('ascii', 'replace').decode('ascii')
                f.write(f"  [{r.drift_score:3d}/100] {safe[:50]}\n")
                f.write(f"         msgs:{r.message_count} waste:{r.token_waste_pct}%"
                        f" rep:{r.repetition_cluster} reset:{r.session_reset}"
                        f" pref:{r.preference_forgotten} contra:{r.contradiction}\n")
            f.write("\n")

        if errors:
            f.write(f"ERRORS ({len(errors)})\n")
            f.write("-" * 40 + "\n")
            for e in errors:
                f.write(f"  {e['name'][:50]}: {e['error'][:80]}\n")


def run_batch(export_path: str, min_messages: int = 10, output_dir: str = "batch_results",
              config_path: str | None = None) -> pd.DataFrame:
    """Inspect every conversation meeting the minimum message threshold."""
    config = load_config(config_path)
    conversations = load_conversations(export_path)
    eligible = [c for c in conversations if len(c.get("chat_messages", [])) >= min_messages]
    print(f"{len(eligible)} of {len(conversations)} conversations with >= {min_messages} messages")

    os.makedirs(output_dir, exist_ok=True)

    rows = []
    errors = []
    for i, conv in enumerate(eligible):
        name = (conv.get("name") or "unnamed")[:60]
        safe_name = name.encode('ascii', 'replace').decode('ascii')
        print(f"[{i+1}/{len(eligible)}] {safe_name}...", end=" ", flush=True)
        try:
            row = summarize_conversation(conv, config)
        except (ValueError, TypeError) as e:
            print(f"ERROR: {e}")
            errors.append({"name": name, "error": str(e)})
            continue
        rows.append(row)
        print(f"DONE (score: {row['drift_score']}/100)")

    df = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    df = df.sort_values("drift_score", ascending=False, kind="stable").reset_index(drop=True)

    df.to_csv(os.path.join(output_dir, "summary.csv"), index=False)
    summary_path = os.path.join(output_dir, "batch_summary.txt")
    write_summary(df, summary_path, len(conversations) - len(eligible), errors)

    print(f"BATCH COMPLETE: {len(df)} conversations inspected")
    print(f"Summary: {summary_path}")
    return df


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="Batch inspect Claude conversations for memory drift")
    parser.add_argument("export_path", help="Path to conversations.json from Claude data export")
    parser.add_argument("--min-messages", type=int, default=10, help="Minimum messages to inspect (default: 10)")
    parser.add_argument("--output", default="batch_results", help="Output directory")
    parser.add_argument("--config", default=None, help="YAML config file")
    args = parser.parse_args()

    run_batch(args.export_path, args.min_messages, args.output, args.config)
