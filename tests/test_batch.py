"""
Tests for batch_inspect.py - export loading, per-conversation rows, outputs.
"""

import sys, os, json
import pytest
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from batch_inspect import SUMMARY_COLUMNS, load_conversations, summarize_conversation, run_batch


def conversation(uuid, name, texts):
    senders = ["human", "assistant"]
    return {
        "uuid": uuid,
        "name": name,
        "chat_messages": [
            {"sender": senders[i % 2], "text": text} for i, text in enumerate(texts)
        ],
    }


@pytest.fixture
def export_file(tmp_path):
    conversations = [
        conversation("c1", "Resets", [
            "Tell me a story",
            "Let's start over.",
            "Continue please",
            "Starting over again.",
        ]),
        conversation("c2", "Clean", [
            "What is two plus two",
            "Four.",
            "Thanks a lot",
            "You're welcome.",
        ]),
        conversation("c3", "Too short", ["hi"]),
    ]
    path = tmp_path / "conversations.json"
    path.write_text(json.dumps(conversations), encoding="utf-8")
    return path


class TestLoadConversations:
    def test_list(self, export_file):
        assert len(load_conversations(str(export_file))) == 3

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"messages": []}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_conversations(str(path))


class TestSummarizeConversation:
    def test_counts_events(self, export_file):
        conv = load_conversations(str(export_file))[0]
        row = summarize_conversation(conv)
        assert set(row) == set(SUMMARY_COLUMNS)
        assert row["session_reset"] == 2
        assert row["drift_score"] == 40
        assert row["message_count"] == 4


class TestRunBatch:
    def test_outputs(self, export_file, tmp_path):
        out = tmp_path / "out"
        df = run_batch(str(export_file), min_messages=2, output_dir=str(out))
        assert list(df["uuid"]) == ["c1", "c2"]
        assert list(df.columns) == SUMMARY_COLUMNS
        assert (out / "summary.csv").exists()
        summary = (out / "batch_summary.txt").read_text(encoding="utf-8")
        assert "Total conversations analyzed: 2" in summary
        assert "Total conversations skipped: 1" in summary
        assert "[ 40/100] Resets" in summary

    def test_nothing_eligible(self, export_file, tmp_path):
        df = run_batch(str(export_file), min_messages=50, output_dir=str(tmp_path / "out"))
        assert df.empty
