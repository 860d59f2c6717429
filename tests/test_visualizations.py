"""
Tests for src/visualizations.py - event frame and Plotly figure builders.
"""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import plotly.graph_objects as go

from visualizations import (
    EVENT_COLUMNS,
    events_frame,
    score_color,
    score_label,
    build_event_timeline_fig,
    build_event_type_fig,
    build_score_gauge,
)
from models import EventEvidence, RepetitionCluster, SessionReset, UnknownEvent, InspectResult


def sample_result():
    events = [
        SessionReset(4, 0.9, EventEvidence(msg_idxs=[5]), "reset", reset_phrase="start over"),
        SessionReset(4, 0.9, EventEvidence(msg_idxs=[9]), "reset", reset_phrase="start over"),
        RepetitionCluster(2, 1.0, EventEvidence(msg_idxs=[0, 4]), "repeat", cluster_size=2),
        UnknownEvent(3, 0.5, EventEvidence(msg_idxs=[2]), "odd", type="tone_shift"),
    ]
    return InspectResult(drift_score=50, raw_score=50, token_waste_pct=10.0, events=events)


class TestHelpers:
    def test_score_label_bands(self):
        assert score_label(0) == "Clean"
        assert score_label(25) == "Low Drift"
        assert score_label(50) == "Moderate"
        assert score_label(60) == "Elevated"
        assert score_label(100) == "Severe"

    def test_score_color_returns_hex(self):
        for score in (0, 30, 60, 90):
            assert score_color(score).startswith("#")


class TestEventsFrame:
    def test_columns_and_rows(self):
        df = events_frame(sample_result())
        assert list(df.columns) == EVENT_COLUMNS
        assert len(df) == 4
        repeat = df[df["type"] == "repetition_cluster"].iloc[0]
        assert repeat["first_idx"] == 0
        assert repeat["last_idx"] == 4
        assert repeat["msg_count"] == 2
        assert repeat["weight"] == 10

    def test_unknown_type_weight_zero(self):
        df = events_frame(sample_result())
        assert df[df["type"] == "tone_shift"].iloc[0]["weight"] == 0

    def test_empty(self):
        df = events_frame(InspectResult(drift_score=0, raw_score=0, token_waste_pct=0.0))
        assert df.empty
        assert list(df.columns) == EVENT_COLUMNS


class TestFigures:
    def test_timeline_one_trace_per_type(self):
        fig = build_event_timeline_fig(sample_result())
        assert isinstance(fig, go.Figure)
        assert [t.name for t in fig.data] == ["session_reset", "repetition_cluster", "tone_shift"]

    def test_event_type_bars(self):
        fig = build_event_type_fig(sample_result())
        bar = fig.data[0]
        assert list(bar.x) == ["session_reset", "repetition_cluster", "tone_shift"]
        assert list(bar.y) == [40, 10, 0]
        assert list(bar.text) == ["2x", "1x", "1x"]

    def test_event_type_empty(self):
        fig = build_event_type_fig(InspectResult(drift_score=0, raw_score=0, token_waste_pct=0.0))
        assert isinstance(fig, go.Figure)
        assert len(fig.data) == 0

    def test_gauge(self):
        fig = build_score_gauge(sample_result())
        assert fig.data[0].value == 50
