"""
Memory Drift - Visualization Module
=====================================
Plotly figure builders for an InspectResult. Takes dataclasses, returns
go.Figure; no UI framework needed.

Contains:
- score_color / score_label: drift score band helpers
- events_frame: one DataFrame row per event, shared by the builders
- build_event_timeline_fig: events placed on the message axis
- build_event_type_fig: score contribution per event type
- build_score_gauge: drift score gauge
"""

import pandas as pd
import plotly.graph_objects as go

from models import InspectResult
from drift_config import DEFAULT_WEIGHTS


# ---------------------------------------------------------------------------
# Shared layout config
# ---------------------------------------------------------------------------

PLOTLY_LAYOUT = dict(
    paper_bgcolor="rgba(0,0,0,0)",
    plot_bgcolor="rgba(0,0,0,0)",
    font=dict(color="#c4b8a3", family="JetBrains Mono, DM Sans, sans-serif", size=12),
    margin=dict(l=50, r=30, t=40, b=40),
)

EVENT_COLORS = {
    "repetition_cluster": "#f59e0b",
    "session_reset": "#ef4444",
    "preference_forgotten": "#a855f7",
    "contradiction": "#3b82f6",
}
UNKNOWN_COLOR = "#6b7280"

EVENT_COLUMNS = ["type", "severity", "confidence", "first_idx", "last_idx",
                 "msg_count", "summary", "weight"]


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------

def score_color(score: int) -> str:
    """Map a 0-100 drift score to a hex color (warm palette)."""
    if score <= 20:
        return "#22c55e"   # green: clean
    elif score <= 45:
        return "#f59e0b"   # amber: moderate
    elif score <= 70:
        return "#ef4444"   # red: elevated
    else:
        return "#dc2626"   # deep red: severe


def score_label(score: int) -> str:
    """Human-readable label for a 0-100 drift score."""
    if score <= 10:
        return "Clean"
    elif score <= 30:
        return "Low Drift"
    elif score <= 50:
        return "Moderate"
    elif score <= 75:
        return "Elevated"
    else:
        return "Severe"


def events_frame(result: InspectResult, weights: dict | None = None) -> pd.DataFrame:
    """One row per event, in result order."""
    weights = DEFAULT_WEIGHTS if weights is None else weights
    rows = []
    for e in result.events:
        idxs = e.evidence.msg_idxs
        rows.append({
            "type": e.type,
            "severity": e.severity,
            "confidence": e.confidence,
            "first_idx": min(idxs),
            "last_idx": max(idxs),
            "msg_count": len(idxs),
            "summary": e.summary,
            "weight": weights.get(e.type, 0),
        })
    return pd.DataFrame(rows, columns=EVENT_COLUMNS)


# ---------------------------------------------------------------------------
# Figures
# ---------------------------------------------------------------------------

def build_event_timeline_fig(result: InspectResult) -> go.Figure:
    """Scatter of events by message index and severity, one trace per type."""
    df = events_frame(result)
    fig = go.Figure()

    for event_type, group in df.groupby("type", sort=False):
        color = EVENT_COLORS.get(event_type, UNKNOWN_COLOR)
        fig.add_trace(go.Scatter(
            x=group["first_idx"],
            y=group["severity"],
            mode="markers",
            name=event_type,
            marker=dict(size=(group["msg_count"] * 4 + 6).tolist(), color=color,
                        line=dict(width=1, color=color)),
            hovertext=[f"#{row.first_idx}-{row.last_idx}: {row.summary[:60]}"
                       for row in group.itertuples()],
            hoverinfo="text",
        ))

    fig.update_layout(
        **PLOTLY_LAYOUT,
        height=380,
        xaxis=dict(title="Message index", gridcolor="#2a2623", zeroline=False),
        yaxis=dict(title="Severity", range=[0, 5.5], gridcolor="#2a2623", zeroline=False),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1,
                    bgcolor="rgba(0,0,0,0)", font=dict(size=11)),
        hovermode="closest",
    )
    return fig


def build_event_type_fig(result: InspectResult, weights: dict | None = None) -> go.Figure:
    """Bar chart of raw score contribution per event type."""
    df = events_frame(result, weights)
    if df.empty:
        return go.Figure()

    totals = df.groupby("type", sort=False).agg(count=("weight", "count"), points=("weight", "sum"))
    fig = go.Figure(go.Bar(
        x=totals.index.tolist(),
        y=totals["points"].tolist(),
        marker_color=[EVENT_COLORS.get(t, UNKNOWN_COLOR) for t in totals.index],
        text=[f"{c}x" for c in totals["count"]],
        textposition="outside",
    ))
    fig.update_layout(
        **PLOTLY_LAYOUT,
        height=320,
        xaxis=dict(title="Event type"),
        yaxis=dict(title="Score points", gridcolor="#2a2623"),
        showlegend=False,
    )
    return fig


def build_score_gauge(result: InspectResult) -> go.Figure:
    """Gauge of the clamped drift score, colored by band."""
    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=result.drift_score,
        title=dict(text=score_label(result.drift_score)),
        gauge=dict(
            axis=dict(range=[0, 100]),
            bar=dict(color=score_color(result.drift_score)),
        ),
    ))
    fig.update_layout(**PLOTLY_LAYOUT, height=260)
    return fig
