from __future__ import annotations

from typing import List, Sequence

import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from ..models.schemas import LaggingSummary


def summaries_to_frame(summaries: Sequence[LaggingSummary]) -> pd.DataFrame:
    """One row per year with the headline counts and rates as flat columns."""
    rows: List[dict] = []
    for s in summaries:
        rows.append({
            "year": s.year,
            "accidents": s.accident_count.total,
            "employee_accidents": s.accident_count.employee,
            "contractor_accidents": s.accident_count.contractor,
            "victims": s.victim_count.total,
            "property_damage": s.property_damage.total,
            "ltir": s.ltir.total,
            "trir": s.trir.total,
            "severity_rate": s.severity_rate.total,
            "employee_ltir": s.ltir.employee,
            "contractor_ltir": s.ltir.contractor,
            "employee_trir": s.trir.employee,
            "contractor_trir": s.trir.contractor,
        })
    return pd.DataFrame(rows, columns=[
        "year", "accidents", "employee_accidents", "contractor_accidents", "victims",
        "property_damage", "ltir", "trir", "severity_rate", "employee_ltir",
        "contractor_ltir", "employee_trir", "contractor_trir",
    ])


def create_accident_trend_chart(summaries: Sequence[LaggingSummary]):
    df = summaries_to_frame(summaries)
    if df.empty:
        return go.Figure()
    years = df["year"].astype(str)
    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(go.Bar(x=years, y=df["employee_accidents"], name="Employee accidents", marker_color="#1f77b4"), secondary_y=False)
    fig.add_trace(go.Bar(x=years, y=df["contractor_accidents"], name="Contractor accidents", marker_color="#ff7f0e"), secondary_y=False)
    fig.add_trace(go.Scatter(x=years, y=df["victims"], name="Victims", mode="lines+markers", line=dict(color="#d62728", width=3)), secondary_y=True)
    fig.update_layout(
        barmode="stack",
        title={"text": "Accident Trend by Year", "x": 0.01, "xanchor": "left"},
        height=420,
        margin=dict(t=60, l=50, r=50, b=40),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    fig.update_yaxes(title_text="Accidents", secondary_y=False)
    fig.update_yaxes(title_text="Victims", secondary_y=True)
    return fig


def create_safety_index_chart(summaries: Sequence[LaggingSummary]):
    df = summaries_to_frame(summaries)
    if df.empty:
        return go.Figure()
    years = df["year"].astype(str)
    fig = make_subplots(rows=1, cols=2, subplot_titles=["LTIR / TRIR", "Severity Rate"], horizontal_spacing=0.12)
    fig.add_trace(go.Scatter(x=years, y=df["ltir"], name="LTIR", mode="lines+markers"), row=1, col=1)
    fig.add_trace(go.Scatter(x=years, y=df["trir"], name="TRIR", mode="lines+markers"), row=1, col=1)
    fig.add_trace(go.Bar(x=years, y=df["severity_rate"], name="Severity rate", marker_color="#9467bd"), row=1, col=2)
    fig.update_layout(
        title={"text": "Safety Indices by Year", "x": 0.01, "xanchor": "left"},
        height=420,
        margin=dict(t=70, l=50, r=30, b=40),
    )
    return fig
