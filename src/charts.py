"""Plotly figures shared by the dashboard and the PDF report."""

from __future__ import annotations

import pandas as pd
import plotly.graph_objects as go


def cashflow_figure(df: pd.DataFrame, title: str = "Monthly Cashflow") -> go.Figure | None:
    if df.empty:
        return None
    fig = go.Figure()
    fig.add_trace(go.Bar(x=df["Month"], y=df["Cash In"], name="Cash In", marker_color="#10b981"))
    fig.add_trace(go.Bar(x=df["Month"], y=-df["Cash Out"], name="Cash Out", marker_color="#ef4444"))
    fig.add_trace(
        go.Scatter(x=df["Month"], y=df["Cumulative Cash"], name="Cumulative Cash", mode="lines+markers", yaxis="y2")
    )
    fig.update_layout(
        title=title,
        barmode="relative",
        yaxis=dict(title="Monthly flow"),
        yaxis2=dict(title="Cumulative cash", overlaying="y", side="right"),
        legend=dict(orientation="h"),
    )
    return fig


def scenario_figure(frames: dict[str, pd.DataFrame], title: str = "Cumulative Cash by Scenario") -> go.Figure | None:
    frames = {name: df for name, df in frames.items() if not df.empty}
    if not frames:
        return None
    fig = go.Figure()
    for name, df in frames.items():
        fig.add_trace(go.Scatter(x=df["Month"], y=df["Cumulative Cash"], name=name, mode="lines"))
    fig.add_hline(y=0, line_dash="dash", line_color="#94a3b8")
    fig.update_layout(title=title, yaxis=dict(title="Cumulative cash"), legend=dict(orientation="h"))
    return fig
