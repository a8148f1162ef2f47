from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from titanic_insights.planner import ChartType


COLORS = ["#0088FE", "#00C49F", "#FFBB28", "#FF8042", "#8884d8", "#82ca9d"]
ACCENT = "#6366f1"


@dataclass(frozen=True)
class ChartDataPoint:
    name: str
    value: float


@dataclass
class Chart:
    type: ChartType
    title: str
    data: list[ChartDataPoint] = field(default_factory=list)

    @property
    def is_renderable(self) -> bool:
        return self.type is not ChartType.NONE and bool(self.data)


def build_chart_points(rows: Sequence[dict[str, Any]]) -> list[ChartDataPoint]:
    """One point per row from the first two columns; fewer than two columns gives no points."""
    if not rows:
        return []

    keys = list(rows[0].keys())
    if len(keys) < 2:
        return []

    label_key, value_key = keys[0], keys[1]
    return [
        ChartDataPoint(name=_as_label(row.get(label_key)), value=_as_number(row.get(value_key)))
        for row in rows
    ]


def build_figure(chart: Chart | None) -> go.Figure | None:
    if chart is None or not chart.is_renderable:
        return None

    frame = pd.DataFrame(
        {
            "name": [point.name for point in chart.data],
            "value": [point.value for point in chart.data],
        }
    )

    if chart.type is ChartType.BAR:
        figure = px.bar(frame, x="name", y="value", title=chart.title)
        figure.update_traces(marker_color=ACCENT)
    elif chart.type is ChartType.PIE:
        figure = px.pie(
            frame,
            names="name",
            values="value",
            title=chart.title,
            hole=0.75,
            color_discrete_sequence=COLORS,
        )
    else:
        figure = px.line(frame, x="name", y="value", title=chart.title, markers=True)
        figure.update_traces(line_color=ACCENT)

    figure.update_layout(xaxis_title=None, yaxis_title=None, height=300)
    return figure


def _as_label(value: Any) -> str:
    if value is None:
        return "NULL"
    return str(value)


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return math.nan
