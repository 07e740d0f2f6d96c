"""Monthly comparison chart.

The chart is an optional capability. The composition root chooses
PlotlyChartRenderer or NullChartRenderer from `LEDGER_CHARTS_ENABLED`;
callers treat a `None` figure as "show the numbers only".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

import plotly.graph_objects as go

from ledger.models.transaction import LedgerSummary

CURRENT_COLOR = "#3b82f6"
PREVIOUS_COLOR = "#94a3b8"


class ChartRenderer(ABC):
    """Builds the this-month vs last-month income/expense chart."""

    @abstractmethod
    def monthly_comparison(
        self,
        current: LedgerSummary,
        previous: LedgerSummary,
        formatter: Callable[[float], str],
    ) -> Optional[go.Figure]:
        ...


class PlotlyChartRenderer(ChartRenderer):
    """Grouped bar chart: income and expense, this month next to last month."""

    def __init__(self, height: int = 300):
        self.height = height

    def monthly_comparison(
        self,
        current: LedgerSummary,
        previous: LedgerSummary,
        formatter: Callable[[float], str],
    ) -> go.Figure:
        labels = ["Income", "Expense"]
        this_month = [float(current.income), float(current.expense)]
        last_month = [float(previous.income), float(previous.expense)]

        fig = go.Figure()
        fig.add_trace(go.Bar(
            name="This month",
            x=labels,
            y=this_month,
            marker_color=CURRENT_COLOR,
            hovertext=[formatter(v) for v in this_month],
            hoverinfo="text",
        ))
        fig.add_trace(go.Bar(
            name="Last month",
            x=labels,
            y=last_month,
            marker_color=PREVIOUS_COLOR,
            hovertext=[formatter(v) for v in last_month],
            hoverinfo="text",
        ))
        fig.update_layout(
            barmode="group",
            height=self.height,
            margin=dict(l=20, r=20, t=30, b=20),
            legend=dict(orientation="h"),
        )
        return fig


class NullChartRenderer(ChartRenderer):
    """Used when charts are disabled."""

    def monthly_comparison(
        self,
        current: LedgerSummary,
        previous: LedgerSummary,
        formatter: Callable[[float], str],
    ) -> None:
        return None


def create_chart_renderer(enabled: bool) -> ChartRenderer:
    return PlotlyChartRenderer() if enabled else NullChartRenderer()
