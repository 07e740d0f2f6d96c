"""Chart rendering package."""

from ledger.charts.renderer import (
    ChartRenderer,
    NullChartRenderer,
    PlotlyChartRenderer,
    create_chart_renderer,
)

__all__ = [
    "ChartRenderer",
    "NullChartRenderer",
    "PlotlyChartRenderer",
    "create_chart_renderer",
]
