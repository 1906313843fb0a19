from __future__ import annotations

from . import card, chart, table
from .base import WidgetView

REGISTRY: dict[str, WidgetView] = {
    card.name: card,
    table.name: table,
    chart.name: chart,
}
