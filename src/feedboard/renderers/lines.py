from __future__ import annotations

from ..runtime import ConnectionState, WidgetSnapshot
from ..widgets.base import SortDirection, format_number
from ..widgets.card import CardView
from ..widgets.chart import ChartView
from ..widgets.table import TableView

SPARK_CHARS = "▁▂▃▄▅▆▇█"

def title_for(snap: WidgetSnapshot) -> str:
    title = snap.label or snap.widget_id
    return f"{title} *" if snap.is_live else title

def status_lines(snap: WidgetSnapshot) -> list[str] | None:
    if snap.cooldown_seconds_remaining > 0:
        return ["API Rate Limit", f"Cooling down: {snap.cooldown_seconds_remaining}s"]
    if snap.connection_state is ConnectionState.CONNECTING and not snap.has_data:
        return ["Connecting..."]
    if snap.last_error is not None:
        out = ["Connection Failed", snap.last_error.message]
        if snap.last_error.needs_credentials:
            out.append("Add an API key to this widget's config")
        return out
    return None

def sparkline(values: list[float]) -> str:
    if not values:
        return ""
    lo, hi = min(values), max(values)
    span = hi - lo
    if span == 0:
        return SPARK_CHARS[len(SPARK_CHARS) // 2] * len(values)
    top = len(SPARK_CHARS) - 1
    return "".join(SPARK_CHARS[round((v - lo) / span * top)] for v in values)

def card_lines(view: CardView) -> list[str]:
    return [f"{e.label}: {e.display}" for e in view.entries]

def table_lines(view: TableView) -> list[str]:
    if view.total == 0:
        return ["No data found."]
    header = []
    for col in view.columns:
        marker = ""
        if view.view_state.sort_key == col.path:
            marker = " ^" if view.view_state.sort_direction is SortDirection.ASC else " v"
        header.append(col.label + marker)
    out = [" | ".join(header)]
    out.extend(" | ".join(row) for row in view.cells)
    if view.view_state.search_query:
        out.append(f"search: {view.view_state.search_query}")
    out.append(f"{view.total} items  {view.page.label}")
    return out

def chart_lines(view: ChartView, spark: bool = True) -> list[str]:
    values = [p.value for p in view.points if p.value is not None]
    if not values:
        return ["No data found."]
    latest = format_number(view.latest, 2) if view.latest is not None else "-"
    out = [f"{view.label}: {latest}"]
    if spark:
        out.append(sparkline(values))
    if view.has_synthetic_history:
        out.append("(lead-in points are synthetic)")
    return out

def snapshot_lines(snap: WidgetSnapshot, spark: bool = True) -> list[str]:
    status = status_lines(snap)
    if status is not None:
        return status
    view = snap.view
    if isinstance(view, CardView):
        return card_lines(view)
    if isinstance(view, TableView):
        return table_lines(view)
    if isinstance(view, ChartView):
        return chart_lines(view, spark=spark)
    return [str(view)[:120]]
