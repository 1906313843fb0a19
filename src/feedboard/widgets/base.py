from __future__ import annotations

import json
import math
import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Protocol

from ..config import WidgetSourceConfig
from ..paths import MISSING


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


VIEW_STATE_FIELDS = frozenset({"search_query", "sort_key", "sort_direction", "page_index"})


@dataclass(frozen=True)
class ViewState:
    search_query: str = ""
    sort_key: str | None = None
    sort_direction: SortDirection = SortDirection.ASC
    page_index: int = 0

    def with_search(self, query: str) -> "ViewState":
        if query == self.search_query:
            return self
        return replace(self, search_query=query, page_index=0)

    def toggle_sort(self, key: str) -> "ViewState":
        if key == self.sort_key and self.sort_direction is SortDirection.ASC:
            direction = SortDirection.DESC
        else:
            direction = SortDirection.ASC
        return replace(self, sort_key=key, sort_direction=direction)

    def with_page(self, index: int) -> "ViewState":
        return replace(self, page_index=max(0, int(index)))

    def updated(self, **changes: Any) -> "ViewState":
        unknown = set(changes) - VIEW_STATE_FIELDS
        if unknown:
            raise TypeError(f"Unknown view state fields: {sorted(unknown)}")
        state = self
        if "search_query" in changes:
            state = state.with_search(str(changes.pop("search_query")))
        if "sort_direction" in changes:
            changes["sort_direction"] = SortDirection(changes["sort_direction"])
        if "page_index" in changes:
            changes["page_index"] = max(0, int(changes["page_index"]))
        return replace(state, **changes)


class WidgetView(Protocol):
    name: str

    def build(self, raw: Any, config: WidgetSourceConfig, view_state: ViewState, rng: random.Random) -> Any:
        ...


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def stringify(value: Any) -> str:
    if value is MISSING:
        return ""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def format_number(value: int | float, max_decimals: int = 2) -> str:
    if isinstance(value, int):
        return f"{value:,}"
    if not math.isfinite(value):
        return str(value)
    text = f"{value:,.{max_decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def to_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None or value is MISSING:
        return None
    # Surrounding whitespace is fine, digit-group underscores are not.
    if isinstance(value, str) and "_" in value:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
