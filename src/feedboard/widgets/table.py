from __future__ import annotations

import json
import math
import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ..config import FieldSpec, WidgetSourceConfig
from ..extract import extract_records
from ..paths import MISSING, resolve
from .base import SortDirection, ViewState, format_number, is_number, stringify

name = "table"

PAGE_SIZE = 5

@dataclass(frozen=True)
class Page:
    rows: list[Any]
    page_index: int
    page_count: int
    total: int

    @property
    def has_prev(self) -> bool:
        return self.page_index > 0

    @property
    def has_next(self) -> bool:
        return self.page_index < self.page_count - 1

    @property
    def label(self) -> str:
        return f"{self.page_index + 1} / {self.page_count or 1}"

@dataclass(frozen=True)
class TableView:
    columns: tuple[FieldSpec, ...]
    page: Page
    cells: list[list[str]]
    view_state: ViewState

    @property
    def total(self) -> int:
        return self.page.total

def filter_records(records: Sequence[Any], fields: Sequence[FieldSpec], query: str) -> list[Any]:
    if not query:
        return list(records)
    needle = query.lower()
    return [
        record for record in records
        if any(needle in stringify(resolve(record, f.path)).lower() for f in fields)
    ]

def sort_value(value: Any) -> tuple:
    # missing < null < bool < number < NaN < string < everything else (by JSON text)
    if value is MISSING:
        return (0, 0)
    if value is None:
        return (1, 0)
    if isinstance(value, bool):
        return (2, value)
    if is_number(value):
        if isinstance(value, float) and math.isnan(value):
            return (4, 0)
        return (3, value)
    if isinstance(value, str):
        return (5, value)
    return (6, json.dumps(value, sort_keys=True, default=str))

def sort_records(records: Sequence[Any], key: str | None, direction: SortDirection = SortDirection.ASC) -> list[Any]:
    if not key:
        return list(records)
    return sorted(
        records,
        key=lambda record: sort_value(resolve(record, key)),
        reverse=direction is SortDirection.DESC,
    )

def paginate(records: Sequence[Any], page_index: int, page_size: int = PAGE_SIZE) -> Page:
    total = len(records)
    page_index = max(0, page_index)
    start = page_index * page_size
    return Page(
        rows=list(records[start:start + page_size]),
        page_index=page_index,
        page_count=math.ceil(total / page_size),
        total=total,
    )


def cell_text(value: Any) -> str:
    if is_number(value):
        return format_number(value, max_decimals=2)
    return stringify(value)


def build(raw: Any, config: WidgetSourceConfig, view_state: ViewState, rng: random.Random) -> TableView:
    records = extract_records(raw, config.root_path)
    records = filter_records(records, config.fields, view_state.search_query)
    records = sort_records(records, view_state.sort_key, view_state.sort_direction)
    page = paginate(records, view_state.page_index)
    cells = [[cell_text(resolve(row, f.path)) for f in config.fields] for row in page.rows]
    return TableView(columns=config.fields, page=page, cells=cells, view_state=view_state)
