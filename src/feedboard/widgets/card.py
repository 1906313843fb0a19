from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

from ..config import WidgetSourceConfig
from ..paths import MISSING, resolve
from .base import ViewState, format_number, is_number, stringify

name = "card"

@dataclass(frozen=True)
class CardEntry:
    field_id: str
    label: str
    value: Any
    display: str

@dataclass(frozen=True)
class CardView:
    entries: tuple[CardEntry, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {e.label: e.value for e in self.entries}

def display_value(value: Any) -> str:
    if is_number(value):
        return format_number(value, max_decimals=3)
    if value is MISSING or value is None or value == "" or value is False:
        return "-"
    return stringify(value)

def build(raw: Any, config: WidgetSourceConfig, view_state: ViewState, rng: random.Random) -> CardView:
    entries = []
    for field in config.fields:
        value = resolve(raw, field.path)
        entries.append(CardEntry(field_id=field.id, label=field.label, value=value, display=display_value(value)))
    return CardView(entries=tuple(entries))
