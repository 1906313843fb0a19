from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .config import WidgetSpec
from .errors import LayoutError

logger = logging.getLogger(__name__)

def parse_layout(raw: Any) -> list[WidgetSpec]:
    """Only the outer array is required; entries that cannot become a widget are skipped."""
    if not isinstance(raw, list):
        raise LayoutError("Layout must be a JSON array of widgets.")
    widgets = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            logger.warning("Skipping layout entry %s: not an object", i)
            continue
        try:
            widgets.append(WidgetSpec.from_dict(item))
        except (TypeError, ValueError) as e:
            logger.warning("Skipping layout entry %s: %s", i, e)
    return widgets

def dump_layout(widgets: Iterable[WidgetSpec]) -> list[dict]:
    return [w.to_dict() for w in widgets]

def load_layout(path: str | Path) -> list[WidgetSpec]:
    text = Path(path).read_text(encoding="utf-8")
    try:
        raw = json.loads(text)
    except ValueError as e:
        raise LayoutError(f"{path} is not valid JSON: {e}") from e
    return parse_layout(raw)

def export_layout(widgets: Iterable[WidgetSpec], path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(dump_layout(widgets), indent=2), encoding="utf-8")
    return p

import_layout = load_layout

class LayoutStore:
    """The single local blob holding the ordered widget list."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> list[WidgetSpec]:
        if not self.path.exists():
            return []
        try:
            return load_layout(self.path)
        except LayoutError as e:
            logger.warning("Ignoring saved layout %s: %s", self.path, e)
            return []

    def save(self, widgets: Iterable[WidgetSpec]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(dump_layout(widgets), indent=2), encoding="utf-8")
        os.replace(tmp, self.path)
