"""Time-series view for chart widgets.

A list payload maps one point per element. A single-object payload only
carries the current value, so the view fabricates a short lead-in around it
and marks those points ``synthetic`` so renderers can tell them apart from
the real, final point.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

from ..config import WidgetSourceConfig
from ..paths import MISSING, resolve
from .base import ViewState, to_number

name = "chart"

SYNTHETIC_POINTS = 15
JITTER = 0.01

@dataclass(frozen=True)
class ChartPoint:
    index: int
    value: float | None
    synthetic: bool = False

@dataclass(frozen=True)
class ChartView:
    label: str
    points: tuple[ChartPoint, ...] = ()

    @property
    def has_synthetic_history(self) -> bool:
        return any(p.synthetic for p in self.points)

    @property
    def latest(self) -> float | None:
        return self.points[-1].value if self.points else None

def synthesize_history(value: float, rng: random.Random, count: int = SYNTHETIC_POINTS) -> list[ChartPoint]:
    points = [
        ChartPoint(index=i, value=value * rng.uniform(1 - JITTER, 1 + JITTER), synthetic=True)
        for i in range(count)
    ]
    points.append(ChartPoint(index=count, value=value))
    return points

def build(raw: Any, config: WidgetSourceConfig, view_state: ViewState, rng: random.Random) -> ChartView:
    field = config.first_field
    label = field.label if field else ""
    if field is None or raw is None or raw is MISSING:
        return ChartView(label=label)

    if isinstance(raw, list):
        points = [ChartPoint(index=i, value=to_number(resolve(item, field.path))) for i, item in enumerate(raw)]
        return ChartView(label=label, points=tuple(points))

    value = to_number(resolve(raw, field.path))
    if value is None:
        return ChartView(label=label)
    return ChartView(label=label, points=tuple(synthesize_history(value, rng)))
