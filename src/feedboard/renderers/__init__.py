from __future__ import annotations

from pathlib import Path

from ..runtime import WidgetSnapshot

from . import render_pillow, render_text

def render_with(
    kind: str,
    out_path: Path,
    snapshots: list[WidgetSnapshot],
    resolution: tuple[int, int],
    columns: int,
    theme: dict,
) -> Path:
    kind = kind.lower().strip()
    if kind == "pillow":
        return render_pillow.render(out_path, snapshots, resolution, columns, theme)
    if kind == "text":
        return render_text.render(out_path, snapshots)
    raise ValueError(f"Unknown renderer: {kind}")
