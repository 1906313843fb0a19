from __future__ import annotations

from pathlib import Path

from ..runtime import WidgetSnapshot
from .lines import snapshot_lines, title_for

def format_dashboard(snapshots: list[WidgetSnapshot]) -> str:
    blocks = []
    for snap in snapshots:
        title = title_for(snap)
        body = "\n".join(f"  {ln}" for ln in snapshot_lines(snap))
        blocks.append(f"[{title}]\n{body}")
    return "\n\n".join(blocks) + "\n"

def render(out_path: Path, snapshots: list[WidgetSnapshot]) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(format_dashboard(snapshots), encoding="utf-8")
    return out_path
