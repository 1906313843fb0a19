from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from PIL import Image, ImageDraw, ImageFont
import os
import math

from ..runtime import WidgetSnapshot
from ..widgets.chart import ChartView
from .lines import snapshot_lines, status_lines, title_for

def _hex(c: str) -> tuple[int, int, int]:
    c = c.lstrip("#")
    return tuple(int(c[i:i+2], 16) for i in (0, 2, 4))

def _load_font(theme: dict, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    font_path = theme.get("font_path")
    try:
        if font_path:
            return ImageFont.truetype(os.path.expanduser(font_path), size=size)
        family = theme.get("font_family", "DejaVuSansMono")
        return ImageFont.truetype(f"{family}.ttf", size=size)
    except OSError:
        return ImageFont.load_default(size=size)

@dataclass(frozen=True)
class Grid:
    columns: int
    rows: int
    gap: int
    margin: int
    cell_w: int
    cell_h: int

    def cell(self, i: int) -> tuple[int, int, int, int]:
        r, c = divmod(i, self.columns)
        x0 = self.margin + c * (self.cell_w + self.gap)
        y0 = self.margin + r * (self.cell_h + self.gap)
        return x0, y0, x0 + self.cell_w, y0 + self.cell_h

def _grid(width: int, height: int, columns: int, n: int) -> Grid:
    margin = max(24, width // 80)
    gap = max(18, width // 120)
    cols = max(1, columns)
    rows = max(1, math.ceil(n / cols))
    cell_w = (width - 2 * margin - (cols - 1) * gap) // cols
    cell_h = (height - 2 * margin - (rows - 1) * gap) // rows
    return Grid(cols, rows, gap, margin, cell_w, cell_h)

def _draw_chart(draw: ImageDraw.ImageDraw, box: tuple[int, int, int, int], view: ChartView, real_rgb, synthetic_rgb) -> None:
    points = [p for p in view.points if p.value is not None]
    if len(points) < 2:
        return
    x0, y0, x1, y1 = box
    lo = min(p.value for p in points)
    hi = max(p.value for p in points)
    span = (hi - lo) or 1.0
    step = (x1 - x0) / (len(points) - 1)
    xy = [(x0 + i * step, y1 - (p.value - lo) / span * (y1 - y0)) for i, p in enumerate(points)]
    for (a, b), p in zip(zip(xy, xy[1:]), points[1:]):
        draw.line([a, b], fill=synthetic_rgb if p.synthetic else real_rgb, width=2)

def render(
    out_path: Path,
    snapshots: list[WidgetSnapshot],
    resolution: tuple[int, int],
    columns: int,
    theme: dict,
) -> Path:
    w, h = resolution
    bg = _hex(theme.get("background", "#0b0e14"))
    fg = _hex(theme.get("foreground", "#e5e7eb"))
    fg_dim = _hex(theme.get("foreground_dim", "#9ca3af"))
    border = _hex(theme.get("panel_border", "#374151"))
    alert = _hex(theme.get("alert", "#f87171"))
    accent = _hex(theme.get("accent", "#10b981"))

    img = Image.new("RGB", (w, h), bg)
    draw = ImageDraw.Draw(img)
    grid = _grid(w, h, columns, max(1, len(snapshots)))

    font_h = _load_font(theme, size=max(20, w // 90))
    font_b = _load_font(theme, size=max(16, w // 120))

    for i, snap in enumerate(snapshots):
        x0, y0, x1, y1 = grid.cell(i)
        draw.rounded_rectangle([x0, y0, x1, y1], radius=14, outline=border, width=2)

        failed = snap.last_error is not None and snap.cooldown_seconds_remaining == 0
        draw.text((x0 + 16, y0 + 12), title_for(snap), font=font_h, fill=alert if failed else fg)

        lines = snapshot_lines(snap, spark=False)
        y = y0 + 58
        for ln in lines[:18]:
            draw.text((x0 + 16, y), ln, font=font_b, fill=fg_dim)
            y += 22

        if isinstance(snap.view, ChartView) and status_lines(snap) is None:
            chart_box = (x0 + 16, y + 8, x1 - 16, y1 - 16)
            if chart_box[3] - chart_box[1] > 20:
                _draw_chart(draw, chart_box, snap.view, accent, fg_dim)

    out_path.parent.mkdir(parents=True, exist_ok=True)
    img.save(out_path, format="PNG")
    return out_path
