from __future__ import annotations

from typing import Any

from .paths import MISSING, resolve


def extract_records(raw: Any, root_path: str | None = None) -> list[Any]:
    if raw is None or raw is MISSING:
        return []
    if isinstance(raw, list):
        return raw
    if root_path:
        records = resolve(raw, root_path)
    else:
        records = [raw]
    if not isinstance(records, list):
        return []
    return records
