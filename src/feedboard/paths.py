from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


# Distinct from JSON null (None): the path did not lead anywhere.
MISSING: Any = _Missing()


def resolve(value: Any, path: str | None) -> Any:
    if not path:
        return MISSING
    current = value
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return MISSING
        current = current.get(part, MISSING)
    return current


def flatten(value: Any, prefix: str = "") -> dict[str, Any]:
    if not isinstance(value, Mapping):
        return {prefix: value} if prefix else {}
    out: dict[str, Any] = {}
    for key, child in value.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(child, Mapping):
            out.update(flatten(child, name))
        else:
            out[name] = child
    return out


def discover_paths(payload: Any) -> dict[str, Any]:
    """Paths a widget field could point at, sampled from the first record of a list payload."""
    if isinstance(payload, list):
        return flatten(payload[0]) if payload else {}
    return flatten(payload)
