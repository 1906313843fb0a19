from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
import os
import yaml

SUPPORTED_RESOLUTIONS = {
    "1280x720": (1280, 720),
    "1920x1080": (1920, 1080),
    "2560x1600": (2560, 1600),
}

WIDGET_TYPES = ("card", "table", "chart")

DEFAULT_COOLDOWN_SECONDS = 60

def _expand(path: str) -> str:
    return os.path.expanduser(os.path.expandvars(path))

@dataclass(frozen=True)
class FieldSpec:
    id: str
    label: str
    path: str

@dataclass(frozen=True)
class WidgetSourceConfig:
    label: str = ""
    rest_url: str | None = None
    socket_url: str | None = None
    api_key: str | None = None
    api_key_param: str | None = None
    poll_interval_seconds: int = 0
    root_path: str | None = None
    socket_subscribe_message: Any = None
    fields: tuple[FieldSpec, ...] = ()

    @property
    def uses_socket(self) -> bool:
        return bool(self.socket_url)

    @property
    def first_field(self) -> FieldSpec | None:
        return self.fields[0] if self.fields else None

    @classmethod
    def from_dict(cls, raw: dict) -> "WidgetSourceConfig":
        fields = tuple(
            FieldSpec(id=str(f.get("id", i + 1)), label=str(f.get("label", f.get("path", ""))), path=str(f.get("path", "")))
            for i, f in enumerate(raw.get("fields") or [])
            if isinstance(f, dict)
        )
        return cls(
            label=str(raw.get("label", "")),
            rest_url=raw.get("apiUrl") or None,
            socket_url=raw.get("socketUrl") or None,
            api_key=raw.get("apiKey") or None,
            api_key_param=raw.get("apiKeyParam") or None,
            poll_interval_seconds=int(raw.get("refreshInterval") or 0),
            root_path=raw.get("rootPath") or None,
            socket_subscribe_message=raw.get("socketSubscribe"),
            fields=fields,
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "label": self.label,
            "apiUrl": self.rest_url or "",
            "refreshInterval": self.poll_interval_seconds,
            "fields": [{"id": f.id, "label": f.label, "path": f.path} for f in self.fields],
        }
        optional = {
            "socketUrl": self.socket_url,
            "socketSubscribe": self.socket_subscribe_message,
            "apiKey": self.api_key,
            "apiKeyParam": self.api_key_param,
            "rootPath": self.root_path,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        return out

@dataclass(frozen=True)
class WidgetSpec:
    id: str
    type: str
    config: WidgetSourceConfig = field(default_factory=WidgetSourceConfig)

    @classmethod
    def from_dict(cls, raw: dict) -> "WidgetSpec":
        kind = str(raw.get("type", "card")).lower()
        if kind not in WIDGET_TYPES:
            raise ValueError(f"Unknown widget type {kind!r}. Supported: {list(WIDGET_TYPES)}")
        return cls(
            id=str(raw.get("id", "")),
            type=kind,
            config=WidgetSourceConfig.from_dict(raw.get("config") or {}),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type, "config": self.config.to_dict()}

@dataclass(frozen=True)
class Config:
    raw: dict

    @property
    def resolution(self) -> tuple[int, int]:
        res = self.raw.get("renderer", {}).get("resolution", "1920x1080")
        if res not in SUPPORTED_RESOLUTIONS:
            raise ValueError(f"Unsupported resolution {res!r}. Supported: {list(SUPPORTED_RESOLUTIONS)}")
        return SUPPORTED_RESOLUTIONS[res]

    @property
    def columns(self) -> int:
        return int(self.raw.get("renderer", {}).get("columns", 3))

    @property
    def renderer_kind(self) -> str:
        return str(self.raw.get("renderer", {}).get("kind", "pillow"))

    @property
    def theme(self) -> dict:
        return dict(self.raw.get("theme", {}))

    @property
    def output_path(self) -> Path:
        out = self.raw.get("output", {}).get("path", "~/.cache/feedboard/dashboard.png")
        return Path(_expand(out))

    @property
    def layout_path(self) -> Path:
        p = self.raw.get("layout", {}).get("path", "~/.config/feedboard/layout.json")
        return Path(_expand(p))

    @property
    def http_timeout(self) -> float:
        return float(self.raw.get("http", {}).get("timeout", 10))

    @property
    def user_agent(self) -> str | None:
        return self.raw.get("http", {}).get("user_agent")

    @property
    def cooldown_seconds(self) -> int:
        seconds = int(self.raw.get("rate_limit", {}).get("cooldown_seconds", DEFAULT_COOLDOWN_SECONDS))
        if seconds <= 0:
            raise ValueError("rate_limit.cooldown_seconds must be positive")
        return seconds

    @property
    def log_level(self) -> str:
        return str(self.raw.get("logging", {}).get("level", "INFO")).upper()

def load_config(path: str | Path | None) -> Config:
    if path is None:
        return Config(raw={})
    p = Path(_expand(str(path)))
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return Config(raw={})
    if not isinstance(raw, dict):
        raise ValueError("config.yaml must contain a YAML mapping at top level.")
    return Config(raw=raw)
