from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace

from .config import Config, WidgetSourceConfig, WidgetSpec
from .fetch import HttpFetcher
from .layout import LayoutStore
from .runtime import WidgetRuntime, WidgetSnapshot

logger = logging.getLogger(__name__)

RuntimeFactory = Callable[[WidgetSpec], WidgetRuntime]

def runtime_factory(cfg: Config) -> RuntimeFactory:
    def make(widget: WidgetSpec) -> WidgetRuntime:
        fetcher = HttpFetcher(timeout=cfg.http_timeout, user_agent=cfg.user_agent)
        return WidgetRuntime(
            widget.id, widget.type, fetcher=fetcher, cooldown_seconds=cfg.cooldown_seconds, owns_fetcher=True
        )
    return make

class DashboardState:
    """Ordered widget list plus one runtime per mounted widget."""

    def __init__(
        self,
        widgets: Iterable[WidgetSpec] = (),
        *,
        runtime_factory: RuntimeFactory,
        store: LayoutStore | None = None,
    ) -> None:
        self.widgets: list[WidgetSpec] = []
        self.edit_mode = False
        self.mounted = False
        self._runtime_factory = runtime_factory
        self._store = store
        self._runtimes: dict[str, WidgetRuntime] = {}
        self._replace_widgets(list(widgets))

    def mount(self) -> None:
        self.mounted = True
        for w in self.widgets:
            self._start(w)

    def unmount(self) -> None:
        self.mounted = False
        for widget_id in list(self._runtimes):
            self._stop(widget_id)

    def runtime(self, widget_id: str) -> WidgetRuntime:
        return self._runtimes[widget_id]

    def snapshots(self) -> list[WidgetSnapshot]:
        return [self._runtimes[w.id].snapshot() for w in self.widgets if w.id in self._runtimes]

    def get(self, widget_id: str) -> WidgetSpec:
        for w in self.widgets:
            if w.id == widget_id:
                return w
        raise KeyError(widget_id)

    def add_widget(self, widget: WidgetSpec) -> None:
        if any(w.id == widget.id for w in self.widgets):
            raise ValueError(f"Duplicate widget id {widget.id!r}")
        self.widgets.append(widget)
        if self.mounted:
            self._start(widget)
        self._save()

    def update_widget(self, widget_id: str, *, type: str | None = None, config: WidgetSourceConfig | None = None) -> WidgetSpec:
        old = self.get(widget_id)
        new = replace(old, type=type or old.type, config=config or old.config)
        self.widgets = [new if w.id == widget_id else w for w in self.widgets]
        if self.mounted:
            if new.type != old.type:
                self._stop(widget_id)
            self._start(new)
        self._save()
        return new

    def remove_widget(self, widget_id: str) -> None:
        self.widgets = [w for w in self.widgets if w.id != widget_id]
        self._stop(widget_id)
        self._save()

    def reorder_widgets(self, start_index: int, end_index: int) -> None:
        moved = self.widgets.pop(start_index)
        self.widgets.insert(end_index, moved)
        self._save()

    def set_widgets(self, widgets: Iterable[WidgetSpec]) -> None:
        was_mounted = self.mounted
        if was_mounted:
            self.unmount()
        self._replace_widgets(list(widgets))
        if was_mounted:
            self.mount()
        self._save()

    def toggle_edit_mode(self) -> bool:
        self.edit_mode = not self.edit_mode
        return self.edit_mode

    def _replace_widgets(self, widgets: list[WidgetSpec]) -> None:
        ids = [w.id for w in widgets]
        if len(ids) != len(set(ids)):
            raise ValueError("Widget ids must be unique")
        self.widgets = widgets

    def _start(self, widget: WidgetSpec) -> None:
        # A widget that cannot start only breaks itself.
        try:
            rt = self._runtimes.get(widget.id)
            if rt is None:
                rt = self._runtimes[widget.id] = self._runtime_factory(widget)
            rt.start(widget.config)
        except Exception:
            logger.exception("Failed to start widget %s", widget.id)

    def _stop(self, widget_id: str) -> None:
        rt = self._runtimes.pop(widget_id, None)
        if rt is not None:
            rt.close()

    def _save(self) -> None:
        if self._store is not None:
            self._store.save(self.widgets)
