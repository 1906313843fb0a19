"""Per-widget runtime: one connector, one event queue, one writer.

Connector callbacks, timers and control calls never touch widget state
directly. They post events onto the runtime's inbox; ``_handle`` is the only
code that mutates state, running either on the runtime's worker thread or,
with ``worker=False``, on whichever thread calls :meth:`WidgetRuntime.pump`.
Every connector is stamped with a generation number so that events from a
torn-down connector are dropped.
"""

from __future__ import annotations

import logging
import queue
import random
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import websocket

from .config import DEFAULT_COOLDOWN_SECONDS, WidgetSourceConfig
from .connectors import (
    Connector,
    ConnectorEvent,
    FetchFailed,
    PayloadReceived,
    PollingConnector,
    PollTick,
    RateLimitHit,
    SocketClosed,
    SocketErrored,
    SocketOpened,
    StreamingConnector,
)
from .errors import ErrorKind, WidgetError
from .fetch import HttpFetcher
from .scheduler import Scheduler, ThreadScheduler, Timer
from .widgets import REGISTRY
from .widgets.base import VIEW_STATE_FIELDS, ViewState
from .widgets.table import TableView

logger = logging.getLogger(__name__)

RATE_LIMIT_ERROR = WidgetError(ErrorKind.RATE_LIMITED, "Rate limit exceeded.")


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    LIVE = "live"
    POLLING = "polling"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"


@dataclass(frozen=True)
class WidgetSnapshot:
    widget_id: str
    widget_type: str
    label: str
    connection_state: ConnectionState
    is_live: bool
    cooldown_seconds_remaining: int
    last_error: WidgetError | None
    raw_payload: Any
    view_state: ViewState
    view: Any

    @property
    def has_data(self) -> bool:
        return self.raw_payload is not None


@dataclass(frozen=True)
class _Start:
    config: WidgetSourceConfig


@dataclass(frozen=True)
class _Refresh:
    pass


@dataclass(frozen=True)
class _Stop:
    pass


@dataclass(frozen=True)
class _CooldownTick:
    token: int


@dataclass(frozen=True)
class _ViewChange:
    transform: Callable[[ViewState], ViewState]


@dataclass(frozen=True)
class _PageStep:
    delta: int


class WidgetRuntime:
    def __init__(
        self,
        widget_id: str,
        widget_type: str,
        *,
        scheduler: Scheduler | None = None,
        fetcher: HttpFetcher | None = None,
        socket_factory: Callable[..., Any] | None = None,
        rng: random.Random | None = None,
        cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
        worker: bool = True,
        owns_fetcher: bool | None = None,
    ) -> None:
        if widget_type not in REGISTRY:
            raise ValueError(f"Unknown widget type {widget_type!r}. Supported: {list(REGISTRY)}")
        self.widget_id = widget_id
        self.widget_type = widget_type
        self.cooldown_seconds = cooldown_seconds
        self._view_module = REGISTRY[widget_type]
        self._scheduler = scheduler or ThreadScheduler()
        self._owns_fetcher = fetcher is None if owns_fetcher is None else owns_fetcher
        self._fetcher = fetcher or HttpFetcher()
        self._socket_factory = socket_factory or websocket.WebSocketApp
        self._rng = rng or random.Random()

        self._use_worker = worker
        self._worker: threading.Thread | None = None
        self._started = False
        self._inbox: queue.Queue = queue.Queue()
        self._subscribers: list[Callable[[WidgetSnapshot], None]] = []
        self._subscribers_lock = threading.Lock()

        # Owned by _handle from here on.
        self._config: WidgetSourceConfig | None = None
        self._connector: Connector | None = None
        self._generation = 0
        self._state = ConnectionState.IDLE
        self._is_live = False
        self._cooldown = 0
        self._cooldown_timer: Timer | None = None
        self._cooldown_token = 0
        self._last_error: WidgetError | None = None
        self._raw: Any = None
        self._view_state = ViewState()
        self._view: Any = None
        self._snapshot = self._build_snapshot()

    # -- control -----------------------------------------------------------

    def start(self, config: WidgetSourceConfig) -> None:
        if not self._started:
            self._started = True
            if self._use_worker:
                self._worker = threading.Thread(target=self._run, name=f"widget-{self.widget_id}", daemon=True)
                self._worker.start()
        self.post(_Start(config))

    def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        worker, self._worker = self._worker, None
        if worker is None:
            self.post(_Stop())
            self.pump()
        elif worker is threading.current_thread():
            self._dispatch(_Stop())
            self.post(_Stop())
        else:
            self.post(_Stop())
            worker.join(timeout=5)
            if worker.is_alive():
                logger.warning("Widget %s worker did not stop in time", self.widget_id)

    def close(self) -> None:
        """Stop for good and release the HTTP session if this runtime owns it."""
        self.stop()
        if self._owns_fetcher:
            self._owns_fetcher = False
            self._fetcher.close()

    def manual_refresh(self) -> None:
        self.post(_Refresh())

    def update_view_state(self, **changes: Any) -> None:
        unknown = set(changes) - VIEW_STATE_FIELDS
        if unknown:
            raise TypeError(f"Unknown view state fields: {sorted(unknown)}")
        self.post(_ViewChange(lambda vs: vs.updated(**changes)))

    def set_search(self, query: str) -> None:
        self.post(_ViewChange(lambda vs: vs.with_search(query)))

    def toggle_sort(self, path: str) -> None:
        self.post(_ViewChange(lambda vs: vs.toggle_sort(path)))

    def go_to_page(self, index: int) -> None:
        self.post(_ViewChange(lambda vs: vs.with_page(index)))

    def next_page(self) -> None:
        self.post(_PageStep(1))

    def prev_page(self) -> None:
        self.post(_PageStep(-1))

    def snapshot(self) -> WidgetSnapshot:
        return self._snapshot

    def subscribe(self, callback: Callable[[WidgetSnapshot], None]) -> Callable[[], None]:
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    # -- event queue -------------------------------------------------------

    def post(self, event: Any) -> None:
        self._inbox.put(event)

    def pump(self) -> int:
        """Handle every queued event on the calling thread. Only for runtimes built with worker=False."""
        handled = 0
        while True:
            try:
                event = self._inbox.get_nowait()
            except queue.Empty:
                return handled
            self._dispatch(event)
            handled += 1

    def _run(self) -> None:
        while True:
            event = self._inbox.get()
            self._dispatch(event)
            if isinstance(event, _Stop):
                return

    def _dispatch(self, event: Any) -> None:
        try:
            self._handle(event)
        except Exception:
            logger.exception("Widget %s failed handling %r", self.widget_id, event)
        self._publish()

    def _publish(self) -> None:
        self._snapshot = snap = self._build_snapshot()
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snap)
            except Exception:
                logger.exception("Widget %s subscriber failed", self.widget_id)

    # -- state machine -----------------------------------------------------

    def _handle(self, event: Any) -> None:
        if isinstance(event, ConnectorEvent):
            if self._connector is None or event.generation != self._generation:
                logger.debug("Widget %s dropped stale %r", self.widget_id, event)
                return
            self._handle_connector_event(event)
        elif isinstance(event, _Start):
            self._config = event.config
            self._mount()
        elif isinstance(event, _Refresh):
            if self._config is not None:
                self._mount()
        elif isinstance(event, _Stop):
            self._teardown()
            self._cancel_cooldown()
            self._set_state(ConnectionState.IDLE)
        elif isinstance(event, _CooldownTick):
            if event.token == self._cooldown_token:
                self._on_cooldown_tick()
        elif isinstance(event, _ViewChange):
            self._view_state = event.transform(self._view_state)
            self._view = None
        elif isinstance(event, _PageStep):
            self._step_page(event.delta)
        else:
            raise TypeError(f"Unknown event {event!r}")

    def _handle_connector_event(self, event: ConnectorEvent) -> None:
        if isinstance(event, PayloadReceived):
            self._raw = event.payload
            self._view = None
            self._last_error = None
            if isinstance(self._connector, StreamingConnector):
                self._set_state(ConnectionState.LIVE)
            elif self._cooldown > 0:
                self._last_error = RATE_LIMIT_ERROR
            elif self._connector.interval_driven:
                self._set_state(ConnectionState.POLLING)
            else:
                self._set_state(ConnectionState.IDLE)
        elif isinstance(event, FetchFailed):
            if self._cooldown > 0:
                return
            self._last_error = event.error
            self._set_state(ConnectionState.ERROR)
        elif isinstance(event, RateLimitHit):
            self._arm_cooldown()
            self._last_error = RATE_LIMIT_ERROR
            self._set_state(ConnectionState.RATE_LIMITED)
        elif isinstance(event, PollTick):
            if self._cooldown > 0:
                logger.debug("Widget %s skipped poll during cooldown (%ss left)", self.widget_id, self._cooldown)
                return
            self._poll()
        elif isinstance(event, SocketOpened):
            self._is_live = True
            self._last_error = None
            self._set_state(ConnectionState.LIVE)
        elif isinstance(event, SocketErrored):
            self._is_live = False
            self._last_error = WidgetError(ErrorKind.SOCKET, event.message)
            self._set_state(ConnectionState.ERROR)
        elif isinstance(event, SocketClosed):
            self._is_live = False
            if self._state in (ConnectionState.LIVE, ConnectionState.CONNECTING):
                self._set_state(ConnectionState.IDLE)

    def _mount(self) -> None:
        config = self._config
        self._teardown()
        self._raw = None
        self._view = None
        self._last_error = None
        self._generation += 1

        if config.uses_socket:
            self._cancel_cooldown()
            self._connector = StreamingConnector(
                config, self._generation, self.post, self._scheduler, self._socket_factory
            )
            self._set_state(ConnectionState.CONNECTING)
            self._connector.open()
        elif config.rest_url:
            self._connector = PollingConnector(config, self._generation, self.post, self._scheduler, self._fetcher)
            self._connector.open()
            if self._cooldown > 0:
                self._last_error = RATE_LIMIT_ERROR
                self._set_state(ConnectionState.RATE_LIMITED)
            else:
                self._set_state(ConnectionState.CONNECTING)
                self._connector.fetch()
        else:
            logger.warning("Widget %s has no source URL", self.widget_id)
            self._set_state(ConnectionState.IDLE)

    def _teardown(self) -> None:
        connector, self._connector = self._connector, None
        self._is_live = False
        if connector is not None:
            connector.close()

    def _poll(self) -> None:
        self._last_error = None
        self._set_state(ConnectionState.POLLING)
        self._connector.fetch()

    def _arm_cooldown(self) -> None:
        self._cancel_cooldown()
        self._cooldown = self.cooldown_seconds
        token = self._cooldown_token
        self._cooldown_timer = self._scheduler.call_every(1, lambda: self.post(_CooldownTick(token)))

    def _cancel_cooldown(self) -> None:
        self._cooldown_token += 1
        self._cooldown = 0
        timer, self._cooldown_timer = self._cooldown_timer, None
        if timer is not None:
            timer.cancel()

    def _on_cooldown_tick(self) -> None:
        if self._cooldown <= 0:
            return
        self._cooldown -= 1
        if self._cooldown > 0:
            return
        self._cancel_cooldown()
        if isinstance(self._connector, PollingConnector):
            self._poll()
        else:
            self._last_error = None
            self._set_state(ConnectionState.IDLE)

    def _step_page(self, delta: int) -> None:
        view = self._current_view()
        if not isinstance(view, TableView):
            return
        last = max(view.page.page_count - 1, 0)
        index = min(max(self._view_state.page_index + delta, 0), last)
        if index != self._view_state.page_index:
            self._view_state = self._view_state.with_page(index)
            self._view = None

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            logger.debug("Widget %s: %s -> %s", self.widget_id, self._state.value, state.value)
            self._state = state

    # -- derived view ------------------------------------------------------

    def _current_view(self) -> Any:
        if self._view is None:
            config = self._config or WidgetSourceConfig()
            self._view = self._view_module.build(self._raw, config, self._view_state, self._rng)
        return self._view

    def _build_snapshot(self) -> WidgetSnapshot:
        return WidgetSnapshot(
            widget_id=self.widget_id,
            widget_type=self.widget_type,
            label=self._config.label if self._config else "",
            connection_state=self._state,
            is_live=self._is_live,
            cooldown_seconds_remaining=self._cooldown,
            last_error=self._last_error,
            raw_payload=self._raw,
            view_state=self._view_state,
            view=self._current_view(),
        )
