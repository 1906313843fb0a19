from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from ..errors import WidgetError


@dataclass(frozen=True)
class ConnectorEvent:
    generation: int


@dataclass(frozen=True)
class PayloadReceived(ConnectorEvent):
    payload: Any


@dataclass(frozen=True)
class FetchFailed(ConnectorEvent):
    error: WidgetError


@dataclass(frozen=True)
class RateLimitHit(ConnectorEvent):
    pass


@dataclass(frozen=True)
class PollTick(ConnectorEvent):
    pass


@dataclass(frozen=True)
class SocketOpened(ConnectorEvent):
    pass


@dataclass(frozen=True)
class SocketErrored(ConnectorEvent):
    message: str


@dataclass(frozen=True)
class SocketClosed(ConnectorEvent):
    pass


Post = Callable[[ConnectorEvent], None]


class Connector(Protocol):
    kind: str
    generation: int

    def open(self) -> None:
        ...

    def close(self) -> None:
        ...


class BaseConnector:
    """Holds the generation token and drops anything posted after close()."""

    kind = "base"

    def __init__(self, generation: int, post: Post) -> None:
        self.generation = generation
        self._post = post
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: ConnectorEvent) -> None:
        if not self._closed:
            self._post(event)

    def close(self) -> None:
        self._closed = True
