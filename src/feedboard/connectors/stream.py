from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

import websocket

from ..config import WidgetSourceConfig
from ..scheduler import Scheduler
from .base import BaseConnector, PayloadReceived, Post, SocketClosed, SocketErrored, SocketOpened

logger = logging.getLogger(__name__)

SocketFactory = Callable[..., Any]


def subscribe_text(message: Any) -> str | None:
    if message is None or message == "":
        return None
    if isinstance(message, str):
        return message
    return json.dumps(message)


class StreamingConnector(BaseConnector):
    kind = "socket"

    def __init__(
        self,
        config: WidgetSourceConfig,
        generation: int,
        post: Post,
        scheduler: Scheduler,
        socket_factory: SocketFactory = websocket.WebSocketApp,
    ) -> None:
        super().__init__(generation, post)
        self.config = config
        self._scheduler = scheduler
        self._socket_factory = socket_factory
        self._app: Any = None

    def open(self) -> None:
        self._app = self._socket_factory(
            self.config.socket_url,
            on_open=self._on_open,
            on_message=self._on_message,
            on_error=self._on_error,
            on_close=self._on_close,
        )
        self._scheduler.spawn(self._app.run_forever, name=f"socket-{self.generation}")

    def _on_open(self, ws) -> None:
        if self.closed:
            # close() ran before run_forever had a socket to close.
            ws.close()
            return
        logger.info("Socket connected: %s", self.config.socket_url)
        self.emit(SocketOpened(self.generation))
        text = subscribe_text(self.config.socket_subscribe_message)
        if text is not None:
            ws.send(text)

    def _on_message(self, ws, message) -> None:
        try:
            payload = json.loads(message)
        except (TypeError, ValueError) as e:
            logger.warning("Socket parse error from %s: %s", self.config.socket_url, e)
            return
        self.emit(PayloadReceived(self.generation, payload))

    def _on_error(self, ws, error) -> None:
        logger.warning("Socket error from %s: %s", self.config.socket_url, error)
        self.emit(SocketErrored(self.generation, "WebSocket Error"))

    def _on_close(self, ws, close_status_code=None, close_msg=None) -> None:
        logger.info("Socket closed: %s (%s)", self.config.socket_url, close_status_code)
        self.emit(SocketClosed(self.generation))

    def close(self) -> None:
        super().close()
        app, self._app = self._app, None
        if app is not None:
            app.close()
