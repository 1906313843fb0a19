from __future__ import annotations

from .base import (
    Connector,
    ConnectorEvent,
    FetchFailed,
    PayloadReceived,
    PollTick,
    RateLimitHit,
    SocketClosed,
    SocketErrored,
    SocketOpened,
)
from .poll import PollingConnector
from .stream import StreamingConnector
