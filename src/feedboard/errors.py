from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    TRANSPORT = "transport"
    SOCKET = "socket"


@dataclass(frozen=True)
class WidgetError:
    kind: ErrorKind
    message: str

    @property
    def needs_credentials(self) -> bool:
        return self.kind is ErrorKind.AUTH


class FetchError(Exception):
    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    def to_widget_error(self) -> WidgetError:
        return WidgetError(kind=self.kind, message=str(self))


class AuthError(FetchError):
    kind = ErrorKind.AUTH


class RateLimitedError(FetchError):
    kind = ErrorKind.RATE_LIMITED


class TransportError(FetchError):
    kind = ErrorKind.TRANSPORT


class LayoutError(ValueError):
    pass
