from __future__ import annotations

import random

import pytest

from feedboard.config import FieldSpec, WidgetSourceConfig
from feedboard.runtime import WidgetRuntime


class ManualTimer:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.elapsed = 0
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Timers fire only when the test advances the clock; spawned work runs inline unless deferred."""

    def __init__(self, defer_spawn=False):
        self.timers = []
        self.defer_spawn = defer_spawn
        self.pending = []

    def call_every(self, interval, callback):
        timer = ManualTimer(interval, callback)
        self.timers.append(timer)
        return timer

    def spawn(self, target, name):
        if self.defer_spawn:
            self.pending.append(target)
        else:
            target()

    def run_pending(self):
        pending, self.pending = self.pending, []
        for target in pending:
            target()

    def advance(self, seconds):
        for _ in range(seconds):
            for timer in list(self.timers):
                if timer.cancelled:
                    continue
                timer.elapsed += 1
                if timer.elapsed >= timer.interval:
                    timer.elapsed = 0
                    timer.callback()

    @property
    def active_timers(self):
        return [t for t in self.timers if not t.cancelled]


class FakeFetcher:
    """Returns (or raises) the queued responses in order; the last one repeats."""

    def __init__(self, *responses):
        self.responses = list(responses) or [{}]
        self.calls = []
        self.closed = False

    def close(self):
        self.closed = True

    def get_json(self, url):
        self.calls.append(url)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class FakeSocketApp:
    def __init__(self, url, on_open=None, on_message=None, on_error=None, on_close=None):
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.sent = []
        self.running = False
        self.closed = False
        self.close_calls = 0

    def run_forever(self):
        self.running = True

    def send(self, text):
        self.sent.append(text)

    def close(self):
        self.closed = True
        self.close_calls += 1

    # server-side events
    def open(self):
        self.on_open(self)

    def message(self, text):
        self.on_message(self, text)

    def error(self, exc):
        self.on_error(self, exc)

    def drop(self):
        self.on_close(self, 1006, "gone")


class FakeSocketFactory:
    def __init__(self):
        self.apps = []

    def __call__(self, url, **callbacks):
        app = FakeSocketApp(url, **callbacks)
        self.apps.append(app)
        return app

    @property
    def last(self):
        return self.apps[-1]


def fields(*pairs):
    return tuple(FieldSpec(id=str(i + 1), label=label, path=path) for i, (label, path) in enumerate(pairs))


def rest_config(url="https://api.example.com/ticker", poll=30, field_pairs=(("price", "price"),), **kw):
    return WidgetSourceConfig(label="REST", rest_url=url, poll_interval_seconds=poll, fields=fields(*field_pairs), **kw)


def socket_config(url="wss://stream.example.com/ws", field_pairs=(("Price", "p"), ("Qty", "q")), **kw):
    return WidgetSourceConfig(label="Socket", socket_url=url, fields=fields(*field_pairs), **kw)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def sockets():
    return FakeSocketFactory()


@pytest.fixture
def make_runtime(scheduler, sockets):
    def make(widget_type="card", fetcher=None, **kwargs):
        return WidgetRuntime(
            "w1",
            widget_type,
            scheduler=scheduler,
            fetcher=fetcher or FakeFetcher({}),
            socket_factory=sockets,
            rng=random.Random(7),
            worker=False,
            **kwargs,
        )
    return make
