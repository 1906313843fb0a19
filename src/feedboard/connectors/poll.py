from __future__ import annotations

import logging

from ..config import WidgetSourceConfig
from ..errors import FetchError, RateLimitedError
from ..fetch import HttpFetcher, with_api_key
from ..scheduler import Scheduler, Timer
from .base import BaseConnector, FetchFailed, PayloadReceived, PollTick, Post, RateLimitHit

logger = logging.getLogger(__name__)


class PollingConnector(BaseConnector):
    kind = "rest"

    def __init__(
        self,
        config: WidgetSourceConfig,
        generation: int,
        post: Post,
        scheduler: Scheduler,
        fetcher: HttpFetcher,
    ) -> None:
        super().__init__(generation, post)
        self.config = config
        self._scheduler = scheduler
        self._fetcher = fetcher
        self._timer: Timer | None = None

    @property
    def interval_driven(self) -> bool:
        return self.config.poll_interval_seconds > 0

    @property
    def url(self) -> str:
        return with_api_key(self.config.rest_url or "", self.config.api_key, self.config.api_key_param)

    def open(self) -> None:
        if self.interval_driven:
            self._timer = self._scheduler.call_every(self.config.poll_interval_seconds, self._tick)

    def _tick(self) -> None:
        self.emit(PollTick(self.generation))

    def fetch(self) -> None:
        if self.closed:
            return
        url = self.url
        self._scheduler.spawn(lambda: self._fetch(url), name=f"fetch-{self.generation}")

    def _fetch(self, url: str) -> None:
        try:
            payload = self._fetcher.get_json(url)
        except RateLimitedError:
            logger.warning("Rate limited by %s", self.config.rest_url)
            self.emit(RateLimitHit(self.generation))
        except FetchError as e:
            logger.warning("Fetch from %s failed: %s", self.config.rest_url, e)
            self.emit(FetchFailed(self.generation, e.to_widget_error()))
        else:
            self.emit(PayloadReceived(self.generation, payload))

    def close(self) -> None:
        super().close()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
