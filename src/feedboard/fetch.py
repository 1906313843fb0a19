from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests

from .errors import AuthError, RateLimitedError, TransportError

logger = logging.getLogger(__name__)


def with_api_key(url: str, api_key: str | None, param: str | None) -> str:
    if not (api_key and param):
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{quote(param, safe='')}={quote(api_key, safe='')}"


class HttpFetcher:
    """GETs a URL and decodes the JSON body, mapping failures onto FetchError subclasses."""

    def __init__(self, timeout: float = 10, user_agent: str | None = None, session: requests.Session | None = None) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        if user_agent:
            self.session.headers["User-Agent"] = user_agent

    def get_json(self, url: str) -> Any:
        try:
            r = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(str(e) or "Failed to fetch") from e

        if r.status_code == 429:
            raise RateLimitedError("Rate limit exceeded.", status=429)
        if r.status_code in (401, 403):
            raise AuthError("Missing/Invalid API Key", status=r.status_code)
        if not r.ok:
            raise TransportError(f"API Error: {r.status_code}", status=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            logger.debug("Undecodable body from %s: %s", url, e)
            raise TransportError("Invalid JSON in response", status=r.status_code) from e

    def close(self) -> None:
        self.session.close()
