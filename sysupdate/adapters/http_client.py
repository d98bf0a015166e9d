"""requests session shared by the update feed and artifact adapters.

Only connect errors and timeouts are retried, with a linear backoff between
attempts. HTTP status handling stays with the calling adapter.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests
from requests import exceptions as req_exc

from sysupdate.adapters.api_errors import ApiTimeoutError

USER_AGENT = "sysupdate/0.1"


@dataclass
class HttpConfig:
    """Timeouts (seconds) and retry policy for update server calls."""

    request_timeout_s: float = 10
    download_timeout_s: float = 300
    retries: int = 1
    backoff_s: float = 0.5


class RetryingSession:
    """``requests.Session`` with a retry loop around transport failures."""

    def __init__(
        self,
        cfg: HttpConfig,
        api_key: Optional[str] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT
        self.api_key = api_key
        self.cfg = cfg
        self._sleep = sleep

    def get(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        accept: str = "application/json",
        timeout: Optional[float] = None,
        stream: bool = False,
    ) -> requests.Response:
        """GET ``url``; raises ``ApiTimeoutError`` once every attempt failed."""
        headers = {"Accept": accept}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        attempts = max(0, int(self.cfg.retries)) + 1
        reason = ""
        for attempt in range(1, attempts + 1):
            try:
                return self.session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=timeout or self.cfg.request_timeout_s,
                    stream=stream,
                )
            except (req_exc.Timeout, req_exc.ConnectionError) as exc:
                reason = str(exc)
            if attempt < attempts and self.cfg.backoff_s > 0:
                self._sleep(self.cfg.backoff_s * attempt)
        raise ApiTimeoutError(
            f"No response from {url} after {attempts} attempt(s): {reason}",
            context=f"GET {url}",
        )

    def close(self) -> None:
        self.session.close()


__all__ = ["HttpConfig", "RetryingSession", "USER_AGENT"]
