"""REST adapter for the remote update feed."""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from sysupdate.adapters.api_errors import ApiPayloadError, raise_for_status
from sysupdate.adapters.http_client import HttpConfig, RetryingSession
from sysupdate.domain.ports import UpdateFeedPort


class UpdateFeedRestAdapter(UpdateFeedPort):
    """HTTP adapter for ``GET <update_url>?current_version=<v>&app_key=<k>``."""

    def __init__(
        self,
        update_url: str,
        *,
        app_key: str = "",
        request_timeout_s: float = 10,
        retries: int = 1,
        session: Optional[RetryingSession] = None,
    ) -> None:
        if not str(update_url or "").strip():
            raise ValueError("UpdateFeedRestAdapter requires an update URL")
        self.update_url = str(update_url).strip()
        self.app_key = str(app_key or "")
        self.cfg = HttpConfig(request_timeout_s=request_timeout_s, retries=retries)
        self.session = session or RetryingSession(self.cfg)

    def fetch(self, current_version: str) -> Dict[str, Any]:
        """Query the feed and return its JSON object."""
        params = {"current_version": current_version, "app_key": self.app_key}
        resp = self.session.get(self.update_url, params=params, timeout=self.cfg.request_timeout_s)
        raise_for_status(resp, "check_for_updates")
        return self._json_dict(resp)

    @staticmethod
    def _json_dict(resp: requests.Response) -> Dict[str, Any]:
        """Parse response JSON and require object payload."""
        try:
            payload = resp.json()
        except ValueError as exc:
            snippet = (getattr(resp, "text", "") or "")[:400]
            raise ApiPayloadError(
                f"Invalid JSON response from update server: {snippet}",
                status=resp.status_code,
                context="check_for_updates",
            ) from exc
        if not isinstance(payload, dict):
            raise ApiPayloadError(
                "Invalid JSON response shape: expected object",
                status=resp.status_code,
                payload=payload,
                context="check_for_updates",
            )
        return dict(payload)


__all__ = ["UpdateFeedRestAdapter"]
