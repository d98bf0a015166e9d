"""Use case for querying the remote update feed with a short-TTL cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from sysupdate.domain.ports import CachePort, UpdateFeedPort
from sysupdate.domain.time_utils import utc_now_iso
from sysupdate.domain.update_models import UpdateInfo
from sysupdate.usecases.error_mapping import map_api_error

CACHE_KEY = "system_updates"
DEFAULT_CACHE_TTL_S = 300.0
NOT_CONFIGURED_REASON = "Update check URL not configured"


@dataclass
class CheckForUpdates:
    """Return the latest ``UpdateInfo``; never raises.

    Every result, including transport failures, is cached under a single key
    for ``ttl_s`` seconds. ``force=True`` skips the cached value and refreshes it.
    """

    feed: Optional[UpdateFeedPort]
    cache: CachePort
    ttl_s: float = DEFAULT_CACHE_TTL_S
    cache_key: str = CACHE_KEY
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def __call__(self, current_version: str, *, force: bool = False) -> UpdateInfo:
        if not force:
            cached = self.cache.get(self.cache_key)
            if isinstance(cached, UpdateInfo):
                return cached

        info = self._query(current_version)
        self.cache.set(self.cache_key, info, self.ttl_s)
        return info

    def clear_cache(self) -> None:
        self.cache.forget(self.cache_key)

    def _query(self, current_version: str) -> UpdateInfo:
        checked_at = utc_now_iso()
        if self.feed is None:
            return UpdateInfo.unavailable(current_version, NOT_CONFIGURED_REASON, checked_at=checked_at)

        try:
            payload = self.feed.fetch(current_version)
        except Exception as exc:
            mapped = map_api_error(exc, default_code="UPDATE_CHECK_FAILED")
            self.log.warning("Update check failed (%s): %s", mapped.code, mapped.message)
            return UpdateInfo.unavailable(
                current_version,
                f"Update check failed: {mapped.message}",
                checked_at=checked_at,
            )

        info = UpdateInfo.from_feed_payload(current_version, payload, checked_at=checked_at)
        if info.available:
            self.log.info("Update available: %s -> %s", current_version, info.latest_version)
        return info


__all__ = ["CACHE_KEY", "CheckForUpdates", "NOT_CONFIGURED_REASON"]
