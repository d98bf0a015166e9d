from __future__ import annotations

from typing import List

from sysupdate.adapters.api_errors import ApiClientError, ApiTimeoutError
from sysupdate.adapters.cache_memory import MemoryCache
from sysupdate.usecases.check_for_updates import CACHE_KEY, NOT_CONFIGURED_REASON, CheckForUpdates

FEED_PAYLOAD = {
    "update_available": True,
    "latest_version": "2.1.0",
    "release_date": "2026-09-30",
    "download_url": "https://updates.example.test/hris-2.1.0.zip",
    "changelog": ["Payroll: fix 13th month computation"],
    "patch_notes": "Recommended",
    "is_security_update": False,
    "minimum_runtime_version": "3.10",
    "file_size": 1024,
    "checksum": "ABC123",
}


class _FeedDouble:
    """UpdateFeedPort double with scripted responses."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: List[str] = []

    def fetch(self, current_version: str):
        self.calls.append(current_version)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def test_second_check_within_ttl_hits_cache() -> None:
    feed = _FeedDouble(FEED_PAYLOAD)
    check = CheckForUpdates(feed=feed, cache=MemoryCache())

    first = check("2.0.0")
    second = check("2.0.0")

    assert first is second
    assert feed.calls == ["2.0.0"]
    assert first.available is True
    assert first.latest_version == "2.1.0"
    assert first.checksum == "abc123"


def test_force_bypasses_and_refreshes_cache() -> None:
    feed = _FeedDouble(FEED_PAYLOAD, {"update_available": False})
    cache = MemoryCache()
    check = CheckForUpdates(feed=feed, cache=cache)

    check("2.0.0")
    refreshed = check("2.0.0", force=True)

    assert len(feed.calls) == 2
    assert refreshed.available is False
    assert cache.get(CACHE_KEY) is refreshed


def test_cache_expires_after_ttl() -> None:
    now = [0.0]
    feed = _FeedDouble(FEED_PAYLOAD)
    check = CheckForUpdates(feed=feed, cache=MemoryCache(clock=lambda: now[0]), ttl_s=300)

    check("2.0.0")
    now[0] = 301.0
    check("2.0.0")

    assert len(feed.calls) == 2


def test_clear_cache_forces_next_query() -> None:
    feed = _FeedDouble(FEED_PAYLOAD)
    check = CheckForUpdates(feed=feed, cache=MemoryCache())
    check("2.0.0")
    check.clear_cache()
    check("2.0.0")
    assert len(feed.calls) == 2


def test_missing_feed_reports_not_configured() -> None:
    info = CheckForUpdates(feed=None, cache=MemoryCache())("1.0.0")
    assert info.available is False
    assert info.reason == NOT_CONFIGURED_REASON
    assert info.current_version == "1.0.0"


def test_transport_failures_never_raise() -> None:
    check = CheckForUpdates(
        feed=_FeedDouble(ApiTimeoutError("Timeout contacting feed", context="GET")),
        cache=MemoryCache(),
    )
    info = check("1.0.0")
    assert info.available is False
    assert "timed out" in info.reason


def test_protocol_failures_never_raise() -> None:
    check = CheckForUpdates(
        feed=_FeedDouble(ApiClientError("bad key", status=401)),
        cache=MemoryCache(),
    )
    assert "application key" in check("1.0.0").reason

    check = CheckForUpdates(feed=_FeedDouble(RuntimeError("Invalid JSON response")), cache=MemoryCache())
    info = check("1.0.0")
    assert info.available is False
    assert "Invalid JSON response" in info.reason
