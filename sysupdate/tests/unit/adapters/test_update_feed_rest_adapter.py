"""Tests for the update feed and artifact HTTP adapters."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from requests import exceptions as req_exc

from sysupdate.adapters.api_errors import ApiClientError, ApiServerError, ApiTimeoutError
from sysupdate.adapters.artifact_http import HttpArtifactTransport
from sysupdate.adapters.http_client import HttpConfig, RetryingSession
from sysupdate.adapters.update_feed_rest import UpdateFeedRestAdapter


class _FakeResponse:
    """Minimal response double compatible with adapter parsing helpers."""

    def __init__(self, status_code: int, payload: object = None, chunks=None, fail_after: int | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = json.dumps(payload) if payload is not None else ""
        self._chunks = list(chunks or [])
        self._fail_after = fail_after
        self.closed = False

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload

    def iter_content(self, chunk_size: int):
        _ = chunk_size
        for index, chunk in enumerate(self._chunks):
            if self._fail_after is not None and index >= self._fail_after:
                raise req_exc.ConnectionError("connection reset")
            yield chunk

    def close(self) -> None:
        self.closed = True


class _FakeSession:
    """Session double recording GET calls."""

    def __init__(self, response: _FakeResponse) -> None:
        self.response = response
        self.calls: list[dict] = []

    def get(self, url: str, *, params=None, accept="application/json", timeout=None, stream=False):
        self.calls.append({"url": url, "params": params, "accept": accept, "timeout": timeout, "stream": stream})
        return self.response


def test_feed_adapter_sends_version_and_key() -> None:
    session = _FakeSession(_FakeResponse(200, {"update_available": True, "latest_version": "2.0.0"}))
    adapter = UpdateFeedRestAdapter(
        "https://updates.example.test/check",
        app_key="k-123",
        request_timeout_s=7,
        session=session,
    )

    payload = adapter.fetch("1.9.0")

    assert payload["latest_version"] == "2.0.0"
    call = session.calls[0]
    assert call["params"] == {"current_version": "1.9.0", "app_key": "k-123"}
    assert call["timeout"] == 7


def test_feed_adapter_maps_http_errors() -> None:
    adapter = UpdateFeedRestAdapter(
        "https://updates.example.test/check",
        session=_FakeSession(_FakeResponse(403, {"message": "bad key", "hint": "rotate key"})),
    )
    with pytest.raises(ApiClientError) as excinfo:
        adapter.fetch("1.0.0")
    assert excinfo.value.status == 403
    assert excinfo.value.hint == "rotate key"

    adapter = UpdateFeedRestAdapter(
        "https://updates.example.test/check",
        session=_FakeSession(_FakeResponse(503, {"detail": "maintenance"})),
    )
    with pytest.raises(ApiServerError):
        adapter.fetch("1.0.0")


def test_feed_adapter_rejects_non_object_json() -> None:
    adapter = UpdateFeedRestAdapter(
        "https://updates.example.test/check",
        session=_FakeSession(_FakeResponse(200, ["not", "an", "object"])),
    )
    with pytest.raises(RuntimeError):
        adapter.fetch("1.0.0")


def test_feed_adapter_requires_url() -> None:
    with pytest.raises(ValueError):
        UpdateFeedRestAdapter("  ")


def test_retrying_session_raises_timeout_after_retries() -> None:
    class _TimeoutSession:
        def __init__(self) -> None:
            self.calls = 0

        def get(self, *args, **kwargs):
            self.calls += 1
            raise req_exc.Timeout("slow")

    waits = []
    retrying = RetryingSession(HttpConfig(retries=2, backoff_s=0.25), sleep=waits.append)
    retrying.session = _TimeoutSession()
    with pytest.raises(ApiTimeoutError):
        retrying.get("https://updates.example.test/check")
    assert retrying.session.calls == 3
    assert waits == [0.25, 0.5]


def test_artifact_transport_streams_to_target(tmp_path: Path) -> None:
    response = _FakeResponse(200, chunks=[b"abc", b"", b"def"])
    transport = HttpArtifactTransport(session=_FakeSession(response))
    target = tmp_path / "updates" / "pkg.zip"

    written = transport.fetch_to("https://updates.example.test/pkg.zip", str(target))

    assert written == 6
    assert target.read_bytes() == b"abcdef"
    assert not (tmp_path / "updates" / "pkg.zip.part").exists()
    assert response.closed


def test_artifact_transport_leaves_no_partial_file_on_http_error(tmp_path: Path) -> None:
    transport = HttpArtifactTransport(session=_FakeSession(_FakeResponse(404, {"message": "gone"})))
    target = tmp_path / "pkg.zip"
    with pytest.raises(ApiClientError):
        transport.fetch_to("https://updates.example.test/pkg.zip", str(target))
    assert list(tmp_path.iterdir()) == []


def test_artifact_transport_interrupted_stream_is_timeout(tmp_path: Path) -> None:
    response = _FakeResponse(200, chunks=[b"abc", b"def"], fail_after=1)
    transport = HttpArtifactTransport(session=_FakeSession(response))
    target = tmp_path / "pkg.zip"
    with pytest.raises(ApiTimeoutError):
        transport.fetch_to("https://updates.example.test/pkg.zip", str(target))
    assert not target.exists()
    assert not (tmp_path / "pkg.zip.part").exists()
