from __future__ import annotations

import hashlib
from pathlib import Path

from sysupdate.adapters.api_errors import ApiServerError
from sysupdate.domain.update_models import Artifact
from sysupdate.usecases.download_artifact import DownloadArtifact, artifact_filename, unique_artifact_name
from sysupdate.usecases.verify_artifact import VerifyArtifact, compute_file_sha256

BODY = b"PK\x03\x04 pretend this is an update archive"


class _TransportDouble:
    """ArtifactTransportPort double writing a fixed body."""

    def __init__(self, body: bytes = BODY, exc: Exception | None = None) -> None:
        self.body = body
        self.exc = exc
        self.calls: list[tuple[str, str]] = []

    def fetch_to(self, url: str, target_path: str) -> int:
        self.calls.append((url, target_path))
        if self.exc is not None:
            raise self.exc
        Path(target_path).parent.mkdir(parents=True, exist_ok=True)
        Path(target_path).write_bytes(self.body)
        return len(self.body)


def test_verified_download_is_released(tmp_path: Path) -> None:
    transport = _TransportDouble()
    download = DownloadArtifact(transport=transport, updates_root=tmp_path / "updates")
    checksum = hashlib.sha256(BODY).hexdigest().upper()

    result = download("https://updates.example.test/releases/hris-2.1.0.zip?sig=1", checksum)

    assert result.ok
    artifact = result.artifact
    assert artifact.verified is True
    assert artifact.computed_checksum == checksum.lower()
    assert artifact.size_bytes == len(BODY)
    assert Path(artifact.local_path).parent == tmp_path / "updates"
    assert Path(artifact.local_path).name.endswith("_hris-2.1.0.zip")
    assert Path(artifact.local_path).exists()


def test_checksum_mismatch_deletes_the_file(tmp_path: Path) -> None:
    download = DownloadArtifact(transport=_TransportDouble(), updates_root=tmp_path)

    result = download("https://updates.example.test/hris-2.1.0.zip", "abc123")

    assert result.ok is False
    assert result.code == "CHECKSUM_MISMATCH"
    assert result.artifact is None
    assert result.category == "integrity"
    assert list(tmp_path.iterdir()) == []


def test_transport_failure_is_a_download_failure(tmp_path: Path) -> None:
    transport = _TransportDouble(exc=ApiServerError("download_update: HTTP 502", status=502))
    download = DownloadArtifact(transport=transport, updates_root=tmp_path)

    result = download.download("https://updates.example.test/hris-2.1.0.zip")

    assert result.ok is False
    assert result.code == "DOWNLOAD_FAILED"
    assert "502" in result.message
    assert result.category == "transport"
    assert list(tmp_path.iterdir()) == []


def test_empty_url_is_rejected_without_transport_call(tmp_path: Path) -> None:
    transport = _TransportDouble()
    result = DownloadArtifact(transport=transport, updates_root=tmp_path).download("")
    assert result.ok is False
    assert result.category == "configuration"
    assert transport.calls == []


def test_verify_treats_missing_checksum_as_mismatch(tmp_path: Path) -> None:
    path = tmp_path / "pkg.zip"
    path.write_bytes(BODY)
    artifact = Artifact(local_path=str(path), declared_checksum=None)

    assert VerifyArtifact().verify(artifact, "") is False
    assert artifact.verified is False
    assert artifact.computed_checksum == hashlib.sha256(BODY).hexdigest()
    assert not path.exists()


def test_sha256_streams_large_files(tmp_path: Path) -> None:
    path = tmp_path / "big.bin"
    data = b"x" * (3 * 1024 * 1024 + 17)
    path.write_bytes(data)
    assert compute_file_sha256(path) == hashlib.sha256(data).hexdigest()


def test_artifact_filename_falls_back_for_bare_urls() -> None:
    assert artifact_filename("https://updates.example.test/a%20b/pkg v2.zip") == "pkg_v2.zip"
    assert artifact_filename("https://updates.example.test/").startswith("update_")


def test_each_download_gets_its_own_target(tmp_path: Path) -> None:
    in_use = tmp_path / "hris-2.1.0.zip"
    in_use.write_bytes(b"archive of a running deployment")
    transport = _TransportDouble(exc=ConnectionError("connection reset"))
    download = DownloadArtifact(transport=transport, updates_root=tmp_path)

    download.download("https://updates.example.test/hris-2.1.0.zip")
    download.download("https://updates.example.test/hris-2.1.0.zip")

    first, second = (Path(target) for _url, target in transport.calls)
    assert first != second
    assert in_use not in (first, second)
    assert in_use.read_bytes() == b"archive of a running deployment"
    assert unique_artifact_name("https://updates.example.test/hris-2.1.0.zip").endswith("_hris-2.1.0.zip")
