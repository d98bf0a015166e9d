"""Use case for downloading and verifying an update package."""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlparse

from sysupdate.domain.errors import CATEGORY_CONFIGURATION, CATEGORY_INTEGRITY, CATEGORY_TRANSPORT
from sysupdate.domain.ports import ArtifactTransportPort
from sysupdate.domain.time_utils import utc_stamp
from sysupdate.domain.update_models import Artifact
from sysupdate.usecases.error_mapping import map_api_error
from sysupdate.usecases.verify_artifact import VerifyArtifact

_SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class DownloadResult:
    """Outcome of a download; ``artifact`` is only set when usable."""

    ok: bool
    artifact: Optional[Artifact] = None
    code: str = ""
    message: str = ""
    category: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "artifact": self.artifact.to_dict() if self.artifact else None,
            "code": self.code,
            "message": self.message,
            "category": self.category,
        }


def artifact_filename(url: str) -> str:
    """Derive a local file name from the last segment of the URL path."""
    raw = PurePosixPath(unquote(urlparse(url).path or "")).name
    name = _SAFE_NAME.sub("_", raw).strip("._")
    return name or f"update_{utc_stamp()}.zip"


def stamped_archive_name(name: str) -> str:
    """Prefix ``name`` with a UTC stamp and random token; never reuses a path."""
    return f"{utc_stamp()}_{uuid.uuid4().hex[:8]}_{name}"


def unique_artifact_name(url: str) -> str:
    return stamped_archive_name(artifact_filename(url))


@dataclass
class DownloadArtifact:
    """Stream the package into the updates area and hand it to the verifier."""

    transport: ArtifactTransportPort
    updates_root: Path
    verifier: VerifyArtifact = field(default_factory=VerifyArtifact)
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def download(self, url: str) -> DownloadResult:
        url = (url or "").strip()
        if not url:
            return DownloadResult(
                ok=False,
                code="DOWNLOAD_NO_URL",
                message="No download URL provided.",
                category=CATEGORY_CONFIGURATION,
            )

        target = Path(self.updates_root) / unique_artifact_name(url)
        try:
            size = self.transport.fetch_to(url, str(target))
        except Exception as exc:
            target.unlink(missing_ok=True)
            mapped = map_api_error(
                exc,
                default_code="DOWNLOAD_FAILED",
                default_message="Failed to download update package.",
            )
            self.log.warning("Download of %s failed (%s): %s", url, mapped.code, mapped.message)
            return DownloadResult(
                ok=False,
                code="DOWNLOAD_FAILED",
                message=mapped.message,
                category=CATEGORY_TRANSPORT,
            )

        artifact = Artifact(
            local_path=str(target),
            declared_checksum=None,
            source_url=url,
            size_bytes=int(size or 0),
        )
        return DownloadResult(ok=True, artifact=artifact, message="Downloaded")

    def __call__(self, url: str, checksum: Optional[str]) -> DownloadResult:
        result = self.download(url)
        if not result.ok or result.artifact is None:
            return result

        if not self.verifier.verify(result.artifact, checksum):
            return DownloadResult(
                ok=False,
                code="CHECKSUM_MISMATCH",
                message="Update file checksum verification failed.",
                category=CATEGORY_INTEGRITY,
            )
        return DownloadResult(ok=True, artifact=result.artifact, message="Downloaded and verified")


__all__ = ["DownloadArtifact", "DownloadResult", "artifact_filename", "stamped_archive_name", "unique_artifact_name"]
