"""Checksum verification for downloaded update packages."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from sysupdate.domain.update_models import Artifact

CHUNK_SIZE = 1024 * 1024


def compute_file_sha256(path: Path) -> str:
    """Compute SHA256 hash for one file."""
    digest = hashlib.sha256()
    with Path(path).open("rb") as handle:
        while True:
            chunk = handle.read(CHUNK_SIZE)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


@dataclass
class VerifyArtifact:
    """Compare an artifact's SHA-256 against the declared value.

    On mismatch the local file is deleted and ``verified`` stays False.
    An empty expected checksum never verifies.
    """

    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def verify(self, artifact: Artifact, expected_checksum: Optional[str]) -> bool:
        path = Path(artifact.local_path)
        expected = (expected_checksum or "").strip().lower()
        artifact.declared_checksum = expected or None
        artifact.verified = False

        if not path.is_file():
            self.log.warning("Artifact %s is missing; cannot verify", path)
            return False

        artifact.computed_checksum = compute_file_sha256(path)
        if expected and artifact.computed_checksum == expected:
            artifact.verified = True
            return True

        self.log.warning(
            "Checksum mismatch for %s (expected=%s computed=%s); deleting",
            path,
            expected or "<none>",
            artifact.computed_checksum,
        )
        path.unlink(missing_ok=True)
        return False


__all__ = ["CHUNK_SIZE", "VerifyArtifact", "compute_file_sha256"]
