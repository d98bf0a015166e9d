"""Extract an update archive into staging and copy staged files into place."""

from __future__ import annotations

import logging
import shutil
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List

from sysupdate.domain.time_utils import utc_stamp
from sysupdate.domain.update_models import StepResult


class UnsafeArchiveError(ValueError):
    """Raised for archive entries that would escape the staging directory."""


def staging_dir_for(updates_root: Path, deployment_id: str) -> Path:
    """Unique, time-stamped extraction target beside downloaded archives."""
    return Path(updates_root) / f"extracted_{utc_stamp()}_{deployment_id}"


def secure_extract(archive_path: Path, destination: Path) -> int:
    """Extract ZIP safely and prevent path traversal or symlink escapes.

    Returns the number of regular files written.
    """
    destination.mkdir(parents=True, exist_ok=True)
    destination_root = destination.resolve()
    written = 0
    with zipfile.ZipFile(archive_path, "r") as archive:
        for entry in archive.infolist():
            name = entry.filename.replace("\\", "/")
            if not name:
                continue
            pure = PurePosixPath(name)
            if pure.is_absolute() or any(part in ("", "..") for part in pure.parts):
                raise UnsafeArchiveError(f"Unsafe archive entry path: {name}")
            mode = (entry.external_attr >> 16) & 0o170000
            if mode == 0o120000:
                raise UnsafeArchiveError(f"Archive contains symlink entry: {name}")
            resolved_target = (destination / pure.as_posix()).resolve()
            if destination_root not in (resolved_target, *resolved_target.parents):
                raise UnsafeArchiveError(f"Archive entry escaped extraction directory: {name}")
            if entry.is_dir():
                resolved_target.mkdir(parents=True, exist_ok=True)
                continue
            resolved_target.parent.mkdir(parents=True, exist_ok=True)
            with archive.open(entry, "r") as source, resolved_target.open("wb") as handle:
                shutil.copyfileobj(source, handle)
            written += 1
    return written


@dataclass
class ExtractArtifact:
    """Unpack the verified archive into an isolated staging directory."""

    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def __call__(self, archive_path: Path, staging_dir: Path) -> StepResult:
        try:
            count = secure_extract(Path(archive_path), Path(staging_dir))
        except UnsafeArchiveError as exc:
            return StepResult.failure("Failed to extract update package", [str(exc)])
        except zipfile.BadZipFile as exc:
            return StepResult.failure("Failed to extract update package", [f"Could not open ZIP archive: {exc}"])
        except OSError as exc:
            return StepResult.failure("Failed to extract update package", [str(exc)])

        if count == 0:
            return StepResult.failure("Failed to extract update package", ["Archive contains no files"])
        self.log.info("Extracted %d file(s) from %s into %s", count, archive_path, staging_dir)
        return StepResult.success(value=count, message=f"Extracted {count} file(s)")


@dataclass
class ApplyStagedFiles:
    """Copy every staged file into the install root, preserving relative paths.

    There is no partial undo here: a failure part-way through leaves the
    install tree half-written and the caller restores from backup.
    """

    install_root: Path
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def __call__(self, staging_dir: Path) -> StepResult:
        source_root = Path(staging_dir)
        target_root = Path(self.install_root)
        copied: List[str] = []
        try:
            for item in sorted(source_root.rglob("*")):
                if not item.is_file():
                    continue
                rel = item.relative_to(source_root)
                destination = target_root / rel
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(item, destination)
                copied.append(rel.as_posix())
        except OSError as exc:
            self.log.error("Apply failed after %d file(s): %s", len(copied), exc)
            return StepResult.failure("Failed to apply update files", [str(exc)])

        self.log.info("Applied %d file(s) into %s", len(copied), target_root)
        return StepResult.success(value=copied, message=f"Applied {len(copied)} file(s)")


__all__ = [
    "ApplyStagedFiles",
    "ExtractArtifact",
    "UnsafeArchiveError",
    "secure_extract",
    "staging_dir_for",
]
