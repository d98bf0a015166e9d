"""Pre-deployment checks run before any destructive step.

Every failing condition is collected so an operator sees the complete
remediation list from a single attempt.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from packaging.version import InvalidVersion, Version

from sysupdate.domain.ports import HealthProbePort
from sysupdate.domain.update_models import StepResult

MIN_FREE_BYTES = 500 * 1024 * 1024


def runtime_satisfies(running: str, minimum: str) -> bool:
    """Return True when ``running`` >= ``minimum`` (PEP 440 ordering)."""
    return Version(running) >= Version(minimum)


@dataclass
class RunPrechecks:
    """Validate runtime, disk space, write access, and persistence."""

    probe: HealthProbePort
    install_root: Path
    writable_roots: Sequence[Path] = ()
    min_free_bytes: int = MIN_FREE_BYTES
    default_minimum_runtime: Optional[str] = None
    runtime_version: Callable[[], str] = platform.python_version
    disk_usage: Callable[[str], Any] = shutil.disk_usage
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def __call__(self, minimum_runtime_version: Optional[str] = None) -> StepResult:
        errors: List[str] = []

        runtime_error = self._check_runtime(minimum_runtime_version or self.default_minimum_runtime)
        if runtime_error:
            errors.append(runtime_error)

        disk_error = self._check_disk()
        if disk_error:
            errors.append(disk_error)

        for root in self._roots():
            if not (root.is_dir() and os.access(root, os.W_OK)):
                errors.append(f"Directory not writable: {root}")

        try:
            persistence = self.probe.persistence_error()
        except Exception as exc:
            persistence = f"Database connection failed: {exc}"
        if persistence:
            errors.append(persistence)

        if errors:
            self.log.warning("Pre-deployment checks failed: %s", "; ".join(errors))
            return StepResult.failure("Pre-deployment checks failed", errors)
        return StepResult.success(message="Pre-deployment checks passed")

    def _check_runtime(self, minimum: Optional[str]) -> Optional[str]:
        if not minimum:
            return None
        running = self.runtime_version()
        try:
            if runtime_satisfies(running, minimum):
                return None
        except InvalidVersion:
            return f"Cannot compare runtime version {running!r} with required {minimum!r}"
        return f"Runtime version {minimum} or higher required (running {running})"

    def _check_disk(self) -> Optional[str]:
        try:
            free = self.disk_usage(str(self.install_root)).free
        except OSError as exc:
            return f"Cannot determine free disk space: {exc}"
        if free < self.min_free_bytes:
            floor_mb = self.min_free_bytes // (1024 * 1024)
            return f"Insufficient disk space (need at least {floor_mb}MB free)"
        return None

    def _roots(self) -> List[Path]:
        roots = [Path(self.install_root)]
        for root in self.writable_roots:
            path = Path(root)
            if path not in roots:
                roots.append(path)
        return roots


__all__ = ["MIN_FREE_BYTES", "RunPrechecks", "runtime_satisfies"]
