"""Post-deployment verification of the live installation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from sysupdate.domain.ports import HealthProbePort
from sysupdate.domain.update_models import StepResult


@dataclass
class VerifyDeployment:
    """Check the running version, critical files, and persistence after apply."""

    probe: HealthProbePort
    install_root: Path
    critical_files: Sequence[str] = ()

    def __call__(self, target_version: str) -> StepResult:
        errors: List[str] = []

        running = self.probe.running_version()
        if running != target_version:
            errors.append(f"Version mismatch: expected {target_version}, got {running or 'unknown'}")

        root = Path(self.install_root)
        for rel in self.critical_files:
            if not (root / rel).exists():
                errors.append(f"Critical file missing: {rel}")

        persistence = self.probe.persistence_error()
        if persistence:
            errors.append(f"Database connection failed after deployment: {persistence}")

        if errors:
            return StepResult.failure("Deployment verification failed", errors)
        return StepResult.success(message="Deployment verified")


__all__ = ["VerifyDeployment"]
