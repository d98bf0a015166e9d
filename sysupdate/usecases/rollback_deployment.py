"""Restore a prior backup after a destructive-phase failure."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from sysupdate.domain.ports import BackupPort
from sysupdate.domain.update_models import BackupHandle


@dataclass(frozen=True)
class RollbackResult:
    ok: bool
    message: str = ""


@dataclass
class RollbackDeployment:
    """Exactly one restore attempt; retry policy belongs to the caller."""

    backup: BackupPort
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def __call__(self, backup_id: Optional[BackupHandle]) -> RollbackResult:
        if not backup_id:
            return RollbackResult(ok=False, message="No backup available to restore")

        self.log.warning("Rolling back deployment from backup %s", backup_id)
        try:
            restored = self.backup.restore(backup_id)
        except Exception as exc:
            self.log.exception("Restore of backup %s raised", backup_id)
            return RollbackResult(ok=False, message=f"Rollback failed: {exc}")

        if not restored:
            return RollbackResult(ok=False, message=f"Rollback failed: backup {backup_id} could not be restored")
        return RollbackResult(ok=True, message="Rollback completed successfully")


__all__ = ["RollbackDeployment", "RollbackResult"]
