"""Deployment orchestrator: the ordered, recoverable update pipeline.

Steps run strictly in sequence::

    precheck -> backup -> extract -> apply -> post_deploy -> verify -> done

Each step returns a ``StepResult``; :func:`advance` maps it to the next
transition. Failures before the backup point end the attempt as ``failed``.
Failures afterwards restore the backup exactly once and end as ``rolled_back``
or, when the restore itself fails, ``failed`` with ``rollback_failed`` set.

Every run finishes by emitting one audit event and appending the terminal
record to the history; the deployment lock is released on every exit path.
"""

from __future__ import annotations

import logging
import shutil
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from sysupdate.domain.deployment_machine import DESTRUCTIVE_STEPS, advance, ensure_forward, resolve_rollback
from sysupdate.domain.errors import DeploymentAlreadyRunning, failure_category
from sysupdate.domain.ports import (
    AuditPort,
    BackupPort,
    HistoryPort,
    LockPort,
    MaintenancePort,
    SettingsPort,
    UseCaseError,
)
from sysupdate.domain.time_utils import utc_now_iso
from sysupdate.domain.update_models import Artifact, DeploymentFailure, DeploymentRecord, StepResult
from sysupdate.usecases.check_for_updates import CheckForUpdates
from sysupdate.usecases.rollback_deployment import RollbackDeployment
from sysupdate.usecases.run_prechecks import RunPrechecks
from sysupdate.usecases.stage_artifact import ApplyStagedFiles, ExtractArtifact, staging_dir_for
from sysupdate.usecases.verify_deployment import VerifyDeployment

AUDIT_EVENT_SUCCESS = "system_update"
AUDIT_EVENT_FAILURE = "system_update_failed"


def new_deployment_id() -> str:
    return f"deploy_{uuid.uuid4().hex[:16]}"


@dataclass
class DeployUpdate:
    """Run one deployment attempt to a terminal ``DeploymentRecord``."""

    lock: LockPort
    prechecks: RunPrechecks
    backup: BackupPort
    extractor: ExtractArtifact
    applier: ApplyStagedFiles
    maintenance: MaintenancePort
    verifier: VerifyDeployment
    rollback: RollbackDeployment
    settings: SettingsPort
    history: HistoryPort
    updates_root: Path
    audit: Optional[AuditPort] = None
    checker: Optional[CheckForUpdates] = None
    backup_attempts: int = 2
    clock: Callable[[], float] = time.monotonic
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _active: Optional[DeploymentRecord] = field(default=None, init=False, repr=False)
    _state_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __call__(
        self,
        artifact: Artifact,
        target_version: str,
        *,
        minimum_runtime_version: Optional[str] = None,
    ) -> DeploymentRecord:
        target = str(target_version or "").strip()
        if not target:
            raise UseCaseError("DEPLOY_NO_VERSION", "Target version is required.")
        if not artifact.verified:
            raise UseCaseError(
                "DEPLOY_ARTIFACT_UNVERIFIED",
                "Update package has not passed checksum verification.",
                "Download and verify the package before deploying.",
            )

        deployment_id = new_deployment_id()
        if not self.lock.try_acquire(deployment_id):
            raise DeploymentAlreadyRunning(active_id=self.active_deployment_id() or "")

        try:
            record = DeploymentRecord(
                deployment_id=deployment_id,
                target_version=target,
                from_version=self.settings.get_current_version(),
                status="in_progress",
                current_step="precheck",
                started_at=utc_now_iso(),
                artifact_path=str(artifact.local_path),
            )
            with self._state_lock:
                self._active = record
            self.log.info(
                "Deployment %s started: %s -> %s",
                deployment_id,
                record.from_version,
                target,
            )
            started = self.clock()
            staging_dir = staging_dir_for(self.updates_root, deployment_id)
            try:
                self._run_pipeline(record, artifact, staging_dir, minimum_runtime_version)
            except Exception as exc:
                # step runners are wrapped; this covers the orchestration itself
                self.log.exception("Deployment %s aborted", deployment_id)
                self._set_fields(
                    record,
                    status="failed",
                    error=DeploymentFailure(step=record.current_step, message=f"Unexpected error: {exc}"),
                )
            self._set_fields(
                record,
                finished_at=utc_now_iso(),
                duration_s=round(self.clock() - started, 3),
            )
            self._cleanup(record, artifact, staging_dir)
            self._emit_audit(record)
            self.history.append(record)
            return record.snapshot()
        finally:
            with self._state_lock:
                self._active = None
            self.lock.release()

    def current(self) -> Optional[DeploymentRecord]:
        """Snapshot of the in-progress record, if any."""
        with self._state_lock:
            return self._active.snapshot() if self._active else None

    def active_deployment_id(self) -> Optional[str]:
        """Id of the running deployment; ``None`` while the lock is free."""
        active = self.current()
        if active is not None:
            return active.deployment_id
        if getattr(self.lock, "locked", False):
            return str(getattr(self.lock, "holder", "") or "")
        return None

    # ---- pipeline ----
    def _run_pipeline(
        self,
        record: DeploymentRecord,
        artifact: Artifact,
        staging_dir: Path,
        minimum_runtime_version: Optional[str],
    ) -> None:
        runners: Dict[str, Callable[[], StepResult]] = {
            "precheck": lambda: self.prechecks(minimum_runtime_version),
            "backup": self._create_backup,
            "extract": lambda: self.extractor(Path(artifact.local_path), staging_dir),
            "apply": lambda: self.applier(staging_dir),
            "post_deploy": self._run_maintenance,
            "verify": lambda: self.verifier(record.target_version),
        }

        step = "precheck"
        while True:
            self._set_fields(record, current_step=step)
            self.log.info("Deployment %s: step %s", record.deployment_id, step)
            result = self._run_step(step, runners[step])
            if step == "backup" and result.ok:
                self._set_fields(record, backup_id=str(result.value))

            transition = advance(step, result, record.backup_id)
            if transition.rollback_required:
                self._roll_back(record, step, result)
                return
            if not result.ok:
                self.log.warning("Deployment %s failed at %s: %s", record.deployment_id, step, result.message)
                self._set_fields(
                    record,
                    status=transition.status,
                    error=DeploymentFailure(step=step, message=result.message, details=result.errors),
                )
                return
            if transition.step == "done":
                self._complete(record)
                return
            ensure_forward(step, transition.step)
            step = transition.step

    def _run_step(self, step: str, runner: Callable[[], StepResult]) -> StepResult:
        try:
            return runner()
        except Exception as exc:
            self.log.exception("Unexpected error during %s", step)
            return StepResult.failure(f"Unexpected error during {step}", [str(exc)])

    def _create_backup(self) -> StepResult:
        errors: List[str] = []
        attempts = max(1, int(self.backup_attempts))
        for attempt in range(1, attempts + 1):
            try:
                backup_id = self.backup.create_backup()
            except Exception as exc:
                self.log.warning("Backup attempt %d/%d failed: %s", attempt, attempts, exc)
                errors.append(f"Attempt {attempt}: {exc}")
                continue
            if backup_id:
                return StepResult.success(value=backup_id, message=f"Backup {backup_id} created")
            errors.append(f"Attempt {attempt}: backup service returned no backup id")
        return StepResult.failure("Failed to create backup", errors)

    def _run_maintenance(self) -> StepResult:
        report = self.maintenance.run()
        if report.ok:
            return StepResult.success(value=report, message="Post-deployment tasks completed")
        details = []
        for task in report.tasks:
            if task.ok:
                continue
            reason = task.output or (f"exit code {task.exit_code}" if task.exit_code is not None else "failed")
            details.append(f"{task.task}: {reason}")
        return StepResult.failure("Post-deployment tasks failed", details)

    def _roll_back(self, record: DeploymentRecord, step: str, result: StepResult) -> None:
        self.log.error(
            "Deployment %s failed at %s (%s); restoring backup %s",
            record.deployment_id,
            step,
            result.message,
            record.backup_id,
        )
        outcome = self.rollback(record.backup_id)
        status = resolve_rollback(outcome.ok)
        failure = DeploymentFailure(
            step=step,
            message=result.message,
            details=result.errors,
            rollback_attempted=True,
            rollback_message=outcome.message,
            rollback_failed=not outcome.ok,
        )
        if not outcome.ok:
            self.log.critical(
                "Deployment %s: rollback of backup %s FAILED, manual intervention required: %s",
                record.deployment_id,
                record.backup_id,
                outcome.message,
            )
        self._set_fields(record, status=status, error=failure)

    def _complete(self, record: DeploymentRecord) -> None:
        try:
            self.settings.set_current_version(record.target_version)
        except Exception as exc:
            self.log.exception("Recording current_version failed")
            self._roll_back(
                record,
                "done",
                StepResult.failure("Failed to record current version", [str(exc)]),
            )
            return
        if self.checker is not None:
            self.checker.clear_cache()
        self._set_fields(record, status="succeeded", current_step="done")
        self.log.info("Deployment %s succeeded (version %s)", record.deployment_id, record.target_version)

    # ---- finalization ----
    def _cleanup(self, record: DeploymentRecord, artifact: Artifact, staging_dir: Path) -> None:
        if staging_dir.exists():
            shutil.rmtree(staging_dir, ignore_errors=True)
        # archive is kept for a retry when nothing destructive was attempted
        reached_destructive = record.current_step in DESTRUCTIVE_STEPS or record.current_step == "done"
        if not reached_destructive:
            return
        archive = Path(artifact.local_path)
        try:
            archive.unlink(missing_ok=True)
        except OSError as exc:
            self.log.warning("Failed to remove update archive %s: %s", archive, exc)

    def _emit_audit(self, record: DeploymentRecord) -> None:
        if self.audit is None:
            return
        payload: Dict[str, Any] = {
            "deployment_id": record.deployment_id,
            "from_version": record.from_version,
            "version": record.target_version,
            "status": record.status,
            "duration_s": record.duration_s,
            "backup_id": record.backup_id,
        }
        if record.status == "succeeded":
            event, severity = AUDIT_EVENT_SUCCESS, "info"
        else:
            error = record.error
            event = AUDIT_EVENT_FAILURE
            severity = "critical" if record.requires_manual_intervention else "warning"
            if error is not None:
                payload.update(
                    step=error.step,
                    error=error.message,
                    details=list(error.details),
                    category=failure_category(error.step, rollback_failed=error.rollback_failed),
                    rollback_attempted=error.rollback_attempted,
                    rollback_failed=error.rollback_failed,
                )
        try:
            self.audit.emit(event, payload, severity=severity)
        except Exception:
            self.log.exception("Failed to write audit event for %s", record.deployment_id)

    def _set_fields(self, record: DeploymentRecord, **fields: object) -> None:
        with self._state_lock:
            for key, value in fields.items():
                setattr(record, key, value)


__all__ = ["AUDIT_EVENT_FAILURE", "AUDIT_EVENT_SUCCESS", "DeployUpdate", "new_deployment_id"]
