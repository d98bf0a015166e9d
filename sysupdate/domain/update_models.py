"""Typed domain objects for the update check, download, and deployment workflow."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Literal, Mapping, Optional, Tuple


BackupHandle = str

DeploymentStatus = Literal["pending", "in_progress", "succeeded", "failed", "rolled_back"]
DeploymentStep = Literal["precheck", "backup", "extract", "apply", "post_deploy", "verify", "done"]

STEP_ORDER: Tuple[str, ...] = (
    "precheck",
    "backup",
    "extract",
    "apply",
    "post_deploy",
    "verify",
    "done",
)
TERMINAL_DEPLOYMENT_STATES = {"succeeded", "failed", "rolled_back"}


def _as_text(value: Any) -> Optional[str]:
    text = str(value).strip() if value is not None else ""
    return text or None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


@dataclass(frozen=True)
class UpdateInfo:
    """Result of one update check; ``reason`` explains unavailable results."""

    current_version: str
    available: bool = False
    latest_version: Optional[str] = None
    download_url: Optional[str] = None
    checksum: Optional[str] = None
    release_date: Optional[str] = None
    is_security_update: bool = False
    minimum_runtime_version: Optional[str] = None
    changelog: Tuple[str, ...] = ()
    patch_notes: str = ""
    file_size: Optional[int] = None
    reason: str = ""
    checked_at: Optional[str] = None

    @classmethod
    def unavailable(cls, current_version: str, reason: str, *, checked_at: Optional[str] = None) -> "UpdateInfo":
        """Build a negative check result carrying a descriptive reason."""
        return cls(current_version=current_version, available=False, reason=reason, checked_at=checked_at)

    @classmethod
    def from_feed_payload(
        cls,
        current_version: str,
        payload: Mapping[str, Any],
        *,
        checked_at: Optional[str] = None,
    ) -> "UpdateInfo":
        """Normalize the update feed JSON object."""
        raw_changelog = payload.get("changelog")
        if isinstance(raw_changelog, (list, tuple)):
            changelog = tuple(str(item) for item in raw_changelog if str(item).strip())
        elif isinstance(raw_changelog, str) and raw_changelog.strip():
            changelog = (raw_changelog.strip(),)
        else:
            changelog = ()

        file_size: Optional[int]
        try:
            file_size = int(payload["file_size"]) if payload.get("file_size") is not None else None
        except (TypeError, ValueError):
            file_size = None

        checksum = _as_text(payload.get("checksum"))
        available = _as_bool(payload.get("update_available"))
        latest_version = _as_text(payload.get("latest_version"))
        return cls(
            current_version=current_version,
            available=available,
            latest_version=latest_version,
            download_url=_as_text(payload.get("download_url")),
            checksum=checksum.lower() if checksum else None,
            release_date=_as_text(payload.get("release_date")),
            is_security_update=_as_bool(payload.get("is_security_update")),
            minimum_runtime_version=_as_text(payload.get("minimum_runtime_version")),
            changelog=changelog,
            patch_notes=str(payload.get("patch_notes") or ""),
            file_size=file_size,
            reason="" if available else "No update available",
            checked_at=checked_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": self.available,
            "current_version": self.current_version,
            "latest_version": self.latest_version,
            "download_url": self.download_url,
            "checksum": self.checksum,
            "release_date": self.release_date,
            "is_security_update": self.is_security_update,
            "minimum_runtime_version": self.minimum_runtime_version,
            "changelog": list(self.changelog),
            "patch_notes": self.patch_notes,
            "file_size": self.file_size,
            "reason": self.reason,
            "checked_at": self.checked_at,
        }


@dataclass
class Artifact:
    """Downloaded, not-yet-applied update package."""

    local_path: str
    declared_checksum: Optional[str]
    computed_checksum: Optional[str] = None
    verified: bool = False
    source_url: str = ""
    size_bytes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local_path": self.local_path,
            "declared_checksum": self.declared_checksum,
            "computed_checksum": self.computed_checksum,
            "verified": self.verified,
            "source_url": self.source_url,
            "size_bytes": self.size_bytes,
        }


@dataclass(frozen=True)
class StepResult:
    """Outcome of one pipeline step: success, or failure with every reason found."""

    ok: bool
    message: str = ""
    errors: Tuple[str, ...] = ()
    value: Any = None

    @classmethod
    def success(cls, value: Any = None, message: str = "") -> "StepResult":
        return cls(ok=True, message=message, value=value)

    @classmethod
    def failure(cls, message: str, errors: Tuple[str, ...] | list = ()) -> "StepResult":
        return cls(ok=False, message=message, errors=tuple(errors))


@dataclass(frozen=True)
class MaintenanceTaskResult:
    """One maintenance task outcome."""

    task: str
    ok: bool
    skipped: bool = False
    exit_code: Optional[int] = None
    output: str = ""


@dataclass(frozen=True)
class MaintenanceReport:
    """Aggregate maintenance outcome; ``ok`` is False when any task failed."""

    tasks: Tuple[MaintenanceTaskResult, ...] = ()

    @property
    def ok(self) -> bool:
        return all(task.ok for task in self.tasks)

    @property
    def failed_tasks(self) -> Tuple[str, ...]:
        return tuple(task.task for task in self.tasks if not task.ok)


@dataclass(frozen=True)
class DeploymentFailure:
    """Structured failure attached to every non-successful terminal record."""

    step: str
    message: str
    details: Tuple[str, ...] = ()
    rollback_attempted: bool = False
    rollback_message: str = ""
    rollback_failed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "message": self.message,
            "details": list(self.details),
            "rollback_attempted": self.rollback_attempted,
            "rollback_message": self.rollback_message,
            "rollback_failed": self.rollback_failed,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "DeploymentFailure":
        return cls(
            step=str(payload.get("step") or ""),
            message=str(payload.get("message") or ""),
            details=tuple(str(item) for item in payload.get("details") or ()),
            rollback_attempted=bool(payload.get("rollback_attempted")),
            rollback_message=str(payload.get("rollback_message") or ""),
            rollback_failed=bool(payload.get("rollback_failed")),
        )


@dataclass
class DeploymentRecord:
    """Mutable state for one deployment attempt; only the orchestrator writes it."""

    deployment_id: str
    target_version: str
    from_version: str = "unknown"
    status: str = "pending"
    current_step: str = "precheck"
    backup_id: Optional[BackupHandle] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    duration_s: Optional[float] = None
    artifact_path: str = ""
    error: Optional[DeploymentFailure] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_DEPLOYMENT_STATES

    @property
    def requires_manual_intervention(self) -> bool:
        return bool(self.error and self.error.rollback_failed)

    def snapshot(self) -> "DeploymentRecord":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deployment_id": self.deployment_id,
            "target_version": self.target_version,
            "from_version": self.from_version,
            "status": self.status,
            "current_step": self.current_step,
            "backup_id": self.backup_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "duration_s": self.duration_s,
            "artifact_path": self.artifact_path,
            "error": self.error.to_dict() if self.error else None,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "DeploymentRecord":
        deployment_id = str(payload.get("deployment_id") or "").strip()
        if not deployment_id:
            raise ValueError("Missing deployment_id in record payload.")
        error_raw = payload.get("error")
        duration = payload.get("duration_s")
        return cls(
            deployment_id=deployment_id,
            target_version=str(payload.get("target_version") or ""),
            from_version=str(payload.get("from_version") or "unknown"),
            status=str(payload.get("status") or "pending"),
            current_step=str(payload.get("current_step") or "precheck"),
            backup_id=_as_text(payload.get("backup_id")),
            started_at=_as_text(payload.get("started_at")),
            finished_at=_as_text(payload.get("finished_at")),
            duration_s=float(duration) if duration is not None else None,
            artifact_path=str(payload.get("artifact_path") or ""),
            error=DeploymentFailure.from_dict(error_raw) if isinstance(error_raw, Mapping) else None,
        )


__all__ = [
    "Artifact",
    "BackupHandle",
    "DeploymentFailure",
    "DeploymentRecord",
    "DeploymentStatus",
    "DeploymentStep",
    "MaintenanceReport",
    "MaintenanceTaskResult",
    "STEP_ORDER",
    "StepResult",
    "TERMINAL_DEPLOYMENT_STATES",
    "UpdateInfo",
]
