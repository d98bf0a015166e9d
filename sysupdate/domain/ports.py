from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .update_models import BackupHandle, DeploymentRecord, MaintenanceReport


# ---- Error model ----
class UseCaseError(Exception):
    """Base class for use case level errors (user-presentable)."""

    def __init__(self, code: str, message: str, hint: str = ""):
        super().__init__(message)
        self.code = code
        self.message = message
        self.hint = hint


# ---- Ports (Hexagonal boundaries) ----
class UpdateFeedPort(Protocol):
    """Remote update feed queried with the currently installed version."""

    def fetch(self, current_version: str) -> Dict[str, Any]: ...  # raw feed JSON object


class ArtifactTransportPort(Protocol):
    """Streams a remote resource into a local file."""

    def fetch_to(self, url: str, target_path: str) -> int: ...  # returns bytes written


class CachePort(Protocol):
    """Key-value cache with explicit TTLs."""

    def get(self, key: str) -> Optional[Any]: ...
    def set(self, key: str, value: Any, ttl_s: float) -> None: ...
    def forget(self, key: str) -> None: ...


class BackupPort(Protocol):
    """External backup collaborator; handles are never interpreted here."""

    def create_backup(self) -> BackupHandle: ...
    def restore(self, backup_id: BackupHandle) -> bool: ...


class MaintenancePort(Protocol):
    """Runs the fixed post-deployment maintenance sequence."""

    def run(self) -> MaintenanceReport: ...


class HealthProbePort(Protocol):
    """Running-version and persistence connectivity probe."""

    def running_version(self) -> Optional[str]: ...
    def persistence_error(self) -> Optional[str]: ...  # None when reachable


class SettingsPort(Protocol):
    """Persistence for the installed ``current_version`` setting."""

    def get_current_version(self, default: str = "1.0.0") -> str: ...
    def set_current_version(self, version: str) -> None: ...


class HistoryPort(Protocol):
    """Append-only deployment history."""

    def append(self, record: DeploymentRecord) -> None: ...
    def recent(self, limit: int) -> List[Dict[str, Any]]: ...  # newest first
    def find(self, deployment_id: str) -> Optional[Dict[str, Any]]: ...  # latest entry for id


class AuditPort(Protocol):
    """Structured audit sink; one call per terminal deployment record."""

    def emit(self, event: str, payload: Mapping[str, Any], *, severity: str = "info") -> None: ...


class LockPort(Protocol):
    """Exclusive deployment lock; acquisition never waits."""

    def try_acquire(self, holder: str = "") -> bool: ...
    def release(self) -> None: ...
