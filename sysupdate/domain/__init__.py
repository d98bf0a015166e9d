"""Domain package exports for value objects, ports, and the deployment state machine."""

from .deployment_machine import Transition, advance, resolve_rollback
from .errors import DeploymentAlreadyRunning
from .ports import UseCaseError
from .update_models import (
    STEP_ORDER,
    Artifact,
    BackupHandle,
    DeploymentFailure,
    DeploymentRecord,
    MaintenanceReport,
    MaintenanceTaskResult,
    StepResult,
    UpdateInfo,
)

__all__ = [
    "Artifact",
    "BackupHandle",
    "DeploymentAlreadyRunning",
    "DeploymentFailure",
    "DeploymentRecord",
    "MaintenanceReport",
    "MaintenanceTaskResult",
    "STEP_ORDER",
    "StepResult",
    "Transition",
    "UpdateInfo",
    "UseCaseError",
    "advance",
    "resolve_rollback",
]
