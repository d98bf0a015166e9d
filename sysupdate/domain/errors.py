"""Domain-level error types for use-case and adapter mapping.

Error categories mirror how a failure surfaces to the caller:

- ``configuration``: no update endpoint configured, reported as unavailable.
- ``transport``: network or timeout failure during check or download.
- ``integrity``: checksum mismatch; the artifact is discarded.
- ``precondition``: precheck failures, collected and reported together.
- ``destructive``: extract/apply/post_deploy/verify failure, rolled back.
- ``rollback``: restore failed; operator action is required.
"""

from __future__ import annotations

from .ports import UseCaseError


CATEGORY_CONFIGURATION = "configuration"
CATEGORY_TRANSPORT = "transport"
CATEGORY_INTEGRITY = "integrity"
CATEGORY_PRECONDITION = "precondition"
CATEGORY_DESTRUCTIVE = "destructive"
CATEGORY_ROLLBACK = "rollback"


def failure_category(step: str, *, rollback_failed: bool = False) -> str:
    """Classify a deployment failure by the step it happened in."""
    if rollback_failed:
        return CATEGORY_ROLLBACK
    if step in ("precheck", "backup"):
        return CATEGORY_PRECONDITION
    return CATEGORY_DESTRUCTIVE


class DeploymentAlreadyRunning(UseCaseError):
    """Raised when the deployment lock is held by another attempt."""

    def __init__(self, active_id: str = "") -> None:
        hint = f"Wait for deployment {active_id} to finish." if active_id else ""
        super().__init__("DEPLOY_ALREADY_RUNNING", "Deployment already running", hint)
        self.active_id = active_id


__all__ = [
    "CATEGORY_CONFIGURATION",
    "CATEGORY_DESTRUCTIVE",
    "CATEGORY_INTEGRITY",
    "CATEGORY_PRECONDITION",
    "CATEGORY_ROLLBACK",
    "CATEGORY_TRANSPORT",
    "DeploymentAlreadyRunning",
    "failure_category",
]
