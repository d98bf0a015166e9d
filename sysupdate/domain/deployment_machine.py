"""Pure transition rules for the deployment state machine.

The orchestrator feeds each step result through :func:`advance` and applies the
returned :class:`Transition` to its ``DeploymentRecord``. Nothing here performs
I/O, so every transition can be exercised directly in unit tests.

Step order::

    precheck -> backup -> extract -> apply -> post_deploy -> verify -> done

Failures at ``precheck`` or ``backup`` end the attempt as ``failed`` because no
destructive change exists yet. Failures from ``extract`` onward require a
rollback; :func:`resolve_rollback` maps the restore outcome to the final status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .update_models import STEP_ORDER, StepResult


NON_DESTRUCTIVE_STEPS = frozenset({"precheck", "backup"})
DESTRUCTIVE_STEPS = frozenset({"extract", "apply", "post_deploy", "verify"})


@dataclass(frozen=True)
class Transition:
    """Next status/step pair and whether a rollback must run first."""

    status: str
    step: str
    rollback_required: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status in {"succeeded", "failed", "rolled_back"}


def next_step(step: str) -> str:
    """Return the step following ``step`` in the fixed order."""
    try:
        index = STEP_ORDER.index(step)
    except ValueError as exc:
        raise ValueError(f"Unknown deployment step: {step}") from exc
    if index + 1 >= len(STEP_ORDER):
        raise ValueError("No step follows 'done'")
    return STEP_ORDER[index + 1]


def ensure_forward(current: str, new: str) -> None:
    """Reject transitions that skip or repeat a step."""
    if new != next_step(current):
        raise ValueError(f"Illegal step transition {current} -> {new}")


def advance(step: str, result: StepResult, backup_id: Optional[str]) -> Transition:
    """Map the result of ``step`` to the next transition."""
    if step == "done" or step not in STEP_ORDER:
        raise ValueError(f"Cannot advance from step '{step}'")

    if result.ok:
        following = next_step(step)
        if following == "done":
            return Transition(status="succeeded", step="done")
        return Transition(status="in_progress", step=following)

    if step in NON_DESTRUCTIVE_STEPS:
        return Transition(status="failed", step=step)

    # destructive phase: nothing to restore without a backup handle
    if not backup_id:
        return Transition(status="failed", step=step)
    return Transition(status="in_progress", step=step, rollback_required=True)


def resolve_rollback(restored: bool) -> str:
    """Final status after a rollback attempt."""
    return "rolled_back" if restored else "failed"


__all__ = [
    "DESTRUCTIVE_STEPS",
    "NON_DESTRUCTIVE_STEPS",
    "Transition",
    "advance",
    "ensure_forward",
    "next_step",
    "resolve_rollback",
]
