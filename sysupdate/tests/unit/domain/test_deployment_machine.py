from __future__ import annotations

import pytest

from sysupdate.domain.deployment_machine import advance, ensure_forward, next_step, resolve_rollback
from sysupdate.domain.update_models import STEP_ORDER, StepResult

OK = StepResult.success()
FAIL = StepResult.failure("boom", ["detail"])


def test_successful_steps_advance_in_fixed_order() -> None:
    step = "precheck"
    visited = [step]
    while True:
        transition = advance(step, OK, "B1")
        if transition.status == "succeeded":
            assert transition.step == "done"
            break
        assert transition.status == "in_progress"
        ensure_forward(step, transition.step)
        step = transition.step
        visited.append(step)
    assert tuple(visited) == STEP_ORDER[:-1]


@pytest.mark.parametrize("step", ["precheck", "backup"])
def test_non_destructive_failures_end_failed_without_rollback(step: str) -> None:
    transition = advance(step, FAIL, None)
    assert transition.status == "failed"
    assert transition.step == step
    assert transition.rollback_required is False
    assert transition.is_terminal


@pytest.mark.parametrize("step", ["extract", "apply", "post_deploy", "verify"])
def test_destructive_failures_require_rollback_when_backup_exists(step: str) -> None:
    transition = advance(step, FAIL, "B1")
    assert transition.rollback_required is True
    assert transition.status == "in_progress"
    assert not transition.is_terminal


def test_destructive_failure_without_backup_never_rolls_back() -> None:
    transition = advance("apply", FAIL, None)
    assert transition.rollback_required is False
    assert transition.status == "failed"


def test_resolve_rollback_maps_restore_outcome() -> None:
    assert resolve_rollback(True) == "rolled_back"
    assert resolve_rollback(False) == "failed"


def test_step_order_rejects_skips_and_repeats() -> None:
    with pytest.raises(ValueError):
        ensure_forward("backup", "apply")
    with pytest.raises(ValueError):
        ensure_forward("apply", "apply")
    with pytest.raises(ValueError):
        next_step("done")
    with pytest.raises(ValueError):
        advance("done", OK, "B1")
    with pytest.raises(ValueError):
        advance("unknown", OK, "B1")
