from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from sysupdate.adapters.history_jsonl import JsonlDeploymentHistory
from sysupdate.domain.ports import UseCaseError
from sysupdate.domain.update_models import DeploymentRecord
from sysupdate.usecases.deployment_history import DeploymentHistory
from sysupdate.usecases.rollback_deployment import RollbackDeployment


class _RestoreDouble:
    def __init__(self, outcome) -> None:
        self.outcome = outcome
        self.calls: List[str] = []

    def create_backup(self) -> str:  # pragma: no cover - unused here
        raise AssertionError("not expected")

    def restore(self, backup_id: str) -> bool:
        self.calls.append(backup_id)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def test_rollback_restores_once() -> None:
    backup = _RestoreDouble(True)
    result = RollbackDeployment(backup=backup)("B1")
    assert result.ok is True
    assert backup.calls == ["B1"]


def test_rollback_reports_false_and_exceptions_without_retrying() -> None:
    backup = _RestoreDouble(False)
    assert RollbackDeployment(backup=backup)("B1").ok is False
    assert backup.calls == ["B1"]

    backup = _RestoreDouble(OSError("disk full"))
    result = RollbackDeployment(backup=backup)("B1")
    assert result.ok is False
    assert "disk full" in result.message
    assert backup.calls == ["B1"]


def test_rollback_without_backup_does_not_call_restore() -> None:
    backup = _RestoreDouble(True)
    assert RollbackDeployment(backup=backup)(None).ok is False
    assert backup.calls == []


class _OrchestratorDouble:
    def __init__(self, record=None) -> None:
        self.record = record

    def current(self):
        return self.record


def test_history_window_defaults_to_ten(tmp_path: Path) -> None:
    store = JsonlDeploymentHistory(tmp_path / "deployments.jsonl")
    for index in range(15):
        store.append(DeploymentRecord(deployment_id=f"deploy_{index}", target_version="2.0.0", status="succeeded"))
    history = DeploymentHistory(store=store)

    assert len(history.recent()) == 10
    assert history.recent()[0]["deployment_id"] == "deploy_14"
    assert len(history.recent(3)) == 3
    with pytest.raises(UseCaseError):
        history.recent(0)


def test_get_prefers_in_progress_record(tmp_path: Path) -> None:
    store = JsonlDeploymentHistory(tmp_path / "deployments.jsonl")
    store.append(DeploymentRecord(deployment_id="deploy_old", target_version="1.0.1", status="rolled_back"))
    live = DeploymentRecord(deployment_id="deploy_live", target_version="2.0.0", status="in_progress", current_step="apply")
    history = DeploymentHistory(store=store, orchestrator=_OrchestratorDouble(live))

    assert history.get("deploy_live")["current_step"] == "apply"
    assert history.get("deploy_old")["status"] == "rolled_back"
    assert history.get("deploy_nope") is None
