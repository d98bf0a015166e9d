"""Tests for the small local adapters: settings, history, audit, cache, lock, probe."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

from sysupdate.adapters.audit_jsonl import JsonlAuditSink
from sysupdate.adapters.cache_memory import MemoryCache
from sysupdate.adapters.deployment_lock import DeploymentLock
from sysupdate.adapters.health_local import LocalHealthProbe
from sysupdate.adapters.history_jsonl import JsonlDeploymentHistory
from sysupdate.adapters.settings_json import JsonSettingsStore
from sysupdate.domain.update_models import DeploymentRecord


def test_settings_store_defaults_and_persists(tmp_path: Path) -> None:
    path = tmp_path / "state" / "settings.json"
    store = JsonSettingsStore(str(path))
    assert store.get_current_version() == "1.0.0"

    store.set_current_version("2.3.4")

    assert JsonSettingsStore(str(path)).get_current_version() == "2.3.4"
    assert json.loads(path.read_text(encoding="utf-8")) == {"current_version": "2.3.4"}
    assert not Path(f"{path}.tmp").exists()


def test_history_is_append_only_and_newest_first(tmp_path: Path) -> None:
    history = JsonlDeploymentHistory(tmp_path / "deployments.jsonl")
    for index in range(12):
        history.append(DeploymentRecord(deployment_id=f"deploy_{index}", target_version=f"1.0.{index}", status="failed"))
    history.append(DeploymentRecord(deployment_id="deploy_3", target_version="1.0.3", status="succeeded"))

    recent = history.recent(10)
    assert len(recent) == 10
    assert recent[0]["deployment_id"] == "deploy_3"
    assert recent[1]["deployment_id"] == "deploy_11"
    assert history.find("deploy_3")["status"] == "succeeded"
    assert history.find("deploy_missing") is None
    assert len(history.path.read_text(encoding="utf-8").splitlines()) == 13


def test_history_skips_corrupt_lines(tmp_path: Path) -> None:
    path = tmp_path / "deployments.jsonl"
    path.write_text('{"deployment_id": "deploy_a"}\nnot-json\n\n', encoding="utf-8")
    history = JsonlDeploymentHistory(path)
    assert [entry["deployment_id"] for entry in history.recent(5)] == ["deploy_a"]


def test_audit_sink_writes_one_line_per_event(tmp_path: Path) -> None:
    sink = JsonlAuditSink(tmp_path / "audit" / "audit.jsonl")
    sink.emit("system_update", {"deployment_id": "deploy_a", "version": "2.0.0"})
    sink.emit("system_update_failed", {"deployment_id": "deploy_b"}, severity="critical")

    lines = [json.loads(line) for line in (tmp_path / "audit" / "audit.jsonl").read_text(encoding="utf-8").splitlines()]
    assert [line["event"] for line in lines] == ["system_update", "system_update_failed"]
    assert lines[1]["severity"] == "critical"
    assert lines[0]["data"]["version"] == "2.0.0"


def test_memory_cache_expires_entries() -> None:
    now = [100.0]
    cache = MemoryCache(clock=lambda: now[0])
    cache.set("system_updates", "info", ttl_s=300)
    now[0] += 299
    assert cache.get("system_updates") == "info"
    now[0] += 1
    assert cache.get("system_updates") is None

    cache.set("system_updates", "info", ttl_s=300)
    cache.forget("system_updates")
    assert cache.get("system_updates") is None


def test_deployment_lock_never_waits() -> None:
    lock = DeploymentLock()
    assert lock.try_acquire("deploy_a") is True
    assert lock.holder == "deploy_a"
    assert lock.try_acquire("deploy_b") is False
    lock.release()
    assert not lock.locked
    assert lock.try_acquire("deploy_b") is True
    lock.release()


def test_health_probe_reads_version_and_database(tmp_path: Path) -> None:
    (tmp_path / "VERSION").write_text("2.0.0\n", encoding="utf-8")
    database = tmp_path / "app.sqlite"
    sqlite3.connect(database).close()

    probe = LocalHealthProbe(tmp_path, database_path=database)
    assert probe.running_version() == "2.0.0"
    assert probe.persistence_error() is None

    missing = LocalHealthProbe(tmp_path / "nowhere", database_path=tmp_path / "missing.sqlite")
    assert missing.running_version() is None
    assert "not found" in missing.persistence_error()

    assert LocalHealthProbe(tmp_path).persistence_error() is None
