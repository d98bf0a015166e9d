from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Optional

from sysupdate.usecases.run_prechecks import MIN_FREE_BYTES, RunPrechecks, runtime_satisfies
from sysupdate.usecases.verify_deployment import VerifyDeployment


class _ProbeDouble:
    def __init__(self, version: Optional[str] = "2.0.0", db_error: Optional[str] = None) -> None:
        self.version = version
        self.db_error = db_error

    def running_version(self) -> Optional[str]:
        return self.version

    def persistence_error(self) -> Optional[str]:
        return self.db_error


def _disk(free: int):
    return lambda _path: SimpleNamespace(free=free)


def test_all_failing_conditions_are_reported_together(tmp_path: Path) -> None:
    check = RunPrechecks(
        probe=_ProbeDouble(db_error="Database connection failed: unable to open database file"),
        install_root=tmp_path,
        writable_roots=[tmp_path / "storage-missing", tmp_path / "public-missing"],
        runtime_version=lambda: "3.9.18",
        disk_usage=_disk(MIN_FREE_BYTES - 1),
    )

    result = check("3.10")

    assert result.ok is False
    assert result.errors == (
        "Runtime version 3.10 or higher required (running 3.9.18)",
        "Insufficient disk space (need at least 500MB free)",
        f"Directory not writable: {tmp_path / 'storage-missing'}",
        f"Directory not writable: {tmp_path / 'public-missing'}",
        "Database connection failed: unable to open database file",
    )


def test_prechecks_pass_on_healthy_host(tmp_path: Path) -> None:
    (tmp_path / "storage").mkdir()
    check = RunPrechecks(
        probe=_ProbeDouble(),
        install_root=tmp_path,
        writable_roots=[tmp_path / "storage"],
        default_minimum_runtime="3.8",
        runtime_version=lambda: "3.12.1",
        disk_usage=_disk(MIN_FREE_BYTES),
    )
    assert check().ok is True


def test_probe_exceptions_become_precheck_errors(tmp_path: Path) -> None:
    class _BrokenProbe(_ProbeDouble):
        def persistence_error(self) -> Optional[str]:
            raise OSError("socket closed")

    result = RunPrechecks(probe=_BrokenProbe(), install_root=tmp_path, disk_usage=_disk(MIN_FREE_BYTES))()
    assert result.errors == ("Database connection failed: socket closed",)


def test_runtime_comparison_uses_release_ordering() -> None:
    assert runtime_satisfies("3.10.0", "3.9")
    assert not runtime_satisfies("3.9.18", "3.10")
    assert runtime_satisfies("3.12.0rc1", "3.11")


def test_verify_collects_version_files_and_persistence(tmp_path: Path) -> None:
    (tmp_path / "VERSION").write_text("2.0.0", encoding="utf-8")
    verify = VerifyDeployment(
        probe=_ProbeDouble(version="1.9.9", db_error="Database file not found: app.sqlite"),
        install_root=tmp_path,
        critical_files=("VERSION", "config/app.py"),
    )

    result = verify("2.0.0")

    assert result.ok is False
    assert result.errors[0] == "Version mismatch: expected 2.0.0, got 1.9.9"
    assert result.errors[1] == "Critical file missing: config/app.py"
    assert result.errors[2].startswith("Database connection failed after deployment")
