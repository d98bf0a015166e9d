"""Post-deployment maintenance tasks executed as subprocesses.

The task order is fixed: cache clear, config clear, route clear, view clear,
schema migration, build optimization. Each task maps to a command (argv list)
supplied by configuration; tasks without a command are reported as skipped.
The first failing task stops the sequence.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from sysupdate.domain.ports import MaintenancePort
from sysupdate.domain.update_models import MaintenanceReport, MaintenanceTaskResult

MAINTENANCE_TASKS: tuple[str, ...] = (
    "cache_clear",
    "config_clear",
    "route_clear",
    "view_clear",
    "migrate",
    "optimize",
)
OUTPUT_LIMIT = 2000


class SubprocessMaintenanceRunner(MaintenancePort):
    """Run configured maintenance commands in the fixed task order."""

    def __init__(
        self,
        commands: Mapping[str, Sequence[str]],
        *,
        cwd: Optional[Path] = None,
        timeout_s: float = 600,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        unknown = sorted(set(commands) - set(MAINTENANCE_TASKS))
        if unknown:
            raise ValueError(f"Unknown maintenance tasks: {', '.join(unknown)}")
        self.commands = {name: [str(part) for part in argv] for name, argv in commands.items() if argv}
        self.cwd = Path(cwd) if cwd else None
        self.timeout_s = float(timeout_s)
        self.log = logger or logging.getLogger("sysupdate.maintenance")

    def run(self) -> MaintenanceReport:
        results: List[MaintenanceTaskResult] = []
        for task in MAINTENANCE_TASKS:
            argv = self.commands.get(task)
            if not argv:
                self.log.debug("Maintenance task %s has no command; skipped", task)
                results.append(MaintenanceTaskResult(task=task, ok=True, skipped=True))
                continue
            result = self._run_task(task, argv)
            results.append(result)
            if not result.ok:
                self.log.warning("Maintenance task %s failed (exit=%s)", task, result.exit_code)
                break
        return MaintenanceReport(tasks=tuple(results))

    def _run_task(self, task: str, argv: List[str]) -> MaintenanceTaskResult:
        self.log.info("Running maintenance task %s: %s", task, " ".join(argv))
        try:
            completed = subprocess.run(
                argv,
                cwd=str(self.cwd) if self.cwd else None,
                capture_output=True,
                text=True,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired:
            return MaintenanceTaskResult(
                task=task,
                ok=False,
                output=f"Timed out after {self.timeout_s:g}s",
            )
        except OSError as exc:
            return MaintenanceTaskResult(task=task, ok=False, output=str(exc))

        output = (completed.stdout or "") + (completed.stderr or "")
        return MaintenanceTaskResult(
            task=task,
            ok=completed.returncode == 0,
            exit_code=completed.returncode,
            output=output.strip()[-OUTPUT_LIMIT:],
        )


__all__ = ["MAINTENANCE_TASKS", "SubprocessMaintenanceRunner"]
