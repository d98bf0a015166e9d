"""Append-only JSONL deployment history.

Each terminal ``DeploymentRecord`` becomes one line in ``history.jsonl``.
Lines are never rewritten; readers return entries newest first.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from sysupdate.domain.ports import HistoryPort
from sysupdate.domain.time_utils import utc_now_iso
from sysupdate.domain.update_models import DeploymentRecord


class JsonlDeploymentHistory(HistoryPort):
    """File-backed history store for deployment attempts."""

    def __init__(self, path: Path, *, logger: Optional[logging.Logger] = None) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._log = logger or logging.getLogger("sysupdate.history")
        self._lock = threading.Lock()

    def append(self, record: DeploymentRecord) -> None:
        payload = record.to_dict()
        payload["recorded_at"] = utc_now_iso()
        line = json.dumps(payload, separators=(",", ":"), ensure_ascii=True)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)
                handle.write("\n")

    def recent(self, limit: int) -> List[Dict[str, Any]]:
        safe_limit = max(1, int(limit or 1))
        entries = self._read_all()
        return list(reversed(entries[-safe_limit:]))

    def find(self, deployment_id: str) -> Optional[Dict[str, Any]]:
        key = str(deployment_id or "").strip()
        if not key:
            return None
        for entry in reversed(self._read_all()):
            if entry.get("deployment_id") == key:
                return entry
        return None

    def _read_all(self) -> List[Dict[str, Any]]:
        if not self.path.is_file():
            return []
        entries: List[Dict[str, Any]] = []
        with self._lock:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                self._log.warning("Skipping unreadable history line %d in %s", number, self.path)
                continue
            if isinstance(payload, dict):
                entries.append(payload)
        return entries


__all__ = ["JsonlDeploymentHistory"]
