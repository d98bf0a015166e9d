from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Mapping, Optional

from sysupdate.domain.ports import AuditPort
from sysupdate.domain.time_utils import utc_now_iso


class JsonlAuditSink(AuditPort):
    """Write one JSON line per audit event to ``audit.jsonl``."""

    def __init__(self, path: Path, *, logger: Optional[logging.Logger] = None) -> None:
        self.path = Path(path)
        self._log = logger or logging.getLogger("sysupdate.audit")
        self._lock = threading.Lock()

    def emit(self, event: str, payload: Mapping[str, Any], *, severity: str = "info") -> None:
        entry = {
            "ts": utc_now_iso(),
            "event": event,
            "severity": severity,
            "data": dict(payload),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry, separators=(",", ":"), ensure_ascii=True, default=str)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)
                handle.write("\n")
        self._log.debug("Audit event %s (%s) written", event, severity)


__all__ = ["JsonlAuditSink"]
