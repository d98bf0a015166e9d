from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from sysupdate.domain.ports import HealthProbePort


class LocalHealthProbe(HealthProbePort):
    """Read the running version from ``<install_root>/VERSION`` and probe SQLite.

    Without a ``database_path`` the persistence check always passes.
    """

    def __init__(
        self,
        install_root: Path,
        *,
        version_file: str = "VERSION",
        database_path: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.install_root = Path(install_root)
        self.version_file = version_file
        self.database_path = Path(database_path) if database_path else None
        self.log = logger or logging.getLogger("sysupdate.health")

    def running_version(self) -> Optional[str]:
        path = self.install_root / self.version_file
        try:
            text = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            self.log.warning("Cannot read version file %s: %s", path, exc)
            return None
        return text.splitlines()[0].strip() if text else None

    def persistence_error(self) -> Optional[str]:
        if self.database_path is None:
            return None
        if not self.database_path.is_file():
            return f"Database file not found: {self.database_path}"
        try:
            conn = sqlite3.connect(f"file:{self.database_path}?mode=rw", uri=True, timeout=5)
            try:
                conn.execute("SELECT 1").fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            return f"Database connection failed: {exc}"
        return None


__all__ = ["LocalHealthProbe"]
