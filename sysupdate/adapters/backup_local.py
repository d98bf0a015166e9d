"""Filesystem snapshot backups for the deployment pipeline.

``create_backup`` copies every configured root (directories or single files,
e.g. a SQLite database) into ``<backups_root>/<backup_id>/`` together with a
``backup.json`` manifest. ``restore`` mirrors each snapshot back onto its
root: files added after the snapshot are removed and snapshot content is
copied over. Paths listed in ``exclude`` (the backups and updates areas) are
neither captured nor touched during restore.
"""

from __future__ import annotations

import json
import logging
import shutil
import uuid
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from sysupdate.domain.ports import BackupPort
from sysupdate.domain.time_utils import utc_now_iso, utc_stamp
from sysupdate.domain.update_models import BackupHandle

MANIFEST_NAME = "backup.json"


class LocalDirectoryBackup(BackupPort):
    """Snapshot/restore of install and state roots on the local filesystem."""

    def __init__(
        self,
        *,
        roots: Sequence[Path],
        backups_root: Path,
        exclude: Iterable[Path] = (),
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not roots:
            raise ValueError("LocalDirectoryBackup requires at least one root")
        self.roots: List[Path] = [Path(root).resolve() for root in roots]
        self.backups_root = Path(backups_root).resolve()
        self.exclude = {Path(path).resolve() for path in exclude} | {self.backups_root}
        self.log = logger or logging.getLogger("sysupdate.backup")
        self.backups_root.mkdir(parents=True, exist_ok=True)

    def create_backup(self) -> BackupHandle:
        backup_id = f"backup_{utc_stamp()}_{uuid.uuid4().hex[:8]}"
        backup_dir = self.backups_root / backup_id
        backup_dir.mkdir(parents=True, exist_ok=False)
        entries = []
        try:
            for index, root in enumerate(self.roots):
                slot = f"{index:02d}_{root.name or 'root'}"
                target = backup_dir / slot
                if root.is_dir():
                    shutil.copytree(root, target, ignore=self._ignore_excluded, symlinks=True)
                    kind = "dir"
                elif root.is_file():
                    shutil.copy2(root, target)
                    kind = "file"
                else:
                    kind = "missing"
                entries.append({"root": str(root), "slot": slot, "kind": kind})
            manifest = {"backup_id": backup_id, "created_at": utc_now_iso(), "entries": entries}
            (backup_dir / MANIFEST_NAME).write_text(json.dumps(manifest, indent=2), encoding="utf-8")
        except Exception:
            shutil.rmtree(backup_dir, ignore_errors=True)
            raise
        self.log.info("Created backup %s of %d root(s)", backup_id, len(entries))
        return backup_id

    def restore(self, backup_id: BackupHandle) -> bool:
        backup_dir = self.backups_root / str(backup_id)
        manifest_path = backup_dir / MANIFEST_NAME
        if not manifest_path.is_file():
            self.log.error("Backup %s not found under %s", backup_id, self.backups_root)
            return False
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        for entry in manifest.get("entries") or []:
            root = Path(entry["root"])
            snapshot = backup_dir / entry["slot"]
            kind = entry.get("kind")
            if kind == "dir":
                root.mkdir(parents=True, exist_ok=True)
                self._mirror(snapshot, root)
            elif kind == "file":
                root.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(snapshot, root)
            elif root.is_file():
                root.unlink()
            elif root.is_dir():
                shutil.rmtree(root)
        self.log.info("Restored backup %s", backup_id)
        return True

    def _mirror(self, snapshot: Path, target: Path) -> None:
        """Make ``target`` match ``snapshot`` while leaving excluded paths alone."""
        # deepest paths first so children go before their parents
        for path in sorted(target.rglob("*"), key=lambda item: str(item), reverse=True):
            if self._is_protected(path):
                continue
            rel = path.relative_to(target)
            if (snapshot / rel).exists() or not (path.exists() or path.is_symlink()):
                continue
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        shutil.copytree(snapshot, target, dirs_exist_ok=True, symlinks=True)

    def _is_protected(self, path: Path) -> bool:
        resolved = path.resolve()
        for excluded in self.exclude:
            if resolved == excluded or excluded in resolved.parents or resolved in excluded.parents:
                return True
        return False

    def _ignore_excluded(self, directory: str, names: List[str]) -> List[str]:
        base = Path(directory).resolve()
        return [name for name in names if (base / name).resolve() in self.exclude]


__all__ = ["LocalDirectoryBackup"]
