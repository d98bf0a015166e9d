"""Runtime configuration for the updater, read from ``SYSUPDATE_*`` variables."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

DEFAULT_CRITICAL_FILES: Tuple[str, ...] = ("VERSION",)


def _env_path(env: Mapping[str, str], name: str, default: Path) -> Path:
    raw = (env.get(name) or "").strip()
    return Path(raw).expanduser() if raw else default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_list(env: Mapping[str, str], name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = env.get(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_commands(env: Mapping[str, str], name: str) -> Dict[str, List[str]]:
    raw = (env.get(name) or "").strip()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{name} must be a JSON object of task -> argv list") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be a JSON object of task -> argv list")
    commands: Dict[str, List[str]] = {}
    for task, argv in data.items():
        if isinstance(argv, str):
            argv = argv.split()
        if not isinstance(argv, list):
            raise ValueError(f"{name}: command for {task!r} must be a list or string")
        commands[str(task)] = [str(part) for part in argv]
    return commands


@dataclass
class UpdaterConfig:
    """Paths, endpoints, and limits used to wire the update pipeline."""

    install_root: Path = Path(".")
    storage_root: Optional[Path] = None
    public_root: Optional[Path] = None
    update_url: str = ""
    app_key: str = ""
    request_timeout_s: float = 10.0
    download_timeout_s: float = 300.0
    cache_ttl_s: float = 300.0
    min_free_mb: int = 500
    minimum_runtime_version: Optional[str] = None
    critical_files: Tuple[str, ...] = DEFAULT_CRITICAL_FILES
    maintenance_commands: Dict[str, List[str]] = field(default_factory=dict)
    maintenance_timeout_s: float = 600.0
    database_path: Optional[Path] = None
    backup_attempts: int = 2
    history_limit: int = 10

    def __post_init__(self) -> None:
        self.install_root = Path(self.install_root).resolve()
        self.storage_root = Path(self.storage_root).resolve() if self.storage_root else self.install_root / "storage"
        self.public_root = Path(self.public_root).resolve() if self.public_root else self.install_root / "public"

    # ---- derived locations ----
    @property
    def updates_root(self) -> Path:
        return self.storage_root / "app" / "updates"

    @property
    def backups_root(self) -> Path:
        return self.storage_root / "app" / "backups"

    @property
    def state_root(self) -> Path:
        return self.storage_root / "app" / "system"

    @property
    def settings_path(self) -> Path:
        return self.state_root / "settings.json"

    @property
    def history_path(self) -> Path:
        return self.state_root / "deployments.jsonl"

    @property
    def audit_path(self) -> Path:
        return self.state_root / "audit.jsonl"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "UpdaterConfig":
        """Build a config from environment variables; unset ones keep defaults."""
        env = os.environ if env is None else env
        defaults = cls()
        install_root = _env_path(env, "SYSUPDATE_INSTALL_ROOT", Path("."))
        storage = (env.get("SYSUPDATE_STORAGE_ROOT") or "").strip()
        public = (env.get("SYSUPDATE_PUBLIC_ROOT") or "").strip()
        database = (env.get("SYSUPDATE_DATABASE_PATH") or "").strip()
        return cls(
            install_root=install_root,
            storage_root=Path(storage).expanduser() if storage else None,
            public_root=Path(public).expanduser() if public else None,
            update_url=(env.get("SYSUPDATE_UPDATE_URL") or "").strip(),
            app_key=(env.get("SYSUPDATE_APP_KEY") or "").strip(),
            request_timeout_s=_env_float(env, "SYSUPDATE_REQUEST_TIMEOUT_S", defaults.request_timeout_s),
            download_timeout_s=_env_float(env, "SYSUPDATE_DOWNLOAD_TIMEOUT_S", defaults.download_timeout_s),
            cache_ttl_s=_env_float(env, "SYSUPDATE_CACHE_TTL_S", defaults.cache_ttl_s),
            min_free_mb=_env_int(env, "SYSUPDATE_MIN_FREE_MB", defaults.min_free_mb),
            minimum_runtime_version=(env.get("SYSUPDATE_MIN_RUNTIME") or "").strip() or None,
            critical_files=_env_list(env, "SYSUPDATE_CRITICAL_FILES", defaults.critical_files),
            maintenance_commands=_env_commands(env, "SYSUPDATE_MAINTENANCE_COMMANDS"),
            maintenance_timeout_s=_env_float(env, "SYSUPDATE_MAINTENANCE_TIMEOUT_S", defaults.maintenance_timeout_s),
            database_path=Path(database).expanduser() if database else None,
            backup_attempts=_env_int(env, "SYSUPDATE_BACKUP_ATTEMPTS", defaults.backup_attempts),
            history_limit=_env_int(env, "SYSUPDATE_HISTORY_LIMIT", defaults.history_limit),
        )


__all__ = ["DEFAULT_CRITICAL_FILES", "UpdaterConfig"]
