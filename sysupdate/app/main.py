"""Composition root and operator CLI for the update pipeline.

``build_updater`` wires the adapters into the use cases. The CLI exposes the
same operations for operators and schedulers::

    python -m sysupdate.app.main check [--force]
    python -m sysupdate.app.main download URL --checksum SHA256
    python -m sysupdate.app.main deploy ARCHIVE --checksum SHA256 --version X.Y.Z
    python -m sysupdate.app.main history [--limit N]
    python -m sysupdate.app.main apply [--force]

``deploy`` copies ARCHIVE into the updates area and deploys the copy.
"""

from __future__ import annotations

import argparse
import json
import logging
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from ..adapters.artifact_http import HttpArtifactTransport
from ..adapters.audit_jsonl import JsonlAuditSink
from ..adapters.backup_local import LocalDirectoryBackup
from ..adapters.cache_memory import MemoryCache
from ..adapters.deployment_lock import DeploymentLock
from ..adapters.health_local import LocalHealthProbe
from ..adapters.history_jsonl import JsonlDeploymentHistory
from ..adapters.maintenance_subprocess import SubprocessMaintenanceRunner
from ..adapters.settings_json import JsonSettingsStore
from ..adapters.update_feed_rest import UpdateFeedRestAdapter
from ..domain.errors import DeploymentAlreadyRunning
from ..domain.ports import SettingsPort, UseCaseError
from ..domain.update_models import Artifact, DeploymentRecord
from ..usecases.apply_available_update import ApplyAvailableUpdate
from ..usecases.check_for_updates import CheckForUpdates
from ..usecases.deploy_update import DeployUpdate
from ..usecases.deployment_history import DeploymentHistory
from ..usecases.download_artifact import DownloadArtifact, stamped_archive_name
from ..usecases.rollback_deployment import RollbackDeployment
from ..usecases.run_prechecks import RunPrechecks
from ..usecases.stage_artifact import ApplyStagedFiles, ExtractArtifact
from ..usecases.verify_artifact import VerifyArtifact
from ..usecases.verify_deployment import VerifyDeployment
from ..utils import logging as logging_utils
from .config import UpdaterConfig

log = logging.getLogger(__name__)


@dataclass
class Updater:
    """Wired use cases sharing one cache, lock, and history store."""

    config: UpdaterConfig
    settings: SettingsPort
    checker: CheckForUpdates
    downloader: DownloadArtifact
    verifier: VerifyArtifact
    deployer: DeployUpdate
    history: DeploymentHistory
    apply: ApplyAvailableUpdate

    def check(self, *, force: bool = False):
        return self.checker(self.settings.get_current_version(), force=force)

    def deploy_file(
        self,
        archive_path: str | Path,
        *,
        checksum: str,
        version: str,
        minimum_runtime_version: Optional[str] = None,
        import_external: bool = False,
    ) -> DeploymentRecord:
        """Verify an archive in the updates area and deploy it.

        A checksum mismatch or a destructive-phase run deletes the archive, so
        only files under ``updates_root`` are accepted. With
        ``import_external`` an outside file is first copied in and the copy is
        deployed; the original is left alone.
        """
        updates_root = self.config.updates_root.resolve()
        path = Path(archive_path).expanduser().resolve()
        inside = updates_root in path.parents
        if not inside and not import_external:
            raise UseCaseError(
                "DEPLOY_ARCHIVE_OUTSIDE_UPDATES",
                "Update package must be stored in the updates area.",
                str(updates_root),
            )
        if not path.is_file():
            raise UseCaseError("DEPLOY_ARCHIVE_NOT_FOUND", f"Update package not found: {path}")
        if not inside:
            active = self.deployer.active_deployment_id()
            if active is not None:
                raise DeploymentAlreadyRunning(active_id=active)
            target = updates_root / stamped_archive_name(path.name)
            shutil.copy2(path, target)
            log.info("Imported %s into the updates area as %s", path, target.name)
            path = target
        artifact = Artifact(local_path=str(path), declared_checksum=checksum, size_bytes=path.stat().st_size)
        if not self.verifier.verify(artifact, checksum):
            raise UseCaseError(
                "CHECKSUM_MISMATCH",
                "Update file checksum verification failed.",
                f"computed {artifact.computed_checksum or 'n/a'}",
            )
        return self.deployer(
            artifact,
            version,
            minimum_runtime_version=minimum_runtime_version or self.config.minimum_runtime_version,
        )


def build_updater(config: Optional[UpdaterConfig] = None) -> Updater:
    """Wire adapters and use cases for one installation."""
    cfg = config or UpdaterConfig.from_env()
    for path in (cfg.updates_root, cfg.backups_root, cfg.state_root):
        path.mkdir(parents=True, exist_ok=True)

    settings = JsonSettingsStore(cfg.settings_path)
    feed = (
        UpdateFeedRestAdapter(cfg.update_url, app_key=cfg.app_key, request_timeout_s=cfg.request_timeout_s)
        if cfg.update_url
        else None
    )
    checker = CheckForUpdates(feed=feed, cache=MemoryCache(), ttl_s=cfg.cache_ttl_s)
    verifier = VerifyArtifact()
    downloader = DownloadArtifact(
        transport=HttpArtifactTransport(download_timeout_s=cfg.download_timeout_s),
        updates_root=cfg.updates_root,
        verifier=verifier,
    )

    probe = LocalHealthProbe(cfg.install_root, database_path=cfg.database_path)
    backup_roots = [cfg.install_root]
    if cfg.database_path and cfg.install_root not in Path(cfg.database_path).resolve().parents:
        backup_roots.append(Path(cfg.database_path))
    backup = LocalDirectoryBackup(
        roots=backup_roots,
        backups_root=cfg.backups_root,
        exclude=[cfg.updates_root, cfg.state_root],
    )
    history_store = JsonlDeploymentHistory(cfg.history_path)
    deployer = DeployUpdate(
        lock=DeploymentLock(),
        prechecks=RunPrechecks(
            probe=probe,
            install_root=cfg.install_root,
            writable_roots=[cfg.storage_root, cfg.public_root],
            min_free_bytes=cfg.min_free_mb * 1024 * 1024,
            default_minimum_runtime=cfg.minimum_runtime_version,
        ),
        backup=backup,
        extractor=ExtractArtifact(),
        applier=ApplyStagedFiles(install_root=cfg.install_root),
        maintenance=SubprocessMaintenanceRunner(
            cfg.maintenance_commands,
            cwd=cfg.install_root,
            timeout_s=cfg.maintenance_timeout_s,
        ),
        verifier=VerifyDeployment(probe=probe, install_root=cfg.install_root, critical_files=cfg.critical_files),
        rollback=RollbackDeployment(backup=backup),
        settings=settings,
        history=history_store,
        updates_root=cfg.updates_root,
        audit=JsonlAuditSink(cfg.audit_path),
        checker=checker,
        backup_attempts=cfg.backup_attempts,
    )
    history = DeploymentHistory(store=history_store, orchestrator=deployer, default_limit=cfg.history_limit)
    apply = ApplyAvailableUpdate(settings=settings, checker=checker, downloader=downloader, deployer=deployer)
    return Updater(
        config=cfg,
        settings=settings,
        checker=checker,
        downloader=downloader,
        verifier=verifier,
        deployer=deployer,
        history=history,
        apply=apply,
    )


# ---- CLI ----
def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse CLI args for the operator commands."""
    parser = argparse.ArgumentParser(prog="sysupdate", description="Check, download, and deploy updates.")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Query the update feed")
    check.add_argument("--force", action="store_true", help="Bypass the cached result")

    download = sub.add_parser("download", help="Download and verify an update package")
    download.add_argument("url")
    download.add_argument("--checksum", required=True)

    deploy = sub.add_parser("deploy", help="Deploy a local update package")
    deploy.add_argument("archive")
    deploy.add_argument("--checksum", required=True)
    deploy.add_argument("--version", required=True)
    deploy.add_argument("--min-runtime", default=None)

    history = sub.add_parser("history", help="Show recent deployments")
    history.add_argument("--limit", type=int, default=None)

    apply = sub.add_parser("apply", help="Check, download, and deploy the advertised update")
    apply.add_argument("--force", action="store_true", help="Bypass the cached check result")
    return parser.parse_args(argv)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def main(argv: Optional[Sequence[str]] = None, *, updater: Optional[Updater] = None) -> int:
    """CLI entrypoint; returns the process exit code."""
    args = _parse_args(argv)
    logging_utils.configure_root()
    updater = updater or build_updater()

    try:
        if args.command == "check":
            info = updater.check(force=args.force)
            _print_json(info.to_dict())
            return 0
        if args.command == "download":
            result = updater.downloader(args.url, args.checksum)
            _print_json(result.to_dict())
            return 0 if result.ok else 1
        if args.command == "deploy":
            record = updater.deploy_file(
                args.archive,
                checksum=args.checksum,
                version=args.version,
                minimum_runtime_version=args.min_runtime,
                import_external=True,
            )
            _print_json(record.to_dict())
            return 0 if record.status == "succeeded" else 1
        if args.command == "history":
            _print_json(updater.history.recent(args.limit))
            return 0
        if args.command == "apply":
            outcome = updater.apply(force_check=args.force)
            _print_json(outcome.to_dict())
            if outcome.download is None:
                return 0
            return 0 if outcome.succeeded else 1
    except UseCaseError as exc:
        log.error("%s: %s", exc.code, exc.message)
        print(f"{exc.code}: {exc.message}", file=sys.stderr)
        if exc.hint:
            print(f"hint: {exc.hint}", file=sys.stderr)
        return 1
    return 1


if __name__ == "__main__":
    sys.exit(main())
