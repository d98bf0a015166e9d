"""Check, download, and deploy in one call (admin action or scheduled run)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from sysupdate.domain.errors import DeploymentAlreadyRunning
from sysupdate.domain.ports import SettingsPort
from sysupdate.domain.update_models import DeploymentRecord, UpdateInfo
from sysupdate.usecases.check_for_updates import CheckForUpdates
from sysupdate.usecases.deploy_update import DeployUpdate
from sysupdate.usecases.download_artifact import DownloadArtifact, DownloadResult


@dataclass
class ApplyUpdateOutcome:
    """What happened at each stage; later stages are None when skipped."""

    info: UpdateInfo
    download: Optional[DownloadResult] = None
    deployment: Optional[DeploymentRecord] = None

    @property
    def succeeded(self) -> bool:
        return self.deployment is not None and self.deployment.status == "succeeded"

    def to_dict(self) -> dict:
        return {
            "info": self.info.to_dict(),
            "download": self.download.to_dict() if self.download else None,
            "deployment": self.deployment.to_dict() if self.deployment else None,
        }


@dataclass
class ApplyAvailableUpdate:
    """Run the whole pipeline, stopping at the first stage with nothing to do."""

    settings: SettingsPort
    checker: CheckForUpdates
    downloader: DownloadArtifact
    deployer: DeployUpdate
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def __call__(self, *, force_check: bool = False) -> ApplyUpdateOutcome:
        current_version = self.settings.get_current_version()
        info = self.checker(current_version, force=force_check)
        outcome = ApplyUpdateOutcome(info=info)
        if not info.available or not info.download_url or not info.latest_version:
            self.log.info("No update to apply (%s)", info.reason or "feed reported no update")
            return outcome

        # nothing is written to the updates area while another run holds the lock
        active = self.deployer.active_deployment_id()
        if active is not None:
            self.log.info("Update %s deferred: deployment %s in progress", info.latest_version, active)
            raise DeploymentAlreadyRunning(active_id=active)

        outcome.download = self.downloader(info.download_url, info.checksum)
        if not outcome.download.ok or outcome.download.artifact is None:
            self.log.warning("Update %s not downloaded: %s", info.latest_version, outcome.download.message)
            return outcome

        outcome.deployment = self.deployer(
            outcome.download.artifact,
            info.latest_version,
            minimum_runtime_version=info.minimum_runtime_version,
        )
        return outcome


__all__ = ["ApplyAvailableUpdate", "ApplyUpdateOutcome"]
