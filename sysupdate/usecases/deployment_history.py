"""Read side of the deployment history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sysupdate.domain.ports import HistoryPort, UseCaseError
from sysupdate.usecases.deploy_update import DeployUpdate

DEFAULT_HISTORY_LIMIT = 10


@dataclass
class DeploymentHistory:
    """Most-recent-first deployment records plus lookup by id."""

    store: HistoryPort
    orchestrator: Optional[DeployUpdate] = None
    default_limit: int = DEFAULT_HISTORY_LIMIT

    def recent(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        window = self.default_limit if limit is None else int(limit)
        if window < 1:
            raise UseCaseError("HISTORY_INVALID_LIMIT", "History limit must be at least 1.")
        return self.store.recent(window)

    def get(self, deployment_id: str) -> Optional[Dict[str, Any]]:
        if self.orchestrator is not None:
            active = self.orchestrator.current()
            if active is not None and active.deployment_id == deployment_id:
                return active.to_dict()
        return self.store.find(deployment_id)


__all__ = ["DEFAULT_HISTORY_LIMIT", "DeploymentHistory"]
