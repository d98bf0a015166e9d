"""Process-wide exclusive deployment lock."""

from __future__ import annotations

import threading
from typing import Optional

from sysupdate.domain.ports import LockPort


class DeploymentLock(LockPort):
    """Non-blocking mutex guarding the single in-progress deployment.

    ``try_acquire`` never waits: contention is reported immediately so the
    caller can reject the request instead of queueing it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._holder: Optional[str] = None

    def try_acquire(self, holder: str = "") -> bool:
        acquired = self._lock.acquire(blocking=False)
        if acquired:
            self._holder = holder or None
        return acquired

    def release(self) -> None:
        self._holder = None
        self._lock.release()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @property
    def holder(self) -> Optional[str]:
        return self._holder


__all__ = ["DeploymentLock"]
