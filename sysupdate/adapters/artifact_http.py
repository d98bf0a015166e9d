"""Streaming HTTP download of update packages."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from requests import exceptions as req_exc

from sysupdate.adapters.api_errors import ApiTimeoutError, raise_for_status
from sysupdate.adapters.http_client import HttpConfig, RetryingSession
from sysupdate.domain.ports import ArtifactTransportPort

CHUNK_SIZE = 1024 * 1024


class HttpArtifactTransport(ArtifactTransportPort):
    """Download a URL to disk through a ``.part`` file.

    The target only appears once the whole body has been written; any failure
    removes the partial file before the error propagates.
    """

    def __init__(
        self,
        *,
        download_timeout_s: float = 300,
        retries: int = 0,
        session: Optional[RetryingSession] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = HttpConfig(download_timeout_s=download_timeout_s, retries=retries)
        self.session = session or RetryingSession(self.cfg)
        self.log = logger or logging.getLogger("sysupdate.artifact_http")

    def fetch_to(self, url: str, target_path: str) -> int:
        target = Path(target_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(f"{target.name}.part")
        bytes_written = 0

        resp = self.session.get(
            url,
            accept="application/octet-stream",
            timeout=self.cfg.download_timeout_s,
            stream=True,
        )
        try:
            raise_for_status(resp, "download_update")
            with partial.open("wb") as handle:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    handle.write(chunk)
                    bytes_written += len(chunk)
            os.replace(partial, target)
        except (req_exc.Timeout, req_exc.ConnectionError) as exc:
            partial.unlink(missing_ok=True)
            raise ApiTimeoutError(f"Download interrupted: {exc}", context=f"GET {url}") from exc
        except Exception:
            partial.unlink(missing_ok=True)
            raise
        finally:
            resp.close()

        self.log.info("Downloaded %s (%d bytes) to %s", url, bytes_written, target)
        return bytes_written


__all__ = ["HttpArtifactTransport"]
