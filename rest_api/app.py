"""Admin HTTP surface for update checks and deployments.

Run with ``python -m rest_api.app`` or::

    uvicorn rest_api.app:create_app --factory

Errors use the body ``{"code", "message", "hint"}``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from sysupdate.app.main import Updater, build_updater
from sysupdate.domain.ports import UseCaseError

log = logging.getLogger("sysupdate.rest_api")

# UseCaseError code -> (HTTP status, public error code)
_ERROR_STATUS: Dict[str, tuple[int, str]] = {
    "DEPLOY_ALREADY_RUNNING": (409, "updates.locked"),
    "CHECKSUM_MISMATCH": (422, "updates.checksum_mismatch"),
    "DEPLOY_ARTIFACT_UNVERIFIED": (422, "updates.unverified"),
    "DEPLOY_ARCHIVE_NOT_FOUND": (404, "updates.package_not_found"),
    "DEPLOY_ARCHIVE_OUTSIDE_UPDATES": (422, "updates.outside_updates_area"),
    "DEPLOY_NO_VERSION": (422, "updates.version_required"),
    "HISTORY_INVALID_LIMIT": (422, "deployments.invalid_limit"),
}


class ApiProblem(Exception):
    """HTTP error with a stable machine-readable code."""

    def __init__(self, status_code: int, code: str, message: str, hint: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.hint = hint


# ---------- Request models ----------
class DownloadRequest(BaseModel):
    download_url: str = Field(..., min_length=1, description="Package URL from the update feed")
    checksum: str = Field(..., min_length=1, description="Expected SHA-256 (hex)")


class DeploymentRequest(BaseModel):
    artifact_path: str = Field(..., min_length=1, description="Path of a downloaded package inside the updates area")
    checksum: str = Field(..., min_length=1, description="Expected SHA-256 (hex)")
    version: str = Field(..., min_length=1, description="Target application version")
    minimum_runtime_version: Optional[str] = None


def _problem_body(code: str, message: str, hint: str = "") -> Dict[str, str]:
    return {"code": code, "message": message, "hint": hint}


def create_app(updater: Optional[Updater] = None) -> FastAPI:
    """Build the FastAPI app around one wired ``Updater``."""
    app = FastAPI(title="System Update API", version="0.1.0")
    app.state.updater = updater or build_updater()

    @app.exception_handler(ApiProblem)
    async def _handle_problem(_request: Request, exc: ApiProblem) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=_problem_body(exc.code, exc.message, exc.hint))

    @app.exception_handler(UseCaseError)
    async def _handle_use_case_error(_request: Request, exc: UseCaseError) -> JSONResponse:
        status_code, code = _ERROR_STATUS.get(exc.code, (400, f"updates.{exc.code.lower()}"))
        if status_code == 409:
            log.info("Rejected deployment request: %s", exc.message)
        return JSONResponse(status_code=status_code, content=_problem_body(code, exc.message, exc.hint))

    def _updater() -> Updater:
        return app.state.updater

    # ---------- Updates ----------
    @app.get("/updates")
    def check_updates(force: bool = Query(False)) -> Dict[str, Any]:
        return _updater().check(force=force).to_dict()

    @app.post("/updates/download")
    def download_update(req: DownloadRequest) -> Dict[str, Any]:
        result = _updater().downloader(req.download_url, req.checksum)
        if result.ok and result.artifact is not None:
            return result.artifact.to_dict()
        if result.code == "CHECKSUM_MISMATCH":
            raise ApiProblem(422, "updates.checksum_mismatch", result.message, "The downloaded file was deleted.")
        raise ApiProblem(502, "updates.download_failed", "Failed to download update package", result.message)

    # ---------- Deployments ----------
    @app.post("/deployments")
    def start_deployment(req: DeploymentRequest) -> Dict[str, Any]:
        record = _updater().deploy_file(
            req.artifact_path,
            checksum=req.checksum,
            version=req.version,
            minimum_runtime_version=req.minimum_runtime_version,
        )
        return record.to_dict()

    @app.get("/deployments")
    def list_deployments(limit: Optional[int] = Query(None)) -> list:
        return _updater().history.recent(limit)

    @app.get("/deployments/current")
    def current_deployment() -> Dict[str, Any]:
        record = _updater().deployer.current()
        if record is None:
            raise ApiProblem(404, "deployments.none_running", "No deployment in progress")
        return record.to_dict()

    @app.get("/deployments/{deployment_id}")
    def get_deployment(deployment_id: str) -> Dict[str, Any]:
        entry = _updater().history.get(deployment_id)
        if entry is None:
            raise ApiProblem(404, "deployments.not_found", "Deployment not found", deployment_id)
        return entry

    return app


def main() -> None:
    """Serve the admin API with uvicorn."""
    import argparse

    import uvicorn

    from sysupdate.utils import logging as logging_utils

    parser = argparse.ArgumentParser(description="Run the system update admin API.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8081)
    args = parser.parse_args()
    logging_utils.configure_root()
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
