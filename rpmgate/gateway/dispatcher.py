"""
Request dispatcher - maps an HTTP method and path to a gateway operation.

    GET            liveness check, no side effects
    PUT  /r/f.rpm  store an artifact
    POST /r[/...]  rebuild repository metadata
    anything else  405

Dispatch never raises: every branch ends in a GatewayResponse.
"""
import logging
from typing import BinaryIO, Optional

from pydantic import BaseModel

from rpmgate.errors import GatewayError
from rpmgate.refresh.coordinator import RefreshCoordinator
from rpmgate.repository.paths import parse_request
from rpmgate.repository.store import RepositoryStore


logger = logging.getLogger(__name__)


class GatewayResponse(BaseModel):
    """Outcome of one dispatched request."""
    status_code: int
    status: str
    detail: Optional[str] = None
    repository: Optional[str] = None
    file: Optional[str] = None
    bytes_written: Optional[int] = None

    @classmethod
    def ok(cls, **kwargs) -> "GatewayResponse":
        return cls(status_code=200, status="ok", **kwargs)

    @classmethod
    def error(cls, status_code: int, detail: str) -> "GatewayResponse":
        return cls(status_code=status_code, status="error", detail=detail)


class RequestDispatcher:
    """Routes requests to the repository store and the refresh coordinator."""

    def __init__(self, store: RepositoryStore, coordinator: RefreshCoordinator):
        self.store = store
        self.coordinator = coordinator

    def dispatch(self, method: str, target: str, body: Optional[BinaryIO] = None) -> GatewayResponse:
        """
        Handle one request.

        Args:
            method: HTTP method
            target: Percent-encoded request path, optionally with a query string
            body: Request body stream (used by PUT)

        Returns:
            GatewayResponse carrying the HTTP status
        """
        method = method.upper()

        try:
            if method == "GET":
                return GatewayResponse.ok()
            if method == "PUT":
                return self.handle_upload(target, body)
            if method == "POST":
                return self.handle_refresh(target)
        except GatewayError as e:
            if e.status_code < 500:
                logger.warning(f"{method} {target!r} rejected: {e.message}")
            else:
                logger.error(f"{method} {target!r} failed: {e.message}")
            return GatewayResponse.error(e.status_code, e.message)
        except Exception as e:
            logger.exception(f"{method} {target!r} failed unexpectedly")
            return GatewayResponse.error(500, f"Internal error: {e}")

        return GatewayResponse.error(405, f"Method {method} not allowed")

    def handle_upload(self, target: str, body: Optional[BinaryIO]) -> GatewayResponse:
        """Store the request body as an artifact of the addressed repository."""
        repo_request = parse_request(target)

        # Validate the file name before touching the filesystem
        file_path = self.store.file_path(repo_request.repo_name, repo_request.file_name)
        self.store.ensure_repository_exists(repo_request.repo_name)

        if body is None:
            raise GatewayError("Upload body stream is missing")

        written = self.store.write_upload(file_path, body)
        return GatewayResponse.ok(
            repository=repo_request.repo_name,
            file=repo_request.file_name,
            bytes_written=written
        )

    def handle_refresh(self, target: str) -> GatewayResponse:
        """Rebuild metadata for the addressed repository; any file name is ignored."""
        repo_request = parse_request(target)

        outcome = self.coordinator.refresh(repo_request.repo_name)
        outcome.raise_for_failure()

        return GatewayResponse.ok(repository=repo_request.repo_name)
