"""
rpmgate HTTP gateway.

FastAPI application forwarding every request to the RequestDispatcher.

Usage:
    export RPMGATE_ROOT=/srv/rpm
    python3 -m rpmgate.gateway
"""
import tempfile
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from rpmgate.gateway.config import GatewayConfig
from rpmgate.gateway.dispatcher import RequestDispatcher
from rpmgate.refresh.coordinator import RefreshCoordinator
from rpmgate.repository.store import RepositoryStore


# Methods routed to the dispatcher; it answers 405 for all but GET, PUT and POST
ROUTED_METHODS = ["GET", "HEAD", "PUT", "POST", "DELETE", "PATCH", "OPTIONS"]
ALLOW_HEADER = "GET, PUT, POST"

# Upload bodies larger than this are spooled to disk
SPOOL_MAX_MEMORY = 8 * 1024 * 1024


class GatewayState:
    """Long-lived server state built once at startup."""

    def __init__(self, config: GatewayConfig):
        self.config = config
        self.store = RepositoryStore(config.root)
        self.coordinator = RefreshCoordinator(self.store, config.indexer)
        self.dispatcher = RequestDispatcher(self.store, self.coordinator)


def create_app(config: GatewayConfig, state: Optional[GatewayState] = None) -> FastAPI:
    """
    Build the gateway application.

    Args:
        config: Validated gateway configuration
        state: Prebuilt gateway state (default: built from config)

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="rpmgate",
        description="Upload gateway and metadata refresh for RPM repositories",
        version="1.0.0"
    )
    app.state.gateway = state if state is not None else GatewayState(config)

    @app.api_route("/{path:path}", methods=ROUTED_METHODS)
    async def handle(request: Request):
        """Dispatch any request; blocking work runs in the thread pool."""
        gateway: GatewayState = request.app.state.gateway
        target = _request_target(request.scope)

        body = None
        if request.method == "PUT":
            body = await _spool_body(request)

        try:
            result = await run_in_threadpool(
                gateway.dispatcher.dispatch, request.method, target, body
            )
        finally:
            if body is not None:
                body.close()

        return JSONResponse(
            status_code=result.status_code,
            content=result.model_dump(exclude={"status_code"}, exclude_none=True),
            headers={"Allow": ALLOW_HEADER} if result.status_code == 405 else None
        )

    return app


def _request_target(scope) -> str:
    """Percent-encoded request path; decoding happens per segment in parse_request."""
    raw_path = scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1")
    return quote(scope["path"], safe="/")


async def _spool_body(request: Request):
    spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY)
    try:
        async for chunk in request.stream():
            await run_in_threadpool(spool.write, chunk)
    except BaseException:
        spool.close()
        raise
    spool.seek(0)
    return spool
