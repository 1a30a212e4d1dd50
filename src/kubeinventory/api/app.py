"""HTTP surface for the resource inventory."""

import contextlib
from http import HTTPStatus
from typing import Optional

import structlog
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from kubeinventory.config.settings import Settings
from kubeinventory.core.exceptions import DiscoveryError, KubeInventoryException
from kubeinventory.discovery.orchestrator import InventoryOrchestrator
from .rendering import render_resources_html

logger = structlog.get_logger(__name__)


def _wants_html(request: Request) -> bool:
    requested = request.query_params.get("format")
    if requested:
        return requested.lower() == "html"
    return "text/html" in request.headers.get("accept", "")


def create_app(
    settings: Optional[Settings] = None,
    orchestrator: Optional[InventoryOrchestrator] = None,
) -> Starlette:
    """Build the Starlette application.

    The orchestrator connects on startup and disconnects on shutdown.
    """
    settings = settings or Settings.create_from_env()
    orchestrator = orchestrator or InventoryOrchestrator(settings)

    async def run_pass(request: Request, html: bool) -> Response:
        try:
            result = await orchestrator.run_pass()
        except DiscoveryError as e:
            logger.error("Aggregation pass failed", error=str(e), path=request.url.path)
            return PlainTextResponse(str(e), status_code=HTTPStatus.INTERNAL_SERVER_ERROR)

        if html:
            return HTMLResponse(render_resources_html(result))
        return JSONResponse(result.to_payload())

    async def resources(request: Request) -> Response:
        return await run_pass(request, _wants_html(request))

    async def index(request: Request) -> Response:
        return await run_pass(request, True)

    async def pods(request: Request) -> Response:
        try:
            pod_list = await orchestrator.list_pods()
        except KubeInventoryException as e:
            logger.error("Pod listing failed", error=str(e))
            return PlainTextResponse(str(e), status_code=HTTPStatus.INTERNAL_SERVER_ERROR)
        return JSONResponse([pod.model_dump() for pod in pod_list])

    async def health(request: Request) -> Response:
        connected = await orchestrator.health_check()
        status_code = HTTPStatus.OK if connected else HTTPStatus.SERVICE_UNAVAILABLE
        return JSONResponse(
            {"status": "healthy" if connected else "unhealthy", "connected": connected},
            status_code=status_code,
        )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        await orchestrator.initialize()
        try:
            yield
        finally:
            await orchestrator.cleanup()

    app = Starlette(
        debug=settings.debug,
        routes=[
            Route("/", index, methods=["GET"]),
            Route("/resources", resources, methods=["GET"]),
            Route("/pods", pods, methods=["GET"]),
            Route("/health", health, methods=["GET"]),
        ],
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator
    return app
