"""FastAPI application exposing the host snapshot."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from .aggregator import Aggregator
from .config import Settings, get_settings, parse_services
from .models import ErrorEnvelope, Snapshot

logger = logging.getLogger(__name__)

SYSTEM_ERROR_MESSAGE = "Error getting system data"
DOCKER_ERROR_MESSAGE = "Error getting docker data"


def _error_response(settings: Settings, message: str, exc: Exception) -> JSONResponse:
    if settings.expose_errors:
        message = str(exc) or message
    envelope = ErrorEnvelope(message=message)
    return JSONResponse(envelope.model_dump(), status_code=500)


def _dump_snapshot(settings: Settings, snapshot: Snapshot) -> Dict[str, Any]:
    exclude = None if settings.include_containers else {"containers"}
    return snapshot.model_dump(mode="json", exclude=exclude)


def create_app(settings: Optional[Settings] = None, aggregator: Optional[Aggregator] = None) -> FastAPI:
    settings = settings or get_settings()
    aggregator = aggregator or Aggregator(settings)

    app = FastAPI(
        title="Host Metrics Agent",
        description="Lightweight agent exposing a JSON snapshot of the local host.",
        version="0.1.0",
        on_shutdown=[aggregator.close],
    )
    app.state.settings = settings
    app.state.aggregator = aggregator

    @app.get("/", summary="Return the current host snapshot", tags=["system"])
    async def snapshot(
        services: Optional[str] = Query(
            None, description="Comma-separated service names; overrides the configured list."
        ),
    ):
        requested = None if services is None else parse_services(services)
        try:
            result = await aggregator.build_snapshot(requested)
            # Rendering happens here so encoding errors still get the error envelope.
            return JSONResponse(_dump_snapshot(settings, result))
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("%s: %s", SYSTEM_ERROR_MESSAGE, exc)
            return _error_response(settings, SYSTEM_ERROR_MESSAGE, exc)

    @app.get("/docker", summary="Return the container inventory with stats", tags=["containers"])
    async def docker():
        try:
            containers = await aggregator.list_containers()
            return JSONResponse([container.model_dump(mode="json") for container in containers])
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("%s: %s", DOCKER_ERROR_MESSAGE, exc)
            return _error_response(settings, DOCKER_ERROR_MESSAGE, exc)

    @app.get("/health", summary="Service health check", tags=["system"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
