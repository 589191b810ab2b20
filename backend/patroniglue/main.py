"""patroniglue frontend — exposes cached Patroni statuses over HTTP."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from patroniglue import __version__
from patroniglue.backend import PRIMARY, READ_ONLY, READ_WRITE, REPLICA, HTTPBackend
from patroniglue.cache import ManagedCache, MemoryCache
from patroniglue.dispatcher import StatusBackend, dispatch
from patroniglue.log import format_request
from patroniglue.models import Settings

logger = logging.getLogger("patroniglue.api")
access_logger = logging.getLogger("patroniglue.access")

PROBE_METHODS = ["GET", "OPTIONS"]


def _build_router() -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def get_health():
        return JSONResponse({"healthy": True})

    def _status_endpoint(name: str):
        async def endpoint(request: Request):
            result = await dispatch(request.app.state.backend, name)
            return JSONResponse(result.body, status_code=result.status_code)

        endpoint.__name__ = f"get_{name.replace('-', '_')}"
        return endpoint

    for path, name in (
        ("/master", PRIMARY),
        ("/primary", PRIMARY),
        ("/read-write", READ_WRITE),
        ("/replica", REPLICA),
        ("/read-only", READ_ONLY),
    ):
        router.add_api_route(path, _status_endpoint(name), methods=PROBE_METHODS)

    return router


def create_app(
    settings: Optional[Settings] = None,
    *,
    cache: Optional[ManagedCache] = None,
    backend: Optional[StatusBackend] = None,
) -> FastAPI:
    """Build the frontend application.

    ``cache`` and ``backend`` are built from ``settings`` unless given.
    """
    settings = settings or Settings()
    if cache is None:
        cache = MemoryCache.from_config(settings.cache)
    if backend is None:
        backend = HTTPBackend(settings.backend, cache)

    @asynccontextmanager
    async def _lifespan(_: FastAPI):
        await cache.startup()
        logger.info(
            "Backend %s cache_ttl=%.3fs cache_interval=%.3fs",
            getattr(backend, "base_url", "-"),
            cache.ttl,
            cache.interval,
        )
        try:
            yield
        finally:
            aclose = getattr(backend, "aclose", None)
            if aclose is not None:
                await aclose()
            await cache.shutdown()

    app = FastAPI(
        title="patroniglue",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.cache = cache
    app.state.backend = backend

    logformat = settings.frontend.logformat

    @app.middleware("http")
    async def _log_requests(request: Request, call_next):
        access_logger.info(format_request(request, logformat))
        response = await call_next(request)
        response.headers["Content-Type"] = "application/json"
        return response

    app.include_router(_build_router())
    return app
