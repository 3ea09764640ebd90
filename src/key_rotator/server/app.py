# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
FastAPI boundary adapter.

Translates HTTP requests under the API prefix into InboundRequest
objects for the forwarder and turns ProxyResponse objects back into
Starlette responses. Routes, relative to the prefix:

    OPTIONS /{path}   CORS preflight, no auth
    GET     /health   pool health summary
    GET     /stats    per-key counters and recent calls
    *       /{path}   forwarded upstream with key rotation

Every route except the preflight goes through the access gate first.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import (
    JSONResponse,
    PlainTextResponse,
    Response,
    StreamingResponse,
)

from ..client.forwarder import RequestForwarder
from ..core.auth import is_authorized
from ..core.config import ConfigLoader, RotatorConfig, ServerSettings
from ..core.constants import (
    BODYLESS_METHODS,
    CORS_HEADERS,
    LIB_LOGGER_NAME,
    MSG_INTERNAL_ERROR,
    MSG_UNAUTHORIZED,
)
from ..core.types import InboundRequest, ProxyResponse
from ..pool.manager import CredentialPool
from ..usage.tracker import UsageTracker

lib_logger = logging.getLogger(LIB_LOGGER_NAME)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]


def create_app(
    config: RotatorConfig,
    settings: Optional[ServerSettings] = None,
    pool: Optional[CredentialPool] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the proxy application.

    Args:
        config: Rotator configuration
        settings: Server settings (prefix, log size); defaults apply if None
        pool: Credential pool; built from config if None
        client: HTTP client for upstream calls; the forwarder creates
            and owns one if None

    Returns:
        FastAPI app with pool, forwarder and tracker on app.state
    """
    settings = settings or ServerSettings()
    pool = pool or CredentialPool.from_config(config)
    forwarder = RequestForwarder(config, pool, client)
    tracker = UsageTracker(pool, settings.recent_log_size)
    forwarder.add_listener(tracker.record_attempt)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        lib_logger.info(
            f"Key rotator initialized with {pool.count_total()} API key(s). "
            f"Base URL: {config.upstream_base_url}"
        )
        if config.gate_enabled:
            lib_logger.info("Access token protection is ENABLED.")
        else:
            lib_logger.info("Access token protection is DISABLED.")
        yield
        await forwarder.aclose()

    app = FastAPI(title="Key Rotator", lifespan=lifespan)
    app.state.config = config
    app.state.pool = pool
    app.state.forwarder = forwarder
    app.state.tracker = tracker

    router = APIRouter(prefix=settings.api_prefix)

    def unauthorized(request: Request) -> Optional[Response]:
        if is_authorized(request.headers, config.access_token):
            return None
        lib_logger.warning(
            f"Rejected unauthorized {request.method} {request.url.path}"
        )
        return PlainTextResponse(
            MSG_UNAUTHORIZED, status_code=401, headers=CORS_HEADERS
        )

    @router.options("/{path:path}")
    async def preflight(path: str) -> Response:
        return Response(status_code=204, headers=CORS_HEADERS)

    @router.get("/health")
    async def health(request: Request) -> Response:
        denied = unauthorized(request)
        if denied is not None:
            return denied
        return JSONResponse(tracker.health(), headers=CORS_HEADERS)

    @router.get("/stats")
    async def stats(request: Request) -> Response:
        denied = unauthorized(request)
        if denied is not None:
            return denied
        return JSONResponse(tracker.statistics(), headers=CORS_HEADERS)

    @router.api_route("/{path:path}", methods=PROXY_METHODS)
    async def proxy(request: Request, path: str) -> Response:
        denied = unauthorized(request)
        if denied is not None:
            return denied

        try:
            inbound = InboundRequest(
                method=request.method,
                path=raw_upstream_path(request, settings.api_prefix),
                query=request.url.query,
                headers=request.headers.items(),
                body=None if request.method in BODYLESS_METHODS else request.stream(),
            )
            proxy_response = await forwarder.forward(inbound)
        except Exception:
            lib_logger.exception(
                f"Unexpected error handling {request.method} {request.url.path}"
            )
            return PlainTextResponse(
                MSG_INTERNAL_ERROR, status_code=500, headers=CORS_HEADERS
            )

        return to_starlette_response(proxy_response)

    app.include_router(router)
    return app


def raw_upstream_path(request: Request, prefix: str) -> str:
    """
    Inbound path with the root path and routing prefix removed.

    Uses the ASGI raw_path so percent-escapes such as %2F, %3F and %23
    reach the upstream as sent instead of being decoded into separators.
    Falls back to the decoded path when the server gives no raw_path.
    """
    raw_path = request.scope.get("raw_path")
    if raw_path:
        path = raw_path.decode("ascii").split("?", 1)[0]
    else:
        path = request.scope["path"]

    for leading in (request.scope.get("root_path", ""), prefix):
        if leading and (path == leading or path.startswith(leading + "/")):
            path = path[len(leading):]
    return path or "/"


def to_starlette_response(proxy_response: ProxyResponse) -> Response:
    """
    Convert a ProxyResponse into a Starlette response.

    Pass-through bodies are streamed and the upstream response is closed
    once streaming ends.
    """
    headers = dict(proxy_response.headers.items())
    if proxy_response.is_synthetic:
        return Response(
            content=proxy_response.content,
            status_code=proxy_response.status_code,
            headers=headers,
        )
    return StreamingResponse(
        proxy_response.aiter_bytes(),
        status_code=proxy_response.status_code,
        headers=headers,
    )


def create_app_from_env() -> FastAPI:
    """
    Build the app from environment variables.

    Raises:
        ConfigurationError: if the environment does not describe a
            usable rotator (for example API_KEYS is missing)
    """
    loader = ConfigLoader()
    return create_app(loader.load_rotator_config(), loader.load_server_settings())
