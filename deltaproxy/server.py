"""FastAPI application exposing the OpenAI-compatible surface.

Routes:
    POST    /v1/chat/completions   streamed or aggregated chat completion
    GET     /v1/models             static model list from the config
    OPTIONS *                      CORS preflight, for any path
    GET     /health                liveness probe

Every response, including errors, carries permissive CORS headers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from deltaproxy import __version__
from deltaproxy.errors import InternalError, NotFound, ProxyError
from deltaproxy.orchestrator import ChatCompletionOrchestrator
from deltaproxy.schemas.config import ProxyConfig
from deltaproxy.schemas.openai import ModelCard, ModelList
from deltaproxy.settings import load_config
from deltaproxy.upstream import create_adapter

logger = logging.getLogger(__name__)

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def with_cors(response: Response) -> Response:
    response.headers.update(CORS_HEADERS)
    return response


def error_response(error: ProxyError) -> JSONResponse:
    """Render a ProxyError as the OpenAI error envelope."""
    return JSONResponse(
        error.to_body().model_dump(),
        status_code=error.status_code,
        headers=CORS_HEADERS,
    )


def upstream_timeout(config: ProxyConfig) -> httpx.Timeout:
    upstream = config.upstream
    return httpx.Timeout(
        connect=upstream.connect_timeout,
        read=upstream.read_timeout,
        write=upstream.read_timeout,
        pool=upstream.connect_timeout,
    )


def create_app(
    config: ProxyConfig | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Proxy configuration. Loaded from the default location when None.
        client: HTTP client for upstream calls. When None, one is created
                on startup and closed on shutdown; a passed-in client is
                left open for its owner to close.
    """
    if config is None:
        config = load_config()
    adapter = create_adapter(config.upstream)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = client is None
        http = client or httpx.AsyncClient(timeout=upstream_timeout(config))
        app.state.orchestrator = ChatCompletionOrchestrator(config, adapter, http)
        logger.info(
            "%s ready: adapter=%s decoder=%s upstream=%s",
            config.project_name, adapter.name, adapter.decoder.name, adapter.url,
        )
        try:
            yield
        finally:
            if owned:
                await http.aclose()

    app = FastAPI(
        title=config.project_name,
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config

    # ── Error envelope ───────────────────────────────────────────

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(InternalError(f"Invalid request: {exc.errors()}"))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            return error_response(NotFound(f"Path not found: {request.url.path}"))
        return error_response(
            ProxyError(str(exc.detail), status_code=exc.status_code, code="api_error")
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(InternalError(str(exc) or type(exc).__name__))

    # ── CORS preflight ───────────────────────────────────────────

    # Answered before routing so unknown paths still 404 on other methods.
    @app.middleware("http")
    async def preflight(request: Request, call_next) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)
        return await call_next(request)

    # ── OpenAI surface ───────────────────────────────────────────

    @app.post("/v1/chat/completions")
    async def chat_completions(request: Request) -> Response:
        orchestrator: ChatCompletionOrchestrator = request.app.state.orchestrator
        response = await orchestrator.handle(
            await request.body(), request.headers.get("authorization")
        )
        return with_cors(response)

    @app.get("/v1/models")
    async def list_models(request: Request) -> Response:
        orchestrator: ChatCompletionOrchestrator = request.app.state.orchestrator
        orchestrator.authenticate(request.headers.get("authorization"))
        models = ModelList(
            data=[ModelCard(id=model, owned_by=config.owned_by) for model in config.models]
        )
        return JSONResponse(models.model_dump(), headers=CORS_HEADERS)

    @app.get("/health")
    async def health() -> Response:
        return JSONResponse({"status": "ok"}, headers=CORS_HEADERS)

    return app
