"""FastAPI application factory for the Canopy API server."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from canopy import __version__
from canopy.api.access_log import access_log_middleware, log_response_body
from canopy.api.engine import Engine
from canopy.api.schemas import ErrorResponse
from canopy.config import Config
from canopy.exceptions import CanopyError

logger = logging.getLogger("canopy.server")


async def _canopy_error_handler(request: Request, exc: CanopyError) -> JSONResponse:
    body = ErrorResponse(error=exc.message).model_dump()
    log_response_body(request, exc.status_code, body)
    return JSONResponse(status_code=exc.status_code, content=body)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception: %s %s", request.method, request.url.path,
        exc_info=exc,
    )
    body = ErrorResponse(error="Internal Server Error").model_dump()
    return JSONResponse(status_code=500, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Map the Canopy exception tree to stable status codes."""
    app.add_exception_handler(CanopyError, _canopy_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)


def create_app(
    config: Config | None = None,
    *,
    engine: Engine | None = None,
    instance_principal: bool = False,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Two modes:
    - Without engine: auth mode is selected in the lifespan (production)
    - With a pre-built engine: used as-is, lifespan does nothing (testing)
    """
    resolved_config = config or (engine.config if engine else Config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from canopy.api.engine import create_engine

        owned = getattr(app.state, "engine", None) is None
        if owned:
            try:
                app.state.engine = create_engine(
                    resolved_config, instance_principal=instance_principal,
                )
            except Exception as e:
                logger.error("Failed to initialize engine: %s", e)
                raise
        yield
        if owned:
            await app.state.engine.shutdown()

    app = FastAPI(
        title="Canopy",
        description="OCI compartment and policy browser",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = resolved_config
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(resolved_config.server.cors_origins),
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.middleware("http")(access_log_middleware)
    register_error_handlers(app)

    # Register routes
    from canopy.api.routes import router

    app.include_router(router)

    return app
