import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from narrator.app.api.repos import resolve_router, router as repos_router
from narrator.app.core.config import settings
from narrator.app.core.http_client import init_http_client
from narrator.app.core.logging import get_logger, setup_logging
from narrator.app.exceptions import ForgeError, RateLimitExceeded
from narrator.app.forge.client import ForgeClient
from narrator.app.forge.gate import RequestGate
from narrator.app.providers.openai import build_text_generator
from narrator.app.services.diagram import DiagramGenerator


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan context manager.

        Builds the shared HTTP connection pool, the request gate and the
        forge client once, and stores them on ``app.state``. Every forge
        call made by any request is admitted through this single gate.
        """
        async with init_http_client(settings) as http_client:
            gate = RequestGate.from_settings(settings)
            text_generator = build_text_generator(settings, http_client)

            app.state.gate = gate
            app.state.forge_client = ForgeClient.from_settings(settings, gate, http_client)
            app.state.text_generator = text_generator
            app.state.diagram_generator = DiagramGenerator.from_settings(settings, text_generator)

            logger.info(
                "Application startup complete",
                extra={
                    "gate_max_requests": gate.max_requests,
                    "authenticated": settings.is_authenticated,
                    "text_generation": text_generator is not None,
                    "debug_mode": settings.debug,
                },
            )
            yield

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="GitNarrator",
        description="Repository analysis and architecture diagrams for GitHub projects",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Retry-After"],
        max_age=600,
    )

    app.include_router(repos_router)
    app.include_router(resolve_router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Liveness plus the forge request budget and text generator reachability."""
        health_status: dict[str, Any] = {"status": "ok", "components": {}}

        gate = request.app.state.gate
        health_status["components"]["gate"] = {
            "max_requests": gate.max_requests,
            "remaining": gate.remaining,
            "authenticated": settings.is_authenticated,
        }

        generator = request.app.state.text_generator
        text_generation: dict[str, Any] = {"configured": generator is not None}
        if generator is not None:
            healthy = await generator.health_check()
            text_generation["healthy"] = healthy
            if not healthy:
                health_status["status"] = "degraded"
        health_status["components"]["text_generation"] = text_generation
        return health_status

    @app.exception_handler(ForgeError)
    async def forge_error_handler(request: Request, exc: ForgeError) -> JSONResponse:
        """Map typed forge errors to their HTTP status with a JSON body."""
        headers = {}
        if isinstance(exc, RateLimitExceeded):
            retry_after = exc.retry_after(time.time())
            if retry_after is not None:
                headers["Retry-After"] = str(retry_after)

        logger.warning(
            f"Forge error on {request.url.path}: {exc.message}",
            extra={"endpoint": request.url.path, "status_code": exc.status_code},
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_response(), headers=headers)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global handler for unhandled exceptions.

        Logs full details server-side; the response carries the exception
        message only in debug mode and never a traceback.
        """
        logger.exception(
            f"Unhandled exception on {request.url.path}",
            extra={"endpoint": request.url.path},
        )

        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_error",
                    "message": str(exc),
                    "exception_type": type(exc).__name__,
                },
            )

        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": "Internal server error"},
        )

    return app


# Create the application instance
app = create_app()
