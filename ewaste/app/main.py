from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from ewaste.app.api import (
    advice_router,
    categories_router,
    detections_router,
    marketplace_router,
    meetings_router,
    waste_data_router,
)
from ewaste.app.core.config import settings
from ewaste.app.core.http_client import init_http_client
from ewaste.app.core.logging import get_log_context, get_logger, setup_logging
from ewaste.app.db.async_session import close_async_engine, get_async_engine, init_async_db
from ewaste.app.exceptions import AdviceError, RateLimitError
from ewaste.app.middleware.request_id import RequestIdMiddleware, get_request_id
from ewaste.app.providers.factory import create_provider
from ewaste.app.services.advice import AdviceGateway, AdviceLimits
from ewaste.app.services.detection import DetectionStoreRegistry

logger = get_logger(__name__)


async def advice_error_handler(request: Request, exc: AdviceError) -> JSONResponse:
    """Render gateway failures; rate limits carry a Retry-After header."""
    headers = {}
    if isinstance(exc, RateLimitError):
        headers["Retry-After"] = str(exc.retry_after)
    logger.info(
        f"Advice request failed: {exc.error_code}",
        extra=get_log_context(request_id=get_request_id(request)),
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_response(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AdviceError, advice_error_handler)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log unhandled exceptions server-side; never return a traceback."""
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra=get_log_context(request_id=request_id, exception_type=type(exc).__name__),
        )
        content = {
            "error": "internal_error",
            "message": str(exc) if settings.debug else "Internal server error",
            "request_id": request_id,
        }
        return JSONResponse(status_code=500, content=content)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Create the shared HTTP client, tables, advice gateway and detection
        registry on startup; drain and release them on shutdown."""
        async with init_http_client() as http_client:
            await init_async_db()

            provider = create_provider(http_client=http_client)
            gateway = AdviceGateway(
                provider,
                limits=AdviceLimits.from_settings(),
                analysis_model=settings.gemini_analysis_model,
            )
            app.state.advice_gateway = gateway
            app.state.detection_registry = DetectionStoreRegistry()

            logger.info(
                "Application startup complete",
                extra=get_log_context(provider=provider.name, debug_mode=settings.debug),
            )
            try:
                yield
            finally:
                await gateway.aclose()
                await close_async_engine()
                logger.info("Application shutdown complete")

    app = FastAPI(
        title="EcoTrack Backend",
        description="Waste detection insights, marketplace and throttled AI disposal advice",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
        max_age=600,
    )

    app.include_router(advice_router)
    app.include_router(detections_router)
    app.include_router(categories_router)
    app.include_router(waste_data_router)
    app.include_router(marketplace_router)
    app.include_router(meetings_router)

    register_exception_handlers(app)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Health check with database and advice gateway status."""
        health_status: dict[str, Any] = {"status": "ok", "components": {}}

        try:
            async with get_async_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            health_status["components"]["database"] = {"status": "ok"}
        except Exception as e:
            health_status["status"] = "degraded"
            health_status["components"]["database"] = {
                "status": "error",
                "error": str(e)[:100],
            }

        gateway = getattr(request.app.state, "advice_gateway", None)
        if gateway is None:
            health_status["status"] = "degraded"
            health_status["components"]["advice"] = {"status": "error", "error": "not initialized"}
        else:
            health_status["components"]["advice"] = {
                "status": "ok" if gateway.provider.is_configured else "unconfigured",
                **gateway.get_stats(),
            }

        return health_status

    return app


# Create the application instance
app = create_app()
