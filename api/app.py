"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from api.routers import common_router, monitoring_router, settings_router
from core import get_logger, setup_logging
from core.config import load_settings
from core.services.monitoring_service import MonitoringService
from core.settings_store import SettingsError, SettingsStore
from upstream import QuotaClient

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = load_settings()
    app.state.settings = settings
    setup_logging(
        level=settings.log_level,
        enable_file_logging=settings.enable_file_logging,
        is_test_env=settings.is_testing,
    )
    logger.info(f"Starting Quotawake API server in {settings.environment} mode")

    client = QuotaClient(
        connect_timeout=settings.http_connect_timeout,
        timeout=settings.http_timeout,
    )
    await client.open()
    app.state.quota_client = client

    store = SettingsStore(settings.settings_path, allow_http=settings.debug)
    service = MonitoringService(store, client)
    try:
        service.load()
    except SettingsError as e:
        logger.error(f"Failed to load settings, using defaults: {e}")
    app.state.monitoring_service = service

    if settings.autostart:
        try:
            await service.start_monitoring()
        except Exception as e:
            logger.error(f"Failed to start monitoring: {e}")
    else:
        logger.info("Autostart disabled, monitoring idle")

    logger.info("Quotawake API server initialized successfully")

    yield

    try:
        await service.stop_monitoring()
    except Exception as e:
        logger.error(f"Error stopping monitoring: {e}")

    await client.aclose()
    logger.info("Quotawake API server shutting down")


def create_app() -> FastAPI:
    """Create FastAPI app with current settings."""
    settings = load_settings()

    app = FastAPI(
        title=settings.api_title,
        description="Control API for the quotawake scheduling engine",
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(common_router)
    app.include_router(monitoring_router)
    app.include_router(settings_router)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> None:
        """Global exception handler."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(exc))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from core.config import settings

    uvicorn.run("api.app:app", host=settings.host, port=settings.port)
