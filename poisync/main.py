from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging
import uuid

import httpx

# Local imports
from poisync.core.config import Settings, settings as default_settings
from poisync.api.routes import router as api_router
from poisync.exceptions import UnsupportedOperationError
from poisync.logging import configure_logging
from poisync.middleware.logging import LoggingMiddleware
from poisync.models.dto import ErrorResponse
from poisync.services.activecaptain_client import ActiveCaptainClient
from poisync.services.poi_cache import POIDetailCache
from poisync.services.position import InMemoryPositionProvider
from poisync.services.resource_provider import register_collections
from poisync.services.resource_store import ResourceClassifier, ResourceStore
from poisync.services.sync_controller import SyncController
from poisync.services.telemetry import InMemoryTelemetrySink, RedisTelemetrySink

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings = default_settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the application. `transport` replaces the network for the
    ActiveCaptain client (tests use httpx.MockTransport).
    """

    # --- Application Lifecycle Management ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Application startup: v{settings.VERSION}")

        # Process-lifetime state; shared by the controller and the routes
        store = ResourceStore()
        cache = POIDetailCache(max_entries=settings.CACHE_MAX_ENTRIES)
        positions = InMemoryPositionProvider()
        telemetry = InMemoryTelemetrySink()
        if settings.ENABLE_REDIS and settings.REDIS_URL:
            telemetry = RedisTelemetrySink.from_url(settings.REDIS_URL, settings.TELEMETRY_CHANNEL, mirror=telemetry)
            logger.info(f"Publishing telemetry to Redis channel {settings.TELEMETRY_CHANNEL}")

        client = ActiveCaptainClient(settings, transport=transport)
        controller = SyncController(
            client=client,
            cache=cache,
            classifier=ResourceClassifier(store, categories_enabled=settings.CATEGORY_RESOURCES),
            telemetry=telemetry,
            positions=positions,
            settings=settings,
        )

        app.state.settings = settings
        app.state.store = store
        app.state.cache = cache
        app.state.positions = positions
        app.state.telemetry = telemetry
        app.state.controller = controller
        app.state.registry = register_collections(store, settings)
        logger.info(f"Registered resource collections: {', '.join(app.state.registry.names()) or 'none'}")

        if settings.SYNC_ENABLED:
            controller.start()

        yield

        logger.info("Application shutdown: Cleaning up resources.")
        await controller.stop()
        await client.aclose()
        if isinstance(telemetry, RedisTelemetrySink):
            await telemetry.aclose()

    configure_logging(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.BRIEF_DESCRIPTION,
        lifespan=lifespan,
    )
    app.add_middleware(LoggingMiddleware)

    # --- API Routes ---
    app.include_router(api_router, prefix="/api")

    # --- Health Check Endpoint ---
    @app.get("/health", status_code=status.HTTP_200_OK)
    async def health_check(request: Request):
        state = request.app.state
        return {
            "status": "ok",
            "cached_pois": len(state.cache),
            "cycle_in_progress": state.controller.cycle_in_progress,
            "buckets": state.store.sizes(),
        }

    # --- Exception Handlers ---
    @app.exception_handler(UnsupportedOperationError)
    async def unsupported_operation_handler(request: Request, exc: UnsupportedOperationError):
        return JSONResponse(
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            content={
                "detail": ErrorResponse(
                    error="UNSUPPORTED_OPERATION",
                    detail=str(exc),
                ).model_dump()
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        error_id = str(uuid.uuid4())
        logger.error(f"Unhandled exception (ID: {error_id}): {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": {
                    "error": "INTERNAL_SERVER_ERROR",
                    "detail": "An unexpected error occurred. Please report this error ID.",
                    "error_id": error_id
                }
            }
        )

    return app


app = create_app()
