"""
FlagPilot FastAPI application.

Main application entry point with route registration, CORS and the feature flag
service lifecycle.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flagpilot.api.routes import features
from flagpilot.config import Settings, settings as default_settings
from flagpilot.errors import FlagPilotError, StoreUnavailableError
from flagpilot.features import (
    DEFAULT_REGISTRY,
    BuildConfig,
    FeatureFlagService,
    FeatureRegistry,
)
from flagpilot.store import SqlPreferenceStore

# Configure logging with configurable level
_log_level = getattr(logging, default_settings.log_level.upper(), logging.INFO)
logging.basicConfig(
    level=_log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_feature_service(
    app_settings: Settings,
    registry: FeatureRegistry = DEFAULT_REGISTRY,
) -> FeatureFlagService:
    """Create a FeatureFlagService backed by the configured SQL preference store."""
    store = SqlPreferenceStore(app_settings.database_url, echo=app_settings.database_echo)
    return FeatureFlagService(
        store,
        key_prefix=app_settings.flag_key_prefix,
        registry=registry,
        strict=app_settings.strict_feature_ids,
    )


async def flagpilot_error_handler(request: Request, exc: FlagPilotError) -> JSONResponse:
    """Render a FlagPilotError as its structured ErrorResponse."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    app_settings: Settings = app.state.settings
    service: FeatureFlagService = app.state.feature_service
    build: BuildConfig = app.state.build_config

    # Startup
    logger.info(f"Starting {app_settings.app_name} v{app_settings.app_version}")
    logger.info(f"Build mode: {build.mode.display_name}")
    if build.force_disable_all_experimental:
        logger.info("FORCE_DISABLE_ALL_EXPERIMENTAL is set")

    try:
        await service.init()
    except StoreUnavailableError as e:
        # Requests retry the lazy init and report 503 until the store is reachable
        logger.error(f"Feature flag store unavailable at startup: {e.details.get('reason')}")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await service.close()


def create_app(
    app_settings: Optional[Settings] = None,
    service: Optional[FeatureFlagService] = None,
    build: Optional[BuildConfig] = None,
    registry: FeatureRegistry = DEFAULT_REGISTRY,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        app_settings: Settings to use. Defaults to the global settings.
        service: Feature flag service. Defaults to one backed by database_url.
        build: Build configuration. Defaults to the one read from the environment.
        registry: Feature registry. Defaults to the built-in registry.

    Returns:
        Configured FastAPI application
    """
    app_settings = app_settings or default_settings
    if build is None:
        build = BuildConfig.from_environ(registry.compile_time_flag_names())
    if service is None:
        service = build_feature_service(app_settings, registry)

    application = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="Feature flag registry with build-time and runtime toggles",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    application.state.settings = app_settings
    application.state.feature_service = service
    application.state.build_config = build
    application.state.feature_registry = registry

    # Configure CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(FlagPilotError, flagpilot_error_handler)

    # Register routers
    application.include_router(features.router)

    @application.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": app_settings.app_name,
            "version": app_settings.app_version,
            "status": "running",
            "build_mode": build.mode.value,
            "docs": "/docs",
        }

    @application.get("/health")
    async def health_check():
        """Health check endpoint with preference store connectivity test."""
        store_status = "healthy"
        store_error = None

        try:
            if not await service.ping():
                store_status = "unhealthy"
        except StoreUnavailableError as e:
            store_status = "unhealthy"
            store_error = e.details.get("reason")

        response = {
            "status": store_status,
            "version": app_settings.app_version,
            "store": store_status,
        }

        if store_error:
            response["store_error"] = store_error

        return response

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "flagpilot.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.debug,
    )
