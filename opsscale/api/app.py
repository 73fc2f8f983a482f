"""FastAPI application factory for the Ops Scale API.

This module provides the main FastAPI application with all routes and middleware.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError

from opsscale.api.contact import router as contact_router
from opsscale.api.mailer import Notifier, create_notifier
from opsscale.api.models import HealthResponse
from opsscale.api.pipeline import IntakePipeline, PipelineConfig
from opsscale.api.storage import SubmissionStore, create_store
from opsscale.api.upload import CloudinaryUploader
from opsscale.api.upload import router as upload_router
from opsscale.config import Settings, load_settings
from opsscale.version import __version__

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process.

    Args:
        level: Logging level name
    """
    logging.basicConfig(level=level, format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Connects the storage backend on startup and closes it on shutdown. A
    failed connection leaves storage unavailable instead of stopping the
    server.

    Args:
        app: FastAPI application instance

    Yields:
        None during application runtime
    """
    # Startup
    settings: Settings = app.state.settings
    logger.info("Starting Ops Scale API server")
    logger.info("Version: %s", __version__)

    report = settings.check()
    if report.missing:
        logger.warning("[env] missing required vars: %s", ", ".join(report.missing))
    else:
        logger.info("[env] required vars present")
    for note in report.notes:
        logger.warning("[env] %s", note)

    storage: SubmissionStore | None = app.state.pipeline.config.storage
    if storage is not None:
        try:
            await storage.connect()
        except (PyMongoError, OSError) as e:
            logger.error("[db] connection failed: %s", e)

    yield

    # Shutdown
    if storage is not None:
        await storage.close()
    logger.info("Shutting down Ops Scale API server")


def create_app(
    settings: Settings | None = None,
    storage: SubmissionStore | None = None,
    mail: Notifier | None = None,
    uploader: CloudinaryUploader | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Collaborators not passed explicitly are built from the settings; any
    that the settings leave unconfigured stay disabled.

    Args:
        settings: Application settings (loaded from the environment if omitted)
        storage: Storage backend override
        mail: Notification transport override
        uploader: Media host client override

    Returns:
        Configured FastAPI application instance
    """
    if settings is None:
        settings = load_settings()
    configure_logging(settings.log_level)

    if storage is None:
        storage = create_store(settings)
    if mail is None:
        mail = create_notifier(settings)
    if uploader is None and settings.upload_enabled:
        uploader = CloudinaryUploader(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
        )

    app = FastAPI(
        title="Ops Scale API",
        description="""
        Contact intake API for the Ops Scale marketing site.

        ## Features

        - **Contact Form**: Validate, store and announce contact form submissions
        - **Upload**: Proxy file uploads to the media host (when configured)
        - **Health**: Report database and mail availability
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.pipeline = IntakePipeline(
        PipelineConfig(
            storage=storage,
            mail=mail,
            from_address=settings.mail_from,
            to_address=settings.mail_to,
            site_name=settings.site_name,
        )
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(contact_router)
    if uploader is not None:
        app.state.uploader = uploader
        app.include_router(upload_router)
    else:
        logger.warning("[upload] Cloudinary not configured, skipping upload route")

    # Health check endpoint
    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Report database and mail availability",
        tags=["health"],
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint.

        Returns:
            HealthResponse reflecting current collaborator availability
        """
        pipeline: IntakePipeline = app.state.pipeline
        return HealthResponse(db=pipeline.storage_available, mail=pipeline.mail_available)

    if settings.static_dir is not None:
        # Mounted last so API routes take precedence; serves index.html at /
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="site")
    else:

        @app.get("/", include_in_schema=False)
        async def root() -> PlainTextResponse:
            return PlainTextResponse(f"{settings.site_name} API running")

    return app


def main() -> None:
    """Main entry point for running the API server via CLI.

    This function is used by the opsscale-api command.
    """
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "opsscale.api.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
