import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic_settings import BaseSettings, SettingsConfigDict

from picshelf.api.gallery import router as gallery_router
from picshelf.api.images import router as images_router
from picshelf.db import Database
from picshelf.image_service import ObjectStore, ServiceSettings
from picshelf.s3_service import AsyncS3Client

# Configure logging for the whole process (uvicorn imports this module when
# starting the app, so configure_logging runs early and affects uvicorn loggers)
from .logging_config import configure_logging

configure_logging(level="INFO")

logger = logging.getLogger(__name__)


class AppSettings(BaseSettings):
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(env_prefix="APP_", env_file=".env", extra="ignore")


def create_app(
    database: Database | None = None,
    s3_client: ObjectStore | None = None,
    service_settings: ServiceSettings | None = None,
    app_settings: AppSettings | None = None,
) -> FastAPI:
    """Build the application.

    Stores passed in are owned by the caller and left open at shutdown; the
    ones created here are closed by the lifespan.
    """
    service_settings = service_settings or ServiceSettings()
    app_settings = app_settings or AppSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("Starting up application...")
        owned_database = database is None
        owned_s3_client = s3_client is None

        app.state.database = database or Database()
        app.state.database.create_all()
        logger.info("Database initialized successfully")

        if owned_s3_client:
            client = AsyncS3Client()
            if client.settings.create_bucket:
                await client.ensure_bucket_exists()
            app.state.s3_client = client
        else:
            app.state.s3_client = s3_client
        logger.info("S3 client initialized successfully")

        app.state.service_settings = service_settings

        yield

        # Shutdown
        logger.info("Shutting down application...")
        if owned_s3_client:
            await app.state.s3_client.close()
        if owned_database:
            app.state.database.dispose()

    app = FastAPI(redoc_url=None, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(images_router)
    app.include_router(gallery_router)

    @app.get("/")
    def read_root():
        return {"message": "Hello from picshelf!"}

    return app


app = create_app()
