"""
Dependency Injection

Request handlers get the S3 client, repository and image service through
FastAPI's Depends(). The S3 client and database are created by the
application lifespan and live on `app.state`, so a test can build an app
around its own in-memory stores.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from picshelf.db import get_db
from picshelf.image_service import ImageService, ObjectStore, ServiceSettings
from picshelf.repositories.image_repository import ImageRepository


def get_s3_client(request: Request) -> ObjectStore:
    """Object store client shared by all requests.

    Example:
        @router.delete("/images/{key:path}")
        async def delete(key: str, s3: ObjectStore = Depends(get_s3_client)):
            await s3.delete_file(key)
    """
    client = getattr(request.app.state, "s3_client", None)
    if client is None:
        raise RuntimeError("S3 client not initialized. Make sure the application lifespan is properly configured.")
    return client


def get_service_settings(request: Request) -> ServiceSettings:
    settings = getattr(request.app.state, "service_settings", None)
    if settings is None:
        raise RuntimeError("Service settings not initialized. Make sure the application lifespan is properly configured.")
    return settings


def get_image_repository(db: Session = Depends(get_db)) -> ImageRepository:
    return ImageRepository(db)


def get_image_service(
    repo: ImageRepository = Depends(get_image_repository),
    s3_client: ObjectStore = Depends(get_s3_client),
    settings: ServiceSettings = Depends(get_service_settings),
) -> ImageService:
    return ImageService(repo, s3_client, settings)
