"""Upload and delete coordination between the object store and the image table.

An upload writes the blob first and the row second; a delete removes the blob
first and the row second. The two stores are not transactional together, so
each step's failure is reported as a tagged result and logged, never raised.
When the row insert fails after the blob was written, the blob is deleted
again unless rollback is switched off.
"""

import logging
import uuid
from typing import BinaryIO, Protocol

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from picshelf.errors import FailureKind, ImageValidationError, MetadataStoreError, ObjectStoreError
from picshelf.logger import event_logger
from picshelf.models.image import Image
from picshelf.repositories.image_repository import ImageRepository
from picshelf.schemas.image import ImageCreateRequest, ImageDeleteResult, ImageResponse, ImageUploadResult

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
MISSING_FIELDS_MESSAGE = "File, title, and description are required."


class ServiceSettings(BaseSettings):
    """Behaviour of the upload/delete coordinator"""

    rollback_on_metadata_failure: bool = True
    upload_prefix: str = "uploads"
    max_file_size: int = 15 * 1024 * 1024  # 15 MB

    model_config = SettingsConfigDict(env_prefix="GALLERY_", env_file=".env", extra="ignore")


class ObjectStore(Protocol):
    async def upload_fileobj(self, file_obj: BinaryIO | bytes, key: str, content_type: str | None = None) -> str: ...

    async def delete_file(self, key: str) -> None: ...

    def public_url(self, key: str) -> str: ...


def generate_object_key(filename: str | None, prefix: str = "uploads") -> str:
    """Fresh key of the form <prefix>/<uuid4>-<filename>.

    Only the last path component of the client's filename is kept.
    """
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1] or "image"
    return f"{prefix}/{uuid.uuid4()}-{name}"


class ImageService:
    def __init__(self, repo: ImageRepository, s3_client: ObjectStore, settings: ServiceSettings | None = None):
        self.repo = repo
        self.s3_client = s3_client
        self.settings = settings or ServiceSettings()

    def _validate_upload(self, key: str, data: bytes, content_type: str | None, title: str, description: str) -> ImageCreateRequest:
        try:
            request = ImageCreateRequest(
                key=key,
                title=title,
                description=description,
                content_type=content_type or DEFAULT_CONTENT_TYPE,
            )
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise ImageValidationError(message=MISSING_FIELDS_MESSAGE, details={"fields": fields}) from e

        if not data:
            raise ImageValidationError(message=MISSING_FIELDS_MESSAGE, details={"fields": ["file"]})
        if len(data) > self.settings.max_file_size:
            raise ImageValidationError(
                message=f"File too large (max {self.settings.max_file_size // (1024 * 1024)}MB), got {len(data) / (1024 * 1024):.1f}MB",
                details={"file_size": len(data)},
            )
        return request

    async def submit_image(
        self,
        key: str,
        data: bytes,
        content_type: str | None,
        title: str,
        description: str,
    ) -> ImageUploadResult:
        """Store `data` under `key`, then record it in the image table.

        The caller supplies a fresh key (see generate_object_key); no
        collision check is made.
        """
        try:
            request = self._validate_upload(key, data, content_type, title, description)
        except ImageValidationError as e:
            logger.warning(f"Rejected upload {key!r}: {e.message} {e.details}")
            return ImageUploadResult(success=False, error=FailureKind.VALIDATION_FAILURE, message=e.message)

        # Step 1: blob
        try:
            await self.s3_client.upload_fileobj(data, request.key, content_type=request.content_type)
        except ObjectStoreError as e:
            logger.exception(f"Object store upload failed for {request.key}")
            event_logger.log_event("image_upload_failed", level=logging.ERROR, key=request.key, error=e.error_code)
            return ImageUploadResult(success=False, error=FailureKind.OBJECT_STORE_FAILURE, message="Failed to upload image.")

        # Step 2: url is fixed now and stored with the row
        url = self.s3_client.public_url(request.key)

        # Step 3: row
        try:
            image = self.repo.create_image(request.key, url, request.title, request.description)
        except MetadataStoreError as e:
            logger.exception(f"Metadata insert failed for {request.key}")
            event_logger.log_event("image_upload_failed", level=logging.ERROR, key=request.key, error=e.error_code)
            orphaned_key = await self._rollback_upload(request.key)
            return ImageUploadResult(
                success=False,
                error=FailureKind.METADATA_FAILURE,
                message="Failed to upload image.",
                orphaned_key=orphaned_key,
            )

        event_logger.log_event("image_uploaded", key=image.key, image_id=image.id, size=len(data))
        return ImageUploadResult(success=True, message="Image uploaded successfully.", image=ImageResponse.model_validate(image))

    async def _rollback_upload(self, key: str) -> str | None:
        """Remove the blob of a failed upload. Returns the key if it stays orphaned."""
        if not self.settings.rollback_on_metadata_failure:
            logger.warning(f"Rollback disabled, object {key} left without a record")
            return key

        try:
            await self.s3_client.delete_file(key)
        except ObjectStoreError:
            logger.exception(f"Rollback failed, object {key} left without a record")
            return key

        event_logger.log_event("image_upload_rolled_back", key=key)
        return None

    async def remove_image(self, key: str) -> ImageDeleteResult:
        """Delete the blob under `key`, then its row. Safe to repeat."""
        if not key:
            return ImageDeleteResult(success=False, key=key, error=FailureKind.VALIDATION_FAILURE, message="Image key is required.")

        try:
            await self.s3_client.delete_file(key)
        except ObjectStoreError as e:
            # Row untouched, the record stays valid
            logger.exception(f"Object store delete failed for {key}")
            event_logger.log_event("image_delete_failed", level=logging.ERROR, key=key, error=e.error_code)
            return ImageDeleteResult(success=False, key=key, error=FailureKind.OBJECT_STORE_FAILURE, message="Failed to delete image")

        try:
            row_deleted = self.repo.delete_image_by_key(key)
        except MetadataStoreError as e:
            # Blob is gone, the row now points at nothing until deleted again
            logger.exception(f"Metadata delete failed for {key} after its object was removed")
            event_logger.log_event("image_delete_failed", level=logging.ERROR, key=key, error=e.error_code, object_deleted=True)
            return ImageDeleteResult(success=False, key=key, error=FailureKind.METADATA_FAILURE, message="Failed to delete image")

        event_logger.log_event("image_deleted", key=key, row_deleted=row_deleted)
        return ImageDeleteResult(success=True, key=key, message="Image deleted successfully")

    def list_images(self) -> list[Image]:
        """Every stored image record. Raises MetadataStoreError."""
        return self.repo.get_all_images()
