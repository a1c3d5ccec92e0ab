"""Error types shared by the store adapters and the image service."""

from enum import StrEnum
from typing import Any

ERROR_CODE_VALIDATION_FAILED = "VALIDATION_FAILED"
ERROR_CODE_OBJECT_STORE = "OBJECT_STORE_ERROR"
ERROR_CODE_METADATA_STORE = "METADATA_STORE_ERROR"


class FailureKind(StrEnum):
    """Tag carried by a failed upload or delete result."""

    OBJECT_STORE_FAILURE = "ObjectStoreFailure"
    METADATA_FAILURE = "MetadataFailure"
    VALIDATION_FAILURE = "ValidationFailure"


class GalleryError(Exception):
    """
    Base exception for all gallery errors.

    Callers provide a message and error code; `details` carries optional
    context such as the object key involved.
    """

    message: str
    error_code: str
    details: dict[str, Any]

    def __init__(
        self,
        *,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}

        super().__init__(self.message)


class ImageValidationError(GalleryError):
    """Raised when a required field is missing before any store is touched."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_VALIDATION_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class StoreError(GalleryError):
    """Raised by a store adapter when the backing service rejects an operation."""


class ObjectStoreError(StoreError):
    """Raised when writing or deleting a blob fails."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_OBJECT_STORE,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class MetadataStoreError(StoreError):
    """Raised on constraint violations or connectivity errors in the relational store."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_METADATA_STORE,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)
