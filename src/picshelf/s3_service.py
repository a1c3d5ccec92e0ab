"""
Asynchronous S3 Client Service

This module provides the object store adapter used by the image service. It
wraps aioboto3 for non-blocking S3 operations and derives the public URL that
is stored alongside each image record. One client is created per application
at startup and handed to request handlers through dependency injection.
"""

import io
import logging
from typing import TYPE_CHECKING, BinaryIO
from urllib.parse import quote

import aioboto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic_settings import BaseSettings, SettingsConfigDict

from picshelf.errors import ObjectStoreError

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

# Error codes S3 and MinIO use for a key that is not there
MISSING_OBJECT_CODES = {"NoSuchKey", "404", "NotFound"}


class S3Settings(BaseSettings):
    """Configuration for the S3 client"""

    # Custom endpoint (MinIO, LocalStack); AWS is used when unset
    endpoint: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    bucket: str = "picshelf"
    region: str = "us-east-1"
    use_ssl: bool = False
    signature_version: str = "s3v4"
    # Base for stored image URLs, e.g. a CDN in front of the bucket
    public_base_url: str | None = None
    # Create the bucket at startup when it does not exist (local MinIO)
    create_bucket: bool = False

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        extra="ignore",
    )


class AsyncS3Client:
    """Asynchronous S3 Client

    This client maintains a shared aioboto3.Session that is created once and
    reused for all operations. Individual S3 clients are created per operation
    using context managers to ensure proper resource cleanup.

    Failures are raised as ObjectStoreError; deleting a missing key is not a failure.
    """

    def __init__(self, settings: S3Settings | None = None):
        self.settings = settings or S3Settings()
        self._session: aioboto3.Session | None = None
        self._endpoint_url = self._get_endpoint_url()
        self._config = Config(
            signature_version=self.settings.signature_version,
            retries={"max_attempts": 3, "mode": "standard"},
            connect_timeout=10,
            read_timeout=60,
            s3={"addressing_style": "path" if self._endpoint_url else "auto"},
        )
        self._transfer_config = TransferConfig(
            multipart_threshold=8 * 1024 * 1024,  # 8MB threshold before multipart kicks in
            multipart_chunksize=4 * 1024 * 1024,
            max_concurrency=4,
            use_threads=True,
        )
        logger.info(f"AsyncS3Client initialized: endpoint={self._endpoint_url or 'aws'}, bucket={self.settings.bucket}, region={self.settings.region}")

    def _get_endpoint_url(self) -> str | None:
        """Get the endpoint URL with protocol if needed."""
        endpoint = self.settings.endpoint
        if not endpoint:
            return None
        if not endpoint.startswith(("http://", "https://")):
            protocol = "https" if self.settings.use_ssl else "http"
            return f"{protocol}://{endpoint}"
        return endpoint.rstrip("/")

    @property
    def session(self) -> aioboto3.Session:
        """Get or create the shared aioboto3 session."""
        if self._session is None:
            self._session = aioboto3.Session(
                aws_access_key_id=self.settings.access_key,
                aws_secret_access_key=self.settings.secret_key,
                region_name=self.settings.region,
            )
        return self._session

    def _get_s3_client(self) -> "S3Client":
        """Get configured S3 client context manager.

        Usage: async with self._get_s3_client() as s3:
        """
        return self.session.client("s3", endpoint_url=self._endpoint_url, config=self._config)

    def public_url(self, key: str) -> str:
        """Public address of the object stored under `key`.

        Precedence: explicit public base URL, then path-style URL on a custom
        endpoint, then the AWS virtual-hosted style URL.
        """
        quoted_key = quote(key, safe="/")
        if self.settings.public_base_url:
            return f"{self.settings.public_base_url.rstrip('/')}/{quoted_key}"
        if self._endpoint_url:
            return f"{self._endpoint_url}/{self.settings.bucket}/{quoted_key}"
        return f"https://{self.settings.bucket}.s3.{self.settings.region}.amazonaws.com/{quoted_key}"

    async def upload_fileobj(
        self,
        file_obj: BinaryIO | bytes,
        key: str,
        content_type: str | None = None,
    ) -> str:
        """Upload a file object to S3.

        Args:
            file_obj: File-like object or bytes to upload
            key: S3 object key
            content_type: Optional Content-Type header (e.g., 'image/jpeg')

        Returns:
            S3 object path

        Raises:
            ObjectStoreError: If upload fails
        """
        if isinstance(file_obj, bytes):
            file_obj = io.BytesIO(file_obj)
        elif hasattr(file_obj, "seek"):
            file_obj.seek(0)

        extra_args: dict[str, str] = {}
        if content_type:
            extra_args["ContentType"] = content_type

        try:
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                await s3.upload_fileobj(
                    file_obj,
                    self.settings.bucket,
                    key,
                    ExtraArgs=extra_args if extra_args else None,
                    Config=self._transfer_config,
                )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to upload object {key}: {e}")
            raise ObjectStoreError(message="Failed to upload object", details={"key": key}) from e
        logger.info(f"Successfully uploaded object: {key}")
        return f"/{self.settings.bucket}/{key}"

    async def delete_file(self, key: str) -> None:
        """Delete a file from S3. A key that is already gone is not an error.

        Raises:
            ObjectStoreError: If deletion fails
        """
        try:
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                await s3.delete_object(Bucket=self.settings.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_OBJECT_CODES:
                logger.info(f"Object already absent: {key}")
                return
            logger.error(f"Failed to delete object {key}: {e}")
            raise ObjectStoreError(message="Failed to delete object", details={"key": key}) from e
        except BotoCoreError as e:
            logger.error(f"Failed to delete object {key}: {e}")
            raise ObjectStoreError(message="Failed to delete object", details={"key": key}) from e
        logger.info(f"Successfully deleted object: {key}")

    async def ensure_bucket_exists(self) -> None:
        """Create the configured bucket if it does not exist yet."""
        bucket = self.settings.bucket
        try:
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                try:
                    await s3.head_bucket(Bucket=bucket)
                    return
                except ClientError as e:
                    if e.response.get("Error", {}).get("Code") not in MISSING_OBJECT_CODES | {"NoSuchBucket"}:
                        raise
                if self.settings.region == "us-east-1":
                    await s3.create_bucket(Bucket=bucket)
                else:
                    await s3.create_bucket(Bucket=bucket, CreateBucketConfiguration={"LocationConstraint": self.settings.region})
                logger.info(f"Created bucket {bucket}")
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to ensure bucket {bucket}: {e}")
            raise ObjectStoreError(message="Failed to ensure bucket exists", details={"bucket": bucket}) from e

    async def close(self) -> None:
        """Close the session and clean up resources."""
        if self._session is not None:
            logger.info("Closing AsyncS3Client session")
            self._session = None
