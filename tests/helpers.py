from typing import BinaryIO

from picshelf.errors import MetadataStoreError, ObjectStoreError

PUBLIC_BASE_URL = "https://cdn.example.com"


class InMemoryObjectStore:
    """Object store double keeping blobs in a dict.

    Set `fail_upload` / `fail_delete` to make the next calls raise the way
    AsyncS3Client does.
    """

    def __init__(self):
        self.objects: dict[str, tuple[bytes, str | None]] = {}
        self.uploaded_keys: list[str] = []
        self.deleted_keys: list[str] = []
        self.fail_upload = False
        self.fail_delete = False

    async def upload_fileobj(self, file_obj: BinaryIO | bytes, key: str, content_type: str | None = None) -> str:
        if self.fail_upload:
            raise ObjectStoreError(message="Failed to upload object", details={"key": key})
        data = file_obj if isinstance(file_obj, bytes) else file_obj.read()
        self.objects[key] = (data, content_type)
        self.uploaded_keys.append(key)
        return f"/test-bucket/{key}"

    async def delete_file(self, key: str) -> None:
        if self.fail_delete:
            raise ObjectStoreError(message="Failed to delete object", details={"key": key})
        self.objects.pop(key, None)
        self.deleted_keys.append(key)

    def public_url(self, key: str) -> str:
        return f"{PUBLIC_BASE_URL}/{key}"

    def resolve(self, url: str) -> bytes | None:
        """Bytes behind a URL produced by public_url, None when gone."""
        key = url.removeprefix(f"{PUBLIC_BASE_URL}/")
        stored = self.objects.get(key)
        return stored[0] if stored else None


class BrokenImageRepository:
    """Repository whose every call fails like a lost database connection."""

    def __init__(self):
        self.calls: list[str] = []

    def create_image(self, key: str, url: str, title: str, description: str):
        self.calls.append("create_image")
        raise MetadataStoreError(message="Failed to insert image record", details={"key": key})

    def delete_image_by_key(self, key: str) -> bool:
        self.calls.append("delete_image_by_key")
        raise MetadataStoreError(message="Failed to delete image record", details={"key": key})

    def get_all_images(self):
        self.calls.append("get_all_images")
        raise MetadataStoreError(message="Failed to list image records")
