"""Tests for the upload/delete coordinator."""

import logging

import pytest

from picshelf.errors import FailureKind
from picshelf.image_service import ImageService, ServiceSettings, generate_object_key
from tests.helpers import BrokenImageRepository, InMemoryObjectStore

JPEG = b"\xff\xd8\xff\xe0 not really a jpeg"


class TestGenerateObjectKey:
    def test_key_format(self):
        key = generate_object_key("cat.png")
        prefix, rest = key.split("/", 1)
        assert prefix == "uploads"
        assert rest.endswith("-cat.png")
        assert len(rest) == 36 + len("-cat.png")

    def test_keys_are_unique(self):
        assert generate_object_key("cat.png") != generate_object_key("cat.png")

    @pytest.mark.parametrize("filename", ["C:\\Users\\me\\cat.png", "../../cat.png", "dir/cat.png"])
    def test_client_path_is_dropped(self, filename):
        assert generate_object_key(filename).endswith("-cat.png")
        assert ".." not in generate_object_key(filename)

    def test_missing_filename(self):
        assert generate_object_key(None, prefix="media").startswith("media/")


class TestSubmitImage:
    @pytest.mark.asyncio
    async def test_success_stores_blob_and_row(self, service, repo, object_store):
        result = await service.submit_image("uploads/k1-cat.jpg", JPEG, "image/jpeg", "Cat", "A cat")

        assert result.success is True
        assert result.error is None
        assert result.image is not None
        assert result.image.key == "uploads/k1-cat.jpg"
        assert result.image.url == "https://cdn.example.com/uploads/k1-cat.jpg"
        assert object_store.objects["uploads/k1-cat.jpg"] == (JPEG, "image/jpeg")

        images = repo.get_all_images()
        assert [(i.key, i.title, i.description) for i in images] == [("uploads/k1-cat.jpg", "Cat", "A cat")]
        assert object_store.resolve(images[0].url) == JPEG

    @pytest.mark.asyncio
    async def test_values_are_stored_as_given(self, service, repo, object_store):
        result = await service.submit_image("uploads/k9-cat.jpg ", JPEG, "image/jpeg", "  Sunset ", " Over the harbour\n")

        assert result.success is True
        assert result.image.key == "uploads/k9-cat.jpg "
        assert result.image.title == "  Sunset "
        assert result.image.description == " Over the harbour\n"
        assert list(object_store.objects) == ["uploads/k9-cat.jpg "]
        assert [(i.key, i.title) for i in repo.get_all_images()] == [("uploads/k9-cat.jpg ", "  Sunset ")]

    @pytest.mark.asyncio
    async def test_missing_content_type_defaults(self, service, object_store):
        result = await service.submit_image("uploads/k2-blob", JPEG, None, "Blob", "Unknown type")
        assert result.success is True
        assert object_store.objects["uploads/k2-blob"][1] == "application/octet-stream"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "title,description,data",
        [
            ("", "desc", JPEG),
            ("title", "", JPEG),
            ("   ", "desc", JPEG),
            ("title", "desc", b""),
        ],
    )
    async def test_validation_failure_touches_no_store(self, service, repo, object_store, title, description, data):
        result = await service.submit_image("uploads/k3-x.jpg", data, "image/jpeg", title, description)

        assert result.success is False
        assert result.error == FailureKind.VALIDATION_FAILURE
        assert result.message == "File, title, and description are required."
        assert object_store.uploaded_keys == []
        assert repo.get_all_images() == []

    @pytest.mark.asyncio
    async def test_file_too_large(self, service, object_store):
        big = b"x" * (1024 * 1024 + 1)
        result = await service.submit_image("uploads/k4-big.jpg", big, "image/jpeg", "Big", "Too big")

        assert result.error == FailureKind.VALIDATION_FAILURE
        assert "too large" in (result.message or "").lower()
        assert object_store.uploaded_keys == []

    @pytest.mark.asyncio
    async def test_object_store_failure_writes_no_row(self, service, repo, object_store):
        object_store.fail_upload = True

        result = await service.submit_image("uploads/k5-cat.jpg", JPEG, "image/jpeg", "Cat", "A cat")

        assert result.success is False
        assert result.error == FailureKind.OBJECT_STORE_FAILURE
        assert repo.get_all_images() == []

    @pytest.mark.asyncio
    async def test_metadata_failure_rolls_back_object(self, object_store, service_settings):
        service = ImageService(BrokenImageRepository(), object_store, service_settings)

        result = await service.submit_image("uploads/k6-cat.jpg", JPEG, "image/jpeg", "Cat", "A cat")

        assert result.success is False
        assert result.error == FailureKind.METADATA_FAILURE
        assert result.orphaned_key is None
        assert object_store.deleted_keys == ["uploads/k6-cat.jpg"]
        assert "uploads/k6-cat.jpg" not in object_store.objects

    @pytest.mark.asyncio
    async def test_metadata_failure_without_rollback_orphans_object(self, object_store):
        settings = ServiceSettings(rollback_on_metadata_failure=False)
        service = ImageService(BrokenImageRepository(), object_store, settings)

        result = await service.submit_image("uploads/k7-cat.jpg", JPEG, "image/jpeg", "Cat", "A cat")

        assert result.error == FailureKind.METADATA_FAILURE
        assert result.orphaned_key == "uploads/k7-cat.jpg"
        assert "uploads/k7-cat.jpg" in object_store.objects
        assert object_store.deleted_keys == []

    @pytest.mark.asyncio
    async def test_failed_rollback_reports_orphan(self, object_store, service_settings):
        object_store.fail_delete = True
        service = ImageService(BrokenImageRepository(), object_store, service_settings)

        result = await service.submit_image("uploads/k8-cat.jpg", JPEG, "image/jpeg", "Cat", "A cat")

        assert result.error == FailureKind.METADATA_FAILURE
        assert result.orphaned_key == "uploads/k8-cat.jpg"
        assert "uploads/k8-cat.jpg" in object_store.objects

    @pytest.mark.asyncio
    async def test_duplicate_key_is_metadata_failure(self, service, repo, object_store):
        first = await service.submit_image("uploads/dup.jpg", JPEG, "image/jpeg", "One", "First")
        second = await service.submit_image("uploads/dup.jpg", b"other", "image/jpeg", "Two", "Second")

        assert first.success is True
        assert second.error == FailureKind.METADATA_FAILURE
        assert [i.title for i in repo.get_all_images()] == ["One"]

    @pytest.mark.asyncio
    async def test_success_emits_event(self, service, caplog):
        with caplog.at_level(logging.INFO, logger="picshelf.events"):
            await service.submit_image("uploads/k9-cat.jpg", JPEG, "image/jpeg", "Cat", "A cat")
        assert any('"event": "image_uploaded"' in record.getMessage() for record in caplog.records)


class TestRemoveImage:
    @pytest.mark.asyncio
    async def test_removes_blob_then_row(self, service, repo, object_store):
        await service.submit_image("uploads/r1-cat.jpg", JPEG, "image/jpeg", "Cat", "A cat")

        result = await service.remove_image("uploads/r1-cat.jpg")

        assert result.success is True
        assert result.key == "uploads/r1-cat.jpg"
        assert "uploads/r1-cat.jpg" not in object_store.objects
        assert repo.get_all_images() == []

    @pytest.mark.asyncio
    async def test_remove_twice_succeeds(self, service, repo):
        await service.submit_image("uploads/r2-cat.jpg", JPEG, "image/jpeg", "Cat", "A cat")

        first = await service.remove_image("uploads/r2-cat.jpg")
        second = await service.remove_image("uploads/r2-cat.jpg")

        assert first.success is True
        assert second.success is True
        assert repo.get_image_by_key("uploads/r2-cat.jpg") is None

    @pytest.mark.asyncio
    async def test_unknown_key_succeeds(self, service):
        result = await service.remove_image("uploads/never-existed.jpg")
        assert result.success is True

    @pytest.mark.asyncio
    async def test_object_store_failure_keeps_row(self, service, repo, object_store):
        await service.submit_image("uploads/r3-cat.jpg", JPEG, "image/jpeg", "Cat", "A cat")
        object_store.fail_delete = True

        result = await service.remove_image("uploads/r3-cat.jpg")

        assert result.success is False
        assert result.error == FailureKind.OBJECT_STORE_FAILURE
        assert repo.get_image_by_key("uploads/r3-cat.jpg") is not None
        assert "uploads/r3-cat.jpg" in object_store.objects

    @pytest.mark.asyncio
    async def test_metadata_failure_after_object_delete(self, object_store, service_settings):
        object_store.objects["uploads/r4-cat.jpg"] = (JPEG, "image/jpeg")
        repo = BrokenImageRepository()
        service = ImageService(repo, object_store, service_settings)

        result = await service.remove_image("uploads/r4-cat.jpg")

        assert result.success is False
        assert result.error == FailureKind.METADATA_FAILURE
        assert "uploads/r4-cat.jpg" not in object_store.objects
        assert repo.calls == ["delete_image_by_key"]

    @pytest.mark.asyncio
    async def test_empty_key(self, service, object_store):
        result = await service.remove_image("")
        assert result.error == FailureKind.VALIDATION_FAILURE
        assert object_store.deleted_keys == []


def test_list_images_returns_store_order(service, repo):
    repo.create_image("uploads/a", "https://cdn.example.com/uploads/a", "A", "first")
    repo.create_image("uploads/b", "https://cdn.example.com/uploads/b", "B", "second")

    assert [image.key for image in service.list_images()] == ["uploads/a", "uploads/b"]


def test_default_settings_enable_rollback():
    assert ServiceSettings().rollback_on_metadata_failure is True
    assert InMemoryObjectStore().public_url("k") == "https://cdn.example.com/k"
