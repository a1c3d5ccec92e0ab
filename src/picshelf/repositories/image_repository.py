import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from picshelf.errors import MetadataStoreError
from picshelf.models.image import Image

logger = logging.getLogger(__name__)


class ImageRepository:
    """Image metadata table: insert, delete by key, list everything.

    There is no update and no windowing here; paging happens in
    picshelf.pagination on the full list.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_image(self, key: str, url: str, title: str, description: str) -> Image:
        image = Image(key=key, url=url, title=title, description=description)
        self.db.add(image)
        try:
            # Load id and created_at before committing; once commit succeeds nothing below can fail
            self.db.flush()
            self.db.refresh(image)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to insert image record {key}: {e}")
            raise MetadataStoreError(message="Failed to insert image record", details={"key": key}) from e
        return image

    def get_image_by_key(self, key: str) -> Image | None:
        stmt = select(Image).where(Image.key == key)
        try:
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise MetadataStoreError(message="Failed to fetch image record", details={"key": key}) from e

    def get_all_images(self) -> list[Image]:
        # Insertion order; callers must not rely on it
        stmt = select(Image).order_by(Image.id.asc())
        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to list image records: {e}")
            raise MetadataStoreError(message="Failed to list image records") from e

    def delete_image_by_key(self, key: str) -> bool:
        """Delete the row for `key`. Returns False when there was no such row."""
        stmt = delete(Image).where(Image.key == key)
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete image record {key}: {e}")
            raise MetadataStoreError(message="Failed to delete image record", details={"key": key}) from e
        return result.rowcount > 0
