# Repositories package

from .image_repository import ImageRepository

__all__ = [
    "ImageRepository",
]
