from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from picshelf.errors import FailureKind


class ImageCreateRequest(BaseModel):
    """Fields checked before an upload touches either store.

    Values are kept as given; blank ones are rejected.
    """

    key: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    content_type: str = Field(..., min_length=1)

    @field_validator("key", "title", "description", "content_type")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Value must not be blank")
        return value


class ImageResponse(BaseModel):
    id: int
    key: str
    url: str
    title: str
    description: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ImageUploadResult(BaseModel):
    """Outcome of one upload; failures are tagged instead of raised"""

    success: bool
    message: str | None = None
    error: FailureKind | None = None
    image: ImageResponse | None = None
    # Set when a blob was written but no row references it
    orphaned_key: str | None = None


class ImageDeleteResult(BaseModel):
    """Outcome of one delete; failures are tagged instead of raised"""

    success: bool
    key: str
    message: str | None = None
    error: FailureKind | None = None


class GalleryPageResponse(BaseModel):
    """One visible page of the gallery plus what the pager needs to render"""

    images: list[ImageResponse]
    page: int
    page_size: int
    total_pages: int
    total_images: int
    controls: list[int | str] = Field(..., description='Page numbers to render, "..." marks a gap')
    has_previous: bool
    has_next: bool
