import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from picshelf.dependencies import get_image_service
from picshelf.errors import MetadataStoreError
from picshelf.image_service import ImageService
from picshelf.pagination import GalleryViewState
from picshelf.schemas.image import GalleryPageResponse, ImageResponse

router = APIRouter(prefix="/api", tags=["gallery"])
logger = logging.getLogger(__name__)


@router.get("/gallery", response_model=GalleryPageResponse)
def get_gallery_page(
    service: ImageService = Depends(get_image_service),
    page: int = Query(1, ge=1),
    viewport_width: int | None = Query(None, ge=0, description="Client viewport width in CSS pixels, picks the page size"),
) -> GalleryPageResponse:
    """One page of the gallery.

    A page past the end is answered with an empty image list, not clamped,
    so a client that just shrank its viewport can step back itself.
    """
    try:
        images = service.list_images()
    except MetadataStoreError:
        logger.exception("Error fetching images")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal Server Error")

    state = GalleryViewState.for_viewport(images, viewport_width, current_page=page)
    logger.debug(f"Gallery page {page}/{state.total_pages} (page_size={state.page_size}, images={len(images)})")

    return GalleryPageResponse(
        images=[ImageResponse.model_validate(image) for image in state.visible],
        page=state.current_page,
        page_size=state.page_size,
        total_pages=state.total_pages,
        total_images=len(images),
        controls=state.controls,
        has_previous=state.has_previous,
        has_next=state.has_next,
    )
