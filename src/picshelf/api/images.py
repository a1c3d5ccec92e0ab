import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status

from picshelf.dependencies import get_image_service
from picshelf.errors import FailureKind, MetadataStoreError
from picshelf.image_service import MISSING_FIELDS_MESSAGE, ImageService, generate_object_key
from picshelf.schemas.image import ImageDeleteResult, ImageResponse, ImageUploadResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["images"])

FAILURE_STATUS = {
    FailureKind.VALIDATION_FAILURE: 422,
    FailureKind.OBJECT_STORE_FAILURE: status.HTTP_502_BAD_GATEWAY,
    FailureKind.METADATA_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _failure_status(error: FailureKind | None) -> int:
    return FAILURE_STATUS.get(error, status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/images", response_model=list[ImageResponse])
def list_images(service: ImageService = Depends(get_image_service)) -> list[ImageResponse]:
    """Every image record, in store order."""
    try:
        images = service.list_images()
    except MetadataStoreError:
        logger.exception("Error fetching images")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal Server Error")
    return [ImageResponse.model_validate(image) for image in images]


@router.post("/images", response_model=ImageUploadResult, status_code=status.HTTP_201_CREATED)
async def upload_image(
    response: Response,
    file: Annotated[UploadFile | None, File()] = None,
    title: Annotated[str, Form()] = "",
    description: Annotated[str, Form()] = "",
    service: ImageService = Depends(get_image_service),
) -> ImageUploadResult:
    """Upload one image with its title and description."""
    if file is None:
        response.status_code = 422
        return ImageUploadResult(success=False, error=FailureKind.VALIDATION_FAILURE, message=MISSING_FIELDS_MESSAGE)

    try:
        contents = await file.read()
    finally:
        await file.close()

    key = generate_object_key(file.filename, service.settings.upload_prefix)
    result = await service.submit_image(key, contents, file.content_type, title, description)

    if not result.success:
        response.status_code = _failure_status(result.error)
    return result


@router.delete("/images/{key:path}", response_model=ImageDeleteResult)
async def delete_image(
    key: str,
    response: Response,
    service: ImageService = Depends(get_image_service),
) -> ImageDeleteResult:
    result = await service.remove_image(key)
    if not result.success:
        response.status_code = _failure_status(result.error)
    return result
