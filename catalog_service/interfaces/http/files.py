from typing import List

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Path,
    UploadFile,
    status,
)

from catalog_service.application.media_service import MediaService
from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import ExternalServiceError, InvalidInputError
from catalog_service.infrastructure.clerk.clerk import (
    AuthenticatedUser,
    get_current_user,
)
from catalog_service.interfaces.http.dependencies import (
    get_media_service,
    read_upload_files,
)
from catalog_service.interfaces.http.schemas import (
    UploadImageResponse,
    UploadImagesResponse,
)

router = APIRouter(prefix="/files", tags=["files"])

DEFAULT_FOLDER = "uploads"


@router.post(
    "/upload-image",
    response_model=UploadImageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_image(
    file: UploadFile = File(..., description="The image to upload"),
    media_service: MediaService = Depends(get_media_service),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """
    Upload a single image to the shared uploads folder.
    - Requires: authenticated user
    """
    try:
        log.info(
            "Upload image request",
            filename=file.filename,
            content_type=file.content_type,
            user_id=current_user.id,
        )

        images = await read_upload_files([file], max_files=1)
        result = media_service.upload_files(images, DEFAULT_FOLDER)
        return UploadImageResponse(file_name=result.file_names[0], url=result.file_urls[0])

    except InvalidInputError as e:
        log.warning("Invalid image upload", error=e.message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=e.message
        ) from e

    except ExternalServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        ) from e


@router.post(
    "/upload-images/{folder_name}",
    response_model=UploadImagesResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_images(
    folder_name: str = Path(
        ..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_-]+$"
    ),
    files: List[UploadFile] = File(..., description="Up to 4 images"),
    media_service: MediaService = Depends(get_media_service),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """
    Upload up to 4 images into `folder_name`.
    - Requires: authenticated user
    - Returns file references (URL tail segments) and full URLs
    """
    try:
        log.info(
            "Upload images request",
            folder=folder_name,
            count=len(files),
            user_id=current_user.id,
        )

        images = await read_upload_files(files)
        result = media_service.upload_files(images, folder_name)
        return UploadImagesResponse(
            file_names=result.file_names, file_urls=result.file_urls
        )

    except InvalidInputError as e:
        log.warning("Invalid image upload", error=e.message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=e.message
        ) from e

    except ExternalServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        ) from e
