from typing import List, Optional, Sequence, Type, TypeVar

from fastapi import Depends, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from sqlmodel import Session

from catalog_service.application.category_service import CategoryService
from catalog_service.application.color_service import ColorService
from catalog_service.application.media_service import ImageFile, MediaService
from catalog_service.application.product_service import ProductService
from catalog_service.config.config import config
from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import InvalidMediaError
from catalog_service.infrastructure.database.session import get_session
from catalog_service.infrastructure.storage.base import ObjectStorage

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_storage(request: Request) -> ObjectStorage:
    """Dependency returning the object storage client created at startup."""
    storage: Optional[ObjectStorage] = getattr(request.app.state, "storage", None)
    if storage is None:
        log.critical("Object storage requested, but it is not initialized")
        raise RuntimeError("Object storage not initialized")
    return storage


def get_media_service(
    session: Session = Depends(get_session),
    storage: ObjectStorage = Depends(get_storage),
) -> MediaService:
    return MediaService(session=session, storage=storage)


def get_category_service(
    session: Session = Depends(get_session),
    media_service: MediaService = Depends(get_media_service),
) -> CategoryService:
    return CategoryService(session=session, media_service=media_service)


def get_product_service(
    session: Session = Depends(get_session),
    media_service: MediaService = Depends(get_media_service),
) -> ProductService:
    return ProductService(session=session, media_service=media_service)


def get_color_service(session: Session = Depends(get_session)) -> ColorService:
    return ColorService(session=session)


def parse_payload(model: Type[ModelT], payload: str) -> ModelT:
    """
    Validate the JSON `payload` form field of a multipart write.
    Failures surface as a regular 422 request validation error.
    """
    try:
        return model.model_validate_json(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False)) from e


async def read_upload_files(
    files: Optional[Sequence[UploadFile]],
    max_files: Optional[int] = None,
) -> List[ImageFile]:
    """
    Read multipart uploads into memory.
    Raises:
        InvalidMediaError: If more than `max_files` files were sent.
    """
    files = [f for f in (files or []) if f is not None and f.filename]
    max_files = max_files or config.MAX_UPLOAD_FILES
    if len(files) > max_files:
        raise InvalidMediaError(f"Too many files: at most {max_files} images per request")

    images = []
    for upload in files:
        images.append(
            ImageFile(
                filename=upload.filename,
                content_type=upload.content_type or "",
                data=await upload.read(),
            )
        )
    return images
