from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Union
from uuid import UUID

from sqlmodel import Session

from catalog_service.config.config import config
from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import (
    ExternalServiceError,
    InvalidMediaError,
    MediaUploadError,
    ResourceNotFoundError,
)
from catalog_service.domain.models import (
    Category,
    CategoryImage,
    EntityType,
    Product,
    ProductImage,
)
from catalog_service.infrastructure.database.session import transaction
from catalog_service.infrastructure.storage.base import ObjectStorage
from shared.libs.observability.metrics import MEDIA_CLEANUPS, MEDIA_UPLOADS

ALLOWED_IMAGE_SUBTYPES = {"jpg", "jpeg", "png", "gif"}

_OWNERS = {
    EntityType.CATEGORY: (Category, CategoryImage, "categories"),
    EntityType.PRODUCT: (Product, ProductImage, "products"),
}


@dataclass(frozen=True)
class ImageFile:
    """An uploaded file, already read from the request."""

    filename: str
    content_type: str
    data: bytes = field(repr=False)


@dataclass
class UploadResult:
    file_names: List[str]
    file_urls: List[str]


def folder_for(entity_type: Union[EntityType, str], entity_id: UUID) -> str:
    """Blob folder holding every image of one entity."""
    return f"{_OWNERS[EntityType(entity_type)][2]}/{entity_id}"


def file_reference(url: str) -> str:
    """Stored reference = tail segment of the storage URL."""
    return url.rstrip("/").rsplit("/", 1)[-1]


def unique_in_order(names: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(names))


def validate_image(file: ImageFile) -> None:
    if not file.data:
        raise InvalidMediaError(f"The file {file.filename} is empty")
    subtype = (file.content_type or "").split("/")[-1].lower()
    if subtype not in ALLOWED_IMAGE_SUBTYPES:
        raise InvalidMediaError(
            f"The file {file.filename} is not a valid image. "
            "Please use accepted formats: JPG, JPEG, PNG, or GIF."
        )


def validate_images(files: Sequence[ImageFile]) -> None:
    max_files = config.MAX_UPLOAD_FILES
    if len(files) > max_files:
        raise InvalidMediaError(f"Too many files: at most {max_files} images per request")
    for file in files:
        validate_image(file)


class MediaService:
    """
    Service class for entity images.
    Uploads files to object storage under the entity folder and keeps the
    CategoryImage / ProductImage reference rows in step with them.
    """

    def __init__(self, session: Session, storage: ObjectStorage, max_workers: int = 4):
        """
        Initialize the service with a database session and a storage client.
        Args:
            session: SQLModel session for database operations.
            storage: Object storage receiving the blobs.
            max_workers: Upper bound on concurrent uploads per request.
        """
        self.session = session
        self.storage = storage
        self.max_workers = max_workers

    def upload_files(self, files: Sequence[ImageFile], folder: str) -> UploadResult:
        """
        Upload every file to `folder` concurrently.
        Returns:
            File references (URL tail segments) and full URLs, in input order.
        Raises:
            InvalidMediaError: If no file is given or a file is not an accepted image.
            MediaUploadError: If any upload fails.
        """
        if not files:
            raise InvalidMediaError("Please upload at least one image")
        validate_images(files)

        log.info("Uploading images", folder=folder, count=len(files))

        def _upload(file: ImageFile) -> str:
            return self.storage.upload(file.data, folder, file.filename, file.content_type)

        try:
            with ThreadPoolExecutor(
                max_workers=min(self.max_workers, len(files))
            ) as pool:
                urls = list(pool.map(_upload, files))
        except ExternalServiceError as e:
            MEDIA_UPLOADS.labels(status="failure").inc(len(files))
            log.error("Image upload failed", folder=folder, error=str(e))
            raise MediaUploadError(original_exception=e) from e
        except Exception as e:
            MEDIA_UPLOADS.labels(status="failure").inc(len(files))
            log.exception("Unexpected error during image upload", folder=folder)
            raise MediaUploadError(original_exception=e) from e

        MEDIA_UPLOADS.labels(status="success").inc(len(urls))
        return UploadResult(
            file_names=[file_reference(url) for url in urls], file_urls=urls
        )

    def upload_images(
        self,
        entity_type: Union[EntityType, str],
        entity_id: UUID,
        files: Sequence[ImageFile],
    ) -> List[str]:
        """
        Upload images for a category or product and record their references.
        No-op returning [] when `files` is empty.
        """
        if not files:
            return []

        entity_type = EntityType(entity_type)
        result = self.upload_files(files, folder_for(entity_type, entity_id))

        with transaction(self.session, "saving image references"):
            owner = self._get_owner(entity_type, entity_id)
            image_model = _OWNERS[entity_type][1]
            owner.images.extend(image_model(image=name) for name in result.file_names)

        log.info(
            "Images attached",
            entity_type=entity_type.value,
            entity_id=str(entity_id),
            count=len(result.file_names),
        )
        return result.file_names

    def delete_images_by_entity(
        self, entity_type: Union[EntityType, str], entity_id: UUID
    ) -> int:
        """
        Delete every stored blob of the entity.
        Reference rows are left alone; they go with the owner's cascade.
        """
        folder = folder_for(entity_type, entity_id)
        try:
            removed = self.storage.delete_folder(folder)
        except ExternalServiceError:
            MEDIA_CLEANUPS.labels(status="failure").inc()
            raise
        MEDIA_CLEANUPS.labels(status="success").inc()
        return removed

    def replace_images(
        self,
        entity_type: Union[EntityType, str],
        entity_id: UUID,
        existing_images: Sequence[str],
        new_files: Sequence[ImageFile],
    ) -> List[str]:
        """
        Replace the entity's image set with existing references plus new uploads.
        Duplicates collapse; the reference rows are rewritten in one transaction.
        Returns:
            The final list of references.
        """
        entity_type = EntityType(entity_type)
        names = list(existing_images or [])

        if new_files:
            result = self.upload_files(new_files, folder_for(entity_type, entity_id))
            names.extend(result.file_names)

        final_images = unique_in_order(names)

        with transaction(self.session, "replacing image references"):
            owner = self._get_owner(entity_type, entity_id)
            image_model = _OWNERS[entity_type][1]
            owner.images = [image_model(image=name) for name in final_images]

        log.info(
            "Images replaced",
            entity_type=entity_type.value,
            entity_id=str(entity_id),
            count=len(final_images),
        )
        return final_images

    # --- Private Helper Methods ---

    def _get_owner(self, entity_type: EntityType, entity_id: UUID):
        owner_model = _OWNERS[entity_type][0]
        owner = self.session.get(owner_model, entity_id)
        if owner is None:
            raise ResourceNotFoundError(entity_type.value.capitalize())
        return owner
