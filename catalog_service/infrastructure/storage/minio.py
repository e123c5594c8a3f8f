import io
from pathlib import PurePosixPath
from typing import Optional
from uuid import uuid4

from minio import Minio
from minio.deleteobjects import DeleteObject
from minio.error import S3Error
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from urllib3.exceptions import ProtocolError, ReadTimeoutError
from urllib3.exceptions import ConnectionError as Urllib3ConnectionError

from catalog_service.config.config import MinioConfig
from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import ExternalServiceError, InvalidInputError
from catalog_service.infrastructure.storage.base import ObjectStorage

TRANSIENT_ERRORS = (Urllib3ConnectionError, ProtocolError, ReadTimeoutError)

_retry_transient = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, max=5),
    retry=retry_if_exception_type(TRANSIENT_ERRORS),
    reraise=True,
)


def build_object_name(folder: str, filename: str) -> str:
    """`<folder>/<stem>-<uuid4>.<ext>`; the tail segment is the stored file reference."""
    path = PurePosixPath(filename or "file")
    stem = path.stem.replace(" ", "-") or "file"
    suffix = path.suffix.lower()
    return f"{folder.strip('/')}/{stem}-{uuid4()}{suffix}"


class MinioStorage(ObjectStorage):
    """
    Object storage backed by MinIO.
    Handles image uploads and folder purges for the catalog.
    Uses synchronous minio-py (no async support).
    """

    def __init__(self, minio_config: MinioConfig, client: Optional[Minio] = None):
        """
        Initialize the MinIO client with connection details from config.
        Args:
            minio_config: Endpoint, credentials and bucket.
            client: Pre-built client (tests inject a mock).
        """
        self.config = minio_config
        self.bucket_name = minio_config.bucket_name
        try:
            self.client = client or Minio(
                minio_config.endpoint,
                access_key=minio_config.access_key,
                secret_key=minio_config.secret_key,
                secure=minio_config.secure,
            )
        except Exception as e:
            log.critical("Failed to initialize MinIO client", error=str(e))
            raise ExternalServiceError(
                service_name="minio",
                message="Failed to connect to storage service",
                original_exception=e,
            ) from e

    def ensure_bucket(self) -> None:
        """
        Ensure the target bucket exists.
        Creates it if it doesn't.
        """
        try:
            if not self.client.bucket_exists(self.bucket_name):
                log.info("Creating MinIO bucket", bucket=self.bucket_name)
                self.client.make_bucket(self.bucket_name)
            else:
                log.debug("MinIO bucket already exists", bucket=self.bucket_name)
        except S3Error as e:
            log.critical(
                "Failed to ensure MinIO bucket exists",
                bucket=self.bucket_name,
                error=str(e),
            )
            if e.code == "InvalidBucketName":
                raise InvalidInputError(
                    f"Invalid bucket name: {self.bucket_name}"
                ) from e
            raise ExternalServiceError(
                service_name="minio", message="Failed to connect to storage service"
            ) from e

    def public_url(self, object_name: str) -> str:
        if self.config.public_url:
            return f"{self.config.public_url.rstrip('/')}/{object_name}"
        scheme = "https" if self.config.secure else "http"
        return f"{scheme}://{self.config.endpoint}/{self.bucket_name}/{object_name}"

    @_retry_transient
    def _put_object(self, object_name: str, file_data: bytes, content_type: str):
        self.client.put_object(
            bucket_name=self.bucket_name,
            object_name=object_name,
            data=io.BytesIO(file_data),
            length=len(file_data),
            content_type=content_type,
        )

    def upload(
        self, file_data: bytes, folder: str, filename: str, content_type: str
    ) -> str:
        """
        Upload a file to MinIO.
        Args:
            file_data: Raw bytes of the file.
            folder: Entity folder, e.g. products/<id>.
            filename: Original filename.
            content_type: MIME type (e.g., image/jpeg).
        Returns:
            Public URL of the stored object.
        Raises:
            InvalidInputError: If file is empty.
            ExternalServiceError: If upload fails.
        """
        if not file_data:
            raise InvalidInputError("File data is empty")

        object_name = build_object_name(folder, filename)

        try:
            self._put_object(object_name, file_data, content_type)
        except S3Error as e:
            log.warning(
                "S3Error during file upload",
                bucket=self.bucket_name,
                object_name=object_name,
                error=str(e),
            )
            if e.code == "NoSuchBucket":
                raise ExternalServiceError(
                    service_name="minio",
                    message="Media storage bucket not found",
                    original_exception=e,
                ) from e
            raise ExternalServiceError(
                service_name="minio",
                message=f"Failed to upload file: {e.code}",
                original_exception=e,
            ) from e
        except TRANSIENT_ERRORS as e:
            log.critical("MinIO unreachable during upload", error=str(e))
            raise ExternalServiceError(
                service_name="minio",
                message="Storage service is unreachable",
                original_exception=e,
            ) from e
        except Exception as e:
            log.critical(
                "Unexpected error during file upload",
                bucket=self.bucket_name,
                object_name=object_name,
                error=str(e),
            )
            raise ExternalServiceError(
                service_name="minio",
                message="Failed to upload file due to internal error",
                original_exception=e,
            ) from e

        log.info(
            "File uploaded to MinIO",
            bucket=self.bucket_name,
            object_name=object_name,
            size=len(file_data),
        )
        return self.public_url(object_name)

    @_retry_transient
    def _remove_prefix(self, prefix: str) -> int:
        to_delete = [
            DeleteObject(obj.object_name)
            for obj in self.client.list_objects(
                self.bucket_name, prefix=prefix, recursive=True
            )
        ]
        if not to_delete:
            return 0

        # remove_objects is lazy; iterating drives the deletion
        errors = list(self.client.remove_objects(self.bucket_name, to_delete))
        for error in errors:
            log.warning(
                "Failed to delete object", object_name=error.name, error=error.message
            )
        if errors:
            raise ExternalServiceError(
                service_name="minio",
                message=f"Failed to delete {len(errors)} object(s) under {prefix}",
            )
        return len(to_delete)

    def delete_folder(self, folder: str) -> int:
        prefix = f"{folder.strip('/')}/"
        try:
            removed = self._remove_prefix(prefix)
        except ExternalServiceError:
            raise
        except Exception as e:
            log.warning("Failed to purge MinIO folder", prefix=prefix, error=str(e))
            raise ExternalServiceError(
                service_name="minio",
                message=f"Failed to delete folder {prefix}",
                original_exception=e,
            ) from e

        log.info("MinIO folder purged", prefix=prefix, removed=removed)
        return removed
