from abc import ABC, abstractmethod


class ObjectStorage(ABC):
    """
    Blob store used for entity images.
    Blobs are grouped under a folder prefix so a whole entity can be purged at once.
    """

    @abstractmethod
    def upload(
        self, file_data: bytes, folder: str, filename: str, content_type: str
    ) -> str:
        """Store `file_data` under `folder` and return its public URL."""

    @abstractmethod
    def delete_folder(self, folder: str) -> int:
        """Delete every blob under `folder`; returns how many were removed."""
