"""Abstract contract for image file storage."""

from abc import ABC, abstractmethod


class ImageStorageRepository(ABC):
    """Contract for storing and retrieving image files.

    Implementations could be local disk, S3, GCS, etc.
    Files are write-once per identifier: nothing is modified in place after
    ingestion. Paths are always relative to the storage root.
    """

    @abstractmethod
    def write_image(self, *, storage_path: str, file_data: bytes) -> None:
        """Persist image bytes at a new location.

        Either the complete file becomes visible or nothing does.

        Raises:
            ImageUploadFailedError: If the write fails or the path is taken
        """

    @abstractmethod
    def read_image(self, *, storage_path: str) -> bytes:
        """Read the full image bytes.

        Raises:
            NotFoundError: If the file does not exist
            ImageDownloadFailedError: If the read fails
        """

    @abstractmethod
    def exists(self, *, storage_path: str) -> bool:
        """Return True if a file is stored at the location."""

    @abstractmethod
    def remove_image(self, *, storage_path: str) -> bool:
        """Delete the file at the location.

        Returns:
            True if a file was removed, False if nothing was there

        Raises:
            ImageDeletionFailedError: If deletion fails
        """
