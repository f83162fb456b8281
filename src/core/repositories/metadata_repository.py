"""Abstract contract for image metadata persistence."""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from core.models.errors import MetadataOperationFailedError, NotFoundError
from core.models.image import ImageMetadata
from core.utils.constants import ERROR_CODE_METADATA_INVALID_FORMAT
from core.utils.identifiers import is_valid_image_id

Metadata = dict[str, Any]


class ImageMetadataRepository(ABC):
    """Contract for storing and retrieving image metadata.

    Implementations could be DynamoDB, PostgreSQL, an in-memory map, etc.
    Services depend on this interface, not the implementation.
    The store is the single source of truth and the only component that
    mutates usage counters.
    """

    @abstractmethod
    def create_metadata(self, *, metadata: Metadata) -> None:
        """Create metadata for an image.

        Args:
            metadata: Image metadata dict with required keys:
                     - image_id: str
                     - user_id: str
                     - storage_path: str
                     - created_at: str (ISO-8601 UTC format)

        Raises:
            DuplicateImageError: If a record with this image_id already exists
            DynamoDBError: If creation fails for other reasons
        """

    @abstractmethod
    def image_exists(self, *, image_id: str) -> bool:
        """Return True if a record with this identifier exists.

        Raises:
            DynamoDBError: If the lookup fails
        """

    @abstractmethod
    def fetch_metadata(self, *, image_id: str) -> Metadata | None:
        """Fetch metadata for a single image.

        Args:
            image_id: Unique image identifier

        Returns:
            Metadata dict or None if not found

        Raises:
            DynamoDBError: If fetch fails
        """

    @abstractmethod
    def update_metadata(self, *, image_id: str, changes: Metadata) -> Metadata:
        """Apply field changes to an existing record and return the new state.

        Only mutable fields (is_public, tags, updated_at) may be changed.

        Raises:
            NotFoundError: If the record does not exist
            DynamoDBError: If the update fails
        """

    @abstractmethod
    def remove_metadata(self, *, image_id: str) -> Metadata | None:
        """Remove metadata for an image.

        Args:
            image_id: Unique image identifier

        Returns:
            The removed record, or None if nothing was stored under the id

        Raises:
            DynamoDBError: If deletion fails
        """

    @abstractmethod
    def increment_counter(self, *, image_id: str, field: str, amount: int = 1) -> int:
        """Atomically add ``amount`` to a usage counter and return its new value.

        Implemented as a storage-level atomic update, never read-modify-write.

        Raises:
            ValueError: If ``field`` is not a usage counter
            NotFoundError: If the record does not exist
            DynamoDBError: If the update fails
        """

    @abstractmethod
    def list_user_images(
        self,
        *,
        user_id: str,
        limit: int | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[Metadata]:
        """List images for a user with optional date filtering.

        Args:
            user_id: Image owner
            limit: Maximum results, or None for all
            start_date: Optional filter start date (ISO-8601 format)
            end_date: Optional filter end date (ISO-8601 format)

        Returns:
            List of metadata dicts, sorted newest first

        Raises:
            FilterError: If limit or dates are invalid
            DynamoDBError: If query fails
        """

    @abstractmethod
    def scan_metadata(self) -> Iterator[Metadata]:
        """Iterate over every stored record, in no particular order.

        Raises:
            DynamoDBError: If the scan fails
        """


def require_image(repository: ImageMetadataRepository, image_id: str) -> ImageMetadata:
    """Fetch and parse one record, treating malformed identifiers as unknown.

    Raises:
        NotFoundError: If no record exists for the identifier
        MetadataOperationFailedError: If the stored record is malformed
        DynamoDBError: If the lookup fails
    """
    if not is_valid_image_id(image_id):
        raise NotFoundError(message="Image not found", details={"image_id": image_id})

    raw = repository.fetch_metadata(image_id=image_id)
    if raw is None:
        raise NotFoundError(message="Image not found", details={"image_id": image_id})

    try:
        return ImageMetadata.model_validate(raw)
    except PydanticValidationError as exc:
        raise MetadataOperationFailedError(
            message="Invalid image metadata format",
            error_code=ERROR_CODE_METADATA_INVALID_FORMAT,
            details={"image_id": image_id},
        ) from exc
