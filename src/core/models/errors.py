"""Custom exception classes for the image service."""

from typing import Any

from core.utils.constants import (
    ERROR_CODE_DYNAMODB,
    ERROR_CODE_FILE_TOO_LARGE,
    ERROR_CODE_FORBIDDEN,
    ERROR_CODE_GUEST_UPLOAD_DISABLED,
    ERROR_CODE_IMAGE_DELETE_FAILED,
    ERROR_CODE_IMAGE_DOWNLOAD_FAILED,
    ERROR_CODE_IMAGE_DUPLICATE_IMAGE,
    ERROR_CODE_IMAGE_UPLOAD_FAILED,
    ERROR_CODE_INVALID_FILTER,
    ERROR_CODE_INVALID_TYPE,
    ERROR_CODE_METADATA_OPERATION_FAILED,
    ERROR_CODE_RESOURCE_NOT_FOUND,
    ERROR_CODE_STORAGE,
    ERROR_CODE_TRANSFORM_FAILED,
    ERROR_CODE_VALIDATION_FAILED,
)


class ImageServiceError(Exception):
    """
    Base exception for all image service errors.

    All custom errors must inherit from this class.
    Callers must explicitly provide a message and error code.
    Optional contextual information can be supplied via `details`.
    """

    message: str
    error_code: str
    details: dict[str, Any]

    def __init__(
        self,
        *,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}

        super().__init__(self.message)


class ValidationError(ImageServiceError):
    """Raised when request validation fails."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_VALIDATION_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class MIMETypeError(ValidationError):
    """Raised when the upload's MIME type is outside the profile allow-list."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_INVALID_TYPE,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class FileSizeError(ValidationError):
    """Raised when file size exceeds the profile limit."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_FILE_TOO_LARGE,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class FilterError(ValidationError):
    """Raised when filter parameters are invalid."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_INVALID_FILTER,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class NotFoundError(ImageServiceError):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_RESOURCE_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class ForbiddenError(ImageServiceError):
    """Raised when the principal may not act on the resource."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_FORBIDDEN,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class GuestUploadDisabledError(ForbiddenError):
    """Raised when an unauthenticated upload arrives while guest uploads are off."""

    def __init__(
        self,
        *,
        message: str = "Guest uploads are disabled",
        error_code: str = ERROR_CODE_GUEST_UPLOAD_DISABLED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class DuplicateImageError(ImageServiceError):
    """Raised when an image identifier is already taken."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_IMAGE_DUPLICATE_IMAGE,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class StorageError(ImageServiceError):
    """Raised when a file storage operation fails."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_STORAGE,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class ImageUploadFailedError(StorageError):
    """Raised when image bytes cannot be written."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_IMAGE_UPLOAD_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class ImageDownloadFailedError(StorageError):
    """Raised when image bytes cannot be read."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_IMAGE_DOWNLOAD_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class ImageDeletionFailedError(StorageError):
    """Raised when image bytes cannot be removed."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_IMAGE_DELETE_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class MetadataOperationFailedError(ImageServiceError):
    """Raised when an image metadata operation fails."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_METADATA_OPERATION_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class DynamoDBError(MetadataOperationFailedError):
    """Raised when a DynamoDB operation fails."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_DYNAMODB,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class TransformError(ImageServiceError):
    """Raised when an image cannot be resized or re-encoded.

    Never surfaced to clients; delivery falls back to the original bytes.
    """

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_TRANSFORM_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )
