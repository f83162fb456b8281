"""Business logic for image upload operations.

This module coordinates validation, storage, and metadata persistence
for image uploads while translating failures into domain-specific errors.
An image becomes visible only once both its file and its metadata record
exist; every failure path removes whatever was written.
"""

import base64
import binascii
from collections.abc import Callable
from datetime import datetime

from aws_lambda_powertools import Logger

from core.config import UploadProfile
from core.dependencies import ServiceDependencies, get_dependencies
from core.imaging.processor import probe_dimensions
from core.models.errors import (
    DuplicateImageError,
    FileSizeError,
    GuestUploadDisabledError,
    ImageServiceError,
    ImageUploadFailedError,
    MetadataOperationFailedError,
    MIMETypeError,
    ValidationError,
)
from core.models.image import ImageMetadata, ImagePublicView, UserImageStats
from core.models.principal import Principal
from core.utils.constants import (
    ERROR_CODE_EMPTY_FILE,
    ERROR_CODE_INTERNAL_ERROR,
    ERROR_CODE_METADATA_CREATE_FAILED,
    ERROR_CODE_TOO_MANY_FILES,
    MAX_BATCH_FILES,
    MAX_ID_ATTEMPTS,
    format_file_size,
)
from core.utils.identifiers import generate_image_id
from core.utils.mime import normalize_mime_type
from core.utils.time import utc_now

from .models import BatchItemError, BatchItemResult, UploadFile

logger = Logger(UTC=True)


class UploadService:
    """Application service responsible for image uploads.

    This service orchestrates:
    - MIME and size validation against the caller's upload profile
    - Identifier allocation and storage path resolution
    - Dimension probing
    - Writing image content to storage
    - Persisting image metadata
    """

    def __init__(
        self,
        deps: ServiceDependencies | None = None,
        *,
        id_factory: Callable[[], str] = generate_image_id,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the upload service with required infrastructure dependencies."""
        deps = deps or get_dependencies()
        self.config = deps.config
        self.paths = deps.paths
        self.storage = deps.storage
        self.metadata = deps.metadata
        self.audit = deps.audit
        self.cache = deps.cache
        self._new_id = id_factory
        self._now = clock

    @staticmethod
    def decode_file(encoded: str) -> bytes:
        """Decode base64-encoded image data.

        Raises:
            ValidationError: If decoding fails
        """
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            logger.warning("Failed to decode base64 image data")
            raise ValidationError(
                message="Invalid image data",
                details={"encoding": "base64"},
            ) from exc

    def resolve_uploader(self, principal: Principal | None) -> tuple[Principal, UploadProfile]:
        """Pick the owner and validation profile for an upload.

        Authenticated callers get the permissive profile. Anonymous uploads
        are owned by the configured guest account and use the guest profile.

        Raises:
            GuestUploadDisabledError: If the caller is anonymous and guest
                uploads are switched off
        """
        if principal is not None:
            return principal, self.config.authenticated_profile

        if not self.config.enable_guest_upload:
            raise GuestUploadDisabledError()

        return self.config.guest_principal, self.config.guest_profile

    @staticmethod
    def check_batch_size(count: int) -> None:
        """
        Raises:
            ValidationError: If more than MAX_BATCH_FILES files were sent
        """
        if count > MAX_BATCH_FILES:
            raise ValidationError(
                message=f"Maximum {MAX_BATCH_FILES} files per request",
                error_code=ERROR_CODE_TOO_MANY_FILES,
                details={"count": count, "max": MAX_BATCH_FILES},
            )

    def upload_image(
        self,
        *,
        file_data: bytes,
        mime_type: str | None,
        image_name: str,
        principal: Principal,
        profile: UploadProfile,
        tags: list[str] | None = None,
    ) -> ImagePublicView:
        """Upload an image and persist its metadata.

        The upload flow is:
        1. Normalise the declared MIME type and check it against the profile
        2. Check the payload size against the profile
        3. Allocate an identifier and resolve its storage path
        4. Probe intrinsic dimensions (failure is not fatal)
        5. Write the file
        6. Persist metadata; remove the file if that fails

        Identical bytes uploaded twice become two separate images.

        Args:
            file_data: Raw image bytes
            mime_type: Declared MIME type, or None to sniff from content
            image_name: Original file name, stored for display only
            principal: Owner of the new image
            profile: Validation limits for this upload route
            tags: Optional list of tags

        Returns:
            Public view of the stored image

        Raises:
            MIMETypeError: If the type is not allowed by the profile
            FileSizeError: If the payload exceeds the profile limit
            ValidationError: If the payload is empty
            ImageUploadFailedError: If storage upload fails
            MetadataOperationFailedError: If metadata persistence fails
        """
        metadata = self._ingest(
            file_data=file_data,
            mime_type=mime_type,
            image_name=image_name,
            principal=principal,
            profile=profile,
            tags=tags,
        )

        # Best-effort, non-blocking: never fails the upload
        self.audit.record(
            action="upload",
            resource_id=metadata.image_id,
            actor_id=principal.user_id,
            details={"mime_type": metadata.mime_type, "file_size": metadata.file_size},
        )

        return ImagePublicView.from_metadata(metadata)

    def upload_images(
        self,
        *,
        files: list[UploadFile],
        principal: Principal,
        profile: UploadProfile,
    ) -> list[BatchItemResult]:
        """Ingest several files independently; one failure does not stop the rest.

        Raises:
            ValidationError: If the batch is empty or too large
        """
        self.check_batch_size(len(files))
        if not files:
            raise ValidationError(message="At least one file is required")

        results: list[BatchItemResult] = []

        for index, upload in enumerate(files):
            try:
                metadata = self._ingest(
                    file_data=upload.file_data,
                    mime_type=upload.mime_type,
                    image_name=upload.image_name,
                    principal=principal,
                    profile=profile,
                    tags=upload.tags,
                )
            except ImageServiceError as exc:
                logger.info(
                    "Batch item rejected",
                    extra={"index": index, "error_code": exc.error_code},
                )
                results.append(
                    BatchItemResult(
                        index=index,
                        image_name=upload.image_name,
                        success=False,
                        error=BatchItemError(error=exc.error_code, message=exc.message),
                    )
                )
                continue
            except Exception:
                logger.exception("Unexpected error in batch item", extra={"index": index})
                results.append(
                    BatchItemResult(
                        index=index,
                        image_name=upload.image_name,
                        success=False,
                        error=BatchItemError(
                            error=ERROR_CODE_INTERNAL_ERROR,
                            message="Unable to upload image",
                        ),
                    )
                )
                continue

            results.append(
                BatchItemResult(
                    index=index,
                    image_name=upload.image_name,
                    success=True,
                    image=ImagePublicView.from_metadata(metadata),
                )
            )

        uploaded = [r.image.image_id for r in results if r.image is not None]
        if uploaded:
            self.audit.record(
                action="batch_upload",
                resource_id=uploaded[0],
                actor_id=principal.user_id,
                details={"image_ids": uploaded, "failed": len(results) - len(uploaded)},
            )

        return results

    def _validate(self, file_data: bytes, mime_type: str | None, profile: UploadProfile) -> str:
        if not file_data:
            raise ValidationError(
                message="File must not be empty",
                error_code=ERROR_CODE_EMPTY_FILE,
            )

        resolved_mime = normalize_mime_type(mime_type, file_data)
        if not profile.allows(resolved_mime):
            logger.warning(
                "Unsupported MIME type",
                extra={"mime_type": resolved_mime, "profile": profile.name},
            )
            raise MIMETypeError(
                message="Unsupported image type",
                details={
                    "mime_type": resolved_mime,
                    "allowed": sorted(profile.allowed_mime_types),
                },
            )

        # Measured on the decoded payload, never taken from client headers
        if len(file_data) > profile.max_bytes:
            logger.warning(
                "Upload exceeds size limit",
                extra={"size": len(file_data), "limit": profile.max_bytes, "profile": profile.name},
            )
            raise FileSizeError(
                message=f"File size exceeds {format_file_size(profile.max_bytes)} limit",
                details={"size": len(file_data), "max_bytes": profile.max_bytes},
            )

        return resolved_mime

    def _ingest(
        self,
        *,
        file_data: bytes,
        mime_type: str | None,
        image_name: str,
        principal: Principal,
        profile: UploadProfile,
        tags: list[str] | None,
    ) -> ImageMetadata:
        logger.debug(
            "Starting image upload",
            extra={"user_id": principal.user_id, "profile": profile.name},
        )

        resolved_mime = self._validate(file_data, mime_type, profile)
        width, height = probe_dimensions(file_data, resolved_mime)

        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            created_at = self._now()
            image_id = self._new_id()

            if self.metadata.image_exists(image_id=image_id):
                logger.warning(
                    "Generated identifier already in use, regenerating",
                    extra={"image_id": image_id, "attempt": attempt},
                )
                continue

            storage_path, _ = self.paths.resolve(
                image_id=image_id,
                mime_type=resolved_mime,
                created_at=created_at,
            )
            if self.storage.exists(storage_path=storage_path):
                logger.warning(
                    "Storage path already taken, regenerating",
                    extra={"image_id": image_id, "attempt": attempt},
                )
                continue

            # Raises ImageUploadFailedError; storage leaves no partial file behind
            self.storage.write_image(storage_path=storage_path, file_data=file_data)

            timestamp = created_at.isoformat()
            metadata = ImageMetadata(
                image_id=image_id,
                user_id=principal.user_id,
                image_name=image_name,
                storage_path=storage_path,
                file_size=len(file_data),
                mime_type=resolved_mime,
                width=width,
                height=height,
                tags=tags,
                created_at=timestamp,
                updated_at=timestamp,
            )

            try:
                self.metadata.create_metadata(metadata=metadata.model_dump())
            except DuplicateImageError:
                logger.warning(
                    "Identifier claimed concurrently, regenerating",
                    extra={"image_id": image_id, "attempt": attempt},
                )
                self._remove_orphan(storage_path, image_id)
                continue
            except Exception as exc:
                logger.exception("Failed to persist image metadata", extra={"image_id": image_id})
                self._remove_orphan(storage_path, image_id)
                raise MetadataOperationFailedError(
                    message="Unable to save image metadata",
                    error_code=ERROR_CODE_METADATA_CREATE_FAILED,
                    details={"image_id": image_id},
                ) from exc

            self.cache.delete(UserImageStats.cache_key(principal.user_id))
            logger.info(
                "Image uploaded successfully",
                extra={
                    "image_id": image_id,
                    "user_id": principal.user_id,
                    "mime_type": resolved_mime,
                    "file_size": len(file_data),
                },
            )
            return metadata

        logger.error("Unable to allocate a unique image identifier", extra={"attempts": MAX_ID_ATTEMPTS})
        raise ImageUploadFailedError(
            message="Unable to upload image",
            details={"reason": "identifier allocation exhausted"},
        )

    def _remove_orphan(self, storage_path: str, image_id: str) -> None:
        """Best-effort cleanup of a file whose metadata never committed."""
        try:
            self.storage.remove_image(storage_path=storage_path)
        except Exception as exc:
            logger.warning(
                "Failed to clean up uploaded image after metadata failure",
                extra={"image_id": image_id, "error": str(exc), "integrity_warning": True},
            )
