"""
Business logic for image retrieval.

This module resolves an identifier to stored bytes, optionally resizes and
re-encodes them, records usage and builds the response headers. Delivery
never mutates an image; only its usage counters change.
"""

import unicodedata
from urllib.parse import quote

from aws_lambda_powertools import Logger

from core.dependencies import ServiceDependencies, get_dependencies
from core.imaging.processor import transform_image
from core.models.errors import NotFoundError, TransformError, ValidationError
from core.models.image import ImageMetadata, ImagePublicView
from core.repositories.metadata_repository import require_image
from core.usage import DeliveryMode
from core.utils.constants import (
    CACHE_CONTROL_IMMUTABLE,
    MAX_IMAGE_QUALITY,
    MAX_TRANSFORM_DIMENSION,
    MIN_IMAGE_QUALITY,
)
from core.utils.time import iso_to_epoch_ms

from .models import DeliveryResult

logger = Logger(UTC=True)


def build_etag(image_id: str, updated_at: str) -> str:
    """Entity tag derived from the identifier and last update time."""
    return f'"{image_id}-{iso_to_epoch_ms(updated_at)}"'


def content_disposition(filename: str) -> str:
    """Attachment header carrying the original file name.

    Quotes, backslashes and control characters are dropped. Non-ASCII names
    get an ASCII fallback plus an RFC 5987 ``filename*`` parameter.
    """
    cleaned = "".join(
        ch for ch in filename if ch not in '"\\' and unicodedata.category(ch)[0] != "C"
    ).strip()
    if not cleaned:
        cleaned = "image"

    ascii_name = cleaned.encode("ascii", "ignore").decode("ascii").strip() or "image"
    if ascii_name == cleaned:
        return f'attachment; filename="{cleaned}"'

    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(cleaned, safe='')}"


class GetService:
    """Application service responsible for retrieving images and metadata.

    This service orchestrates:
    - Fetching image metadata
    - Verifying the backing file
    - Recording a view or download
    - Optional resize/re-encode with fallback to the original bytes
    """

    def __init__(self, deps: ServiceDependencies | None = None) -> None:
        deps = deps or get_dependencies()
        self.config = deps.config
        self.storage = deps.storage
        self.metadata = deps.metadata
        self.usage = deps.usage

    def deliver(
        self,
        image_id: str,
        *,
        width: int | None = None,
        height: int | None = None,
        quality: int | None = None,
        mode: DeliveryMode = "view",
    ) -> DeliveryResult:
        """
        Return the bytes and headers for an image.

        Args:
            image_id: Unique image identifier
            width: Optional target width; resize fits inside, never enlarges
            height: Optional target height
            quality: Encoder quality for JPEG/WebP; service default when None
            mode: "view" (inline, cacheable) or "download" (attachment)

        Returns:
            DeliveryResult with content, content type and headers

        Raises:
            ValidationError: If transform parameters are out of range
            NotFoundError: If the record or its backing file does not exist
            ImageDownloadFailedError: If the file cannot be read
        """
        quality = self.config.default_quality if quality is None else quality
        self._check_transform_bounds(width, height, quality)

        logger.debug(
            "Delivering image",
            extra={"image_id": image_id, "mode": mode, "width": width, "height": height},
        )

        metadata = require_image(self.metadata, image_id)
        original = self._read_original(metadata)

        # Best-effort, non-blocking: a failed increment never fails delivery
        self.usage.record(image_id, mode)

        content = original
        transformed = False
        if width is not None or height is not None:
            try:
                content = transform_image(
                    original,
                    metadata.mime_type,
                    width=width,
                    height=height,
                    quality=quality,
                )
                transformed = True
            except TransformError as exc:
                logger.warning(
                    "Transform failed, serving original",
                    extra={
                        "image_id": image_id,
                        "error": exc.message,
                        "details": exc.details,
                    },
                )

        logger.info(
            "Image delivered",
            extra={
                "image_id": image_id,
                "mode": mode,
                "transformed": transformed,
                "size": len(content),
            },
        )

        return DeliveryResult(
            content=content,
            content_type=metadata.mime_type,
            headers=self._build_headers(metadata, mode),
            transformed=transformed,
        )

    def deliver_raw(self, image_id: str) -> DeliveryResult:
        """Stored bytes exactly as uploaded; usage counters are left alone.

        Raises:
            NotFoundError: If the record or its backing file does not exist
        """
        metadata = require_image(self.metadata, image_id)
        content = self._read_original(metadata)

        logger.info("Raw image delivered", extra={"image_id": image_id, "size": len(content)})

        return DeliveryResult(
            content=content,
            content_type=metadata.mime_type,
            headers=self._build_headers(metadata, "view"),
        )

    def get_image_info(self, image_id: str) -> ImagePublicView:
        """Public metadata including usage counters.

        Raises:
            NotFoundError: If metadata does not exist
        """
        return ImagePublicView.from_metadata(require_image(self.metadata, image_id))

    def _read_original(self, metadata: ImageMetadata) -> bytes:
        image_id = metadata.image_id

        if not self.storage.exists(storage_path=metadata.storage_path):
            logger.warning(
                "Image file missing for existing metadata record",
                extra={
                    "image_id": image_id,
                    "storage_path": metadata.storage_path,
                    "integrity_warning": True,
                },
            )
            raise NotFoundError(message="Image not found", details={"image_id": image_id})

        try:
            return self.storage.read_image(storage_path=metadata.storage_path)
        except NotFoundError as exc:
            # Removed by a concurrent delete after the existence check
            logger.info("Image removed during delivery", extra={"image_id": image_id})
            raise NotFoundError(
                message="Image not found",
                details={"image_id": image_id},
            ) from exc

    @staticmethod
    def _check_transform_bounds(width: int | None, height: int | None, quality: int) -> None:
        for name, value in (("width", width), ("height", height)):
            if value is not None and not 1 <= value <= MAX_TRANSFORM_DIMENSION:
                raise ValidationError(
                    message=f"{name.capitalize()} must be between 1 and {MAX_TRANSFORM_DIMENSION}",
                    details={name: value},
                )

        if not MIN_IMAGE_QUALITY <= quality <= MAX_IMAGE_QUALITY:
            raise ValidationError(
                message=f"Quality must be between {MIN_IMAGE_QUALITY} and {MAX_IMAGE_QUALITY}",
                details={"quality": quality},
            )

    @staticmethod
    def _build_headers(metadata: ImageMetadata, mode: DeliveryMode) -> dict[str, str]:
        if mode == "download":
            return {"Content-Disposition": content_disposition(metadata.image_name)}

        return {
            "Cache-Control": CACHE_CONTROL_IMMUTABLE,
            "ETag": build_etag(metadata.image_id, metadata.updated_at),
        }
