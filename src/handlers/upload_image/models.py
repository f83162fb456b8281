"""Pydantic models for image upload request/response."""

import base64
import binascii
from typing import Any

from aws_lambda_powertools import Logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.models.image import ImagePublicView
from core.utils.constants import IMAGE_NAME_MAX_LENGTH
from core.utils.validators import normalize_tags

logger = Logger(UTC=True)


class ImageUploadRequest(BaseModel):
    """Validation model for a single image upload.

    Size and MIME limits depend on the caller's upload profile and are
    enforced by the service once the payload is decoded.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    file: str = Field(..., description="Base64 encoded image file")
    image_name: str = Field(
        ...,
        min_length=1,
        max_length=IMAGE_NAME_MAX_LENGTH,
        description="Original file name, display only",
    )
    mime_type: str | None = Field(
        None,
        max_length=100,
        description="Declared MIME type; sniffed from content when omitted",
    )
    tags: list[str] | None = Field(None, description="List of tags (max 10)")

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, value: Any) -> list[str] | None:
        return normalize_tags(value)

    @field_validator("file")
    @classmethod
    def validate_file(cls, value: str) -> str:
        """
        Validate base64 file:
        - must not be empty
        - must decode correctly
        - must have non-zero size
        """
        if not value:
            raise ValueError("File must not be empty")

        try:
            file_data = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            logger.warning("File validation error: invalid base64")
            raise ValueError("Invalid base64 encoded file") from exc

        if not file_data:
            raise ValueError("Decoded file is empty")

        return value


class BatchUploadRequest(BaseModel):
    """Validation model for a multi-file upload."""

    files: list[ImageUploadRequest] = Field(..., min_length=1)


class UploadFile(BaseModel):
    """A decoded upload handed to the ingestion pipeline."""

    model_config = ConfigDict(frozen=True)

    file_data: bytes
    image_name: str
    mime_type: str | None = None
    tags: list[str] | None = None


class ImageUploadResponse(BaseModel):
    """Response model for successful image upload."""

    image: ImagePublicView = Field(..., description="The stored image")
    message: str = Field(..., description="Success message")


class BatchItemError(BaseModel):
    error: str
    message: str


class BatchItemResult(BaseModel):
    """Outcome of one file in a batch upload."""

    index: int
    image_name: str
    success: bool
    image: ImagePublicView | None = None
    error: BatchItemError | None = None


class BatchUploadResponse(BaseModel):
    results: list[BatchItemResult]
    uploaded_count: int
    failed_count: int
