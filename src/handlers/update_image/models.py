"""Pydantic models for update image request/response."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from core.models.image import ImagePublicView
from core.utils.validators import normalize_tags


class UpdateImageRequest(BaseModel):
    """Validation model for changing an image's visibility or tags.

    An empty tag list clears the tags; omitted fields are left untouched.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    image_id: str = Field(..., min_length=1, max_length=64, description="Image ID to update")
    is_public: StrictBool | None = Field(None, description="Whether the image is publicly listed")
    tags: list[str] | None = Field(None, description="Replacement tag list (max 10)")

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, value: Any) -> list[str] | None:
        return normalize_tags(value)


class UpdateImageResponse(BaseModel):
    """Response model for a successful update."""

    image: ImagePublicView
    message: str = Field(..., description="Success message")
