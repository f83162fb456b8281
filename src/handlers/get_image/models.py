from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    field_validator,
)

from core.usage import DeliveryMode
from core.utils.constants import (
    MAX_IMAGE_QUALITY,
    MAX_TRANSFORM_DIMENSION,
    MIN_IMAGE_QUALITY,
)


class GetImageRequest(BaseModel):
    """Validation model for get image request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    image_id: StrictStr = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Image ID to retrieve",
    )

    width: int | None = Field(
        default=None,
        ge=1,
        le=MAX_TRANSFORM_DIMENSION,
        description="Target width in pixels (query param w)",
    )
    height: int | None = Field(
        default=None,
        ge=1,
        le=MAX_TRANSFORM_DIMENSION,
        description="Target height in pixels (query param h)",
    )
    quality: int | None = Field(
        default=None,
        ge=MIN_IMAGE_QUALITY,
        le=MAX_IMAGE_QUALITY,
        description="Encoder quality for JPEG/WebP (query param q)",
    )

    download: StrictBool = Field(
        default=False,
        description=(
            "If true, forces image download "
            "(Content-Disposition: attachment). "
            "If false, displays image inline."
        ),
    )

    info: StrictBool = Field(
        default=False,
        description="Return public metadata as JSON instead of the image bytes",
    )

    raw: StrictBool = Field(
        default=False,
        description="Serve the stored bytes untouched without recording usage",
    )

    @field_validator("image_id")
    @classmethod
    def validate_image_id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("image_id must not be blank")
        return value

    @property
    def mode(self) -> DeliveryMode:
        return "download" if self.download else "view"


class DeliveryResult(BaseModel):
    """Bytes and headers for one delivered image."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    content_type: str
    headers: dict[str, str]
    transformed: bool = False
