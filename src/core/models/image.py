"""Image records, the public views built from them and listing envelopes."""

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr


class ImageMetadata(BaseModel):
    """Image metadata record as persisted in the metadata store."""

    image_id: StrictStr = Field(..., description="Unique image identifier")
    user_id: StrictStr = Field(..., description="Owner user identifier")
    image_name: StrictStr = Field(..., description="Original image file name (display only)")

    storage_path: StrictStr = Field(
        ...,
        description="File location relative to the upload root (YYYY/MM/<id><ext>)",
    )
    file_size: StrictInt = Field(..., gt=0, description="Image size in bytes")
    mime_type: StrictStr = Field(..., description="MIME type of the image (e.g. image/jpeg)")

    width: StrictInt | None = Field(None, gt=0, description="Intrinsic width in pixels")
    height: StrictInt | None = Field(None, gt=0, description="Intrinsic height in pixels")

    is_public: StrictBool = Field(True, description="Whether the image is publicly listed")
    tags: list[StrictStr] | None = Field(None, description="Optional list of image tags")

    view_count: StrictInt = Field(0, ge=0, description="Successful inline deliveries")
    download_count: StrictInt = Field(0, ge=0, description="Successful forced downloads")

    created_at: StrictStr = Field(..., description="ISO-8601 creation timestamp (UTC)")
    updated_at: StrictStr = Field(..., description="ISO-8601 last update timestamp (UTC)")


class ImagePublicView(BaseModel):
    """Image fields safe to expose to API clients."""

    image_id: str
    user_id: str
    image_name: str
    url: str
    file_size: int
    mime_type: str
    width: int | None = None
    height: int | None = None
    is_public: bool
    tags: list[str] | None = None
    view_count: int = 0
    download_count: int = 0
    created_at: str
    updated_at: str

    @classmethod
    def from_metadata(cls, metadata: ImageMetadata) -> "ImagePublicView":
        return cls(
            image_id=metadata.image_id,
            user_id=metadata.user_id,
            image_name=metadata.image_name,
            url=f"/image/{metadata.image_id}",
            file_size=metadata.file_size,
            mime_type=metadata.mime_type,
            width=metadata.width,
            height=metadata.height,
            is_public=metadata.is_public,
            tags=metadata.tags,
            view_count=metadata.view_count,
            download_count=metadata.download_count,
            created_at=metadata.created_at,
            updated_at=metadata.updated_at,
        )


class PaginationInfo(BaseModel):
    """Position of one page within an owner's filtered listing."""

    model_config = ConfigDict(frozen=True)

    limit: StrictInt
    offset: StrictInt
    has_more: StrictBool
    next_offset: StrictInt | None = Field(None, description="Offset of the following page; None on the last one")


class ListImagesResponse(BaseModel):
    """Paginated response for listing images."""

    images: list[ImagePublicView] = Field(..., description="List of image metadata objects")
    total_count: StrictInt = Field(..., description="Total number of images matching the query")
    returned_count: StrictInt = Field(..., description="Number of images returned in this response")
    pagination: PaginationInfo = Field(..., description="Pagination metadata")


class UserImageStats(BaseModel):
    """Aggregate usage figures for one owner."""

    user_id: str
    image_count: int = 0
    total_bytes: int = 0
    total_views: int = 0
    total_downloads: int = 0

    @staticmethod
    def cache_key(user_id: str) -> str:
        return f"user-stats:{user_id}"
