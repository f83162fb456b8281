"""Request, result and response shapes for image deletion."""

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class DeleteImageRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    image_id: StrictStr = Field(..., min_length=1, max_length=64)


class DeletionReceipt(BaseModel):
    """What the delete service actually removed.

    ``file_removed`` is False when the backing file was already gone or could
    not be unlinked; the record is deleted either way.
    """

    model_config = ConfigDict(frozen=True)

    image_id: str
    owner_id: str
    deleted_at: str
    file_removed: bool


class DeleteImageResponse(BaseModel):
    image_id: str
    message: str
    deleted_at: str
    file_removed: bool = Field(..., description="Whether the backing file was removed")
