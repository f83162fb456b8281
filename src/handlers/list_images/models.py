"""
Pydantic models for list images and user statistics requests.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator, model_validator

from core.utils.constants import DEFAULT_LIMIT, DEFAULT_OFFSET, MAX_LIMIT, MIN_LIMIT, USER_ID_PATTERN


def _normalize_day(value: str | None, *, end_of_day: bool) -> str | None:
    if not value:
        return None

    try:
        dt = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"Invalid date format. Expected YYYY-MM-DD, got '{value}'") from exc

    if end_of_day:
        dt = dt.replace(hour=23, minute=59, second=59, microsecond=999999)
    else:
        dt = dt.replace(hour=0, minute=0, second=0, microsecond=0)

    return dt.replace(tzinfo=timezone.utc).isoformat()


class ListImagesRequest(BaseModel):
    """
    Validation model for the list images API.

    Dates are whole days: ``start_date`` is widened to 00:00:00 UTC and
    ``end_date`` to 23:59:59.999999 UTC so both bounds are inclusive.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str | None = Field(
        None,
        min_length=1,
        max_length=64,
        pattern=USER_ID_PATTERN,
        description="Owner to list; omitted lists public images from every owner",
    )

    start_date: str | None = Field(None, description="Start date (YYYY-MM-DD)")
    end_date: str | None = Field(None, description="End date (YYYY-MM-DD)")

    limit: int = Field(
        default=DEFAULT_LIMIT,
        ge=MIN_LIMIT,
        le=MAX_LIMIT,
        description=f"Results per page ({MIN_LIMIT}-{MAX_LIMIT})",
    )
    offset: int = Field(default=DEFAULT_OFFSET, ge=0, description="Pagination offset")

    stats: StrictBool = Field(False, description="Return aggregate statistics instead of a page")

    @field_validator("start_date")
    @classmethod
    def normalize_start_date(cls, value: str | None) -> str | None:
        return _normalize_day(value, end_of_day=False)

    @field_validator("end_date")
    @classmethod
    def normalize_end_date(cls, value: str | None) -> str | None:
        return _normalize_day(value, end_of_day=True)

    @model_validator(mode="after")
    def validate_date_range(self) -> "ListImagesRequest":
        """Ensure start_date is before or equal to end_date."""
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be before or equal to end_date")
        return self
